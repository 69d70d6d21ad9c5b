"""SQLite connection and schema shared by the store and the repositories."""

from __future__ import annotations

import sqlite3
from pathlib import Path

SCHEMA = """
CREATE TABLE IF NOT EXISTS member (
    id      INTEGER PRIMARY KEY AUTOINCREMENT,
    name    TEXT NOT NULL,
    city    TEXT NOT NULL,
    street  TEXT NOT NULL,
    zipcode TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS item (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    name           TEXT NOT NULL UNIQUE,
    price          INTEGER NOT NULL,
    stock_quantity INTEGER NOT NULL CHECK (stock_quantity >= 0)
);

CREATE TABLE IF NOT EXISTS delivery (
    id      INTEGER PRIMARY KEY AUTOINCREMENT,
    city    TEXT NOT NULL,
    street  TEXT NOT NULL,
    zipcode TEXT NOT NULL,
    status  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS orders (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    member_id   INTEGER NOT NULL REFERENCES member (id),
    delivery_id INTEGER NOT NULL UNIQUE REFERENCES delivery (id),
    order_date  TEXT NOT NULL,
    status      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS order_item (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    order_id    INTEGER NOT NULL REFERENCES orders (id),
    item_id     INTEGER NOT NULL REFERENCES item (id),
    order_price INTEGER NOT NULL,
    count       INTEGER NOT NULL CHECK (count > 0)
);

CREATE INDEX IF NOT EXISTS ix_order_item_order_id ON order_item (order_id);
"""


def connect(path: Path | str) -> sqlite3.Connection:
    """Open (creating if needed) the database at *path*; ``":memory:"`` works too."""
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    init_schema(conn)
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    with conn:
        conn.executescript(SCHEMA)
