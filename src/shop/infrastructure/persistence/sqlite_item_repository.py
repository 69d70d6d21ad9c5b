"""SQLite-backed implementation of ItemRepository."""

from __future__ import annotations

import sqlite3

from shop.domain.model.item import Item
from shop.domain.repository.item_repository import ItemRepository


class SqliteItemRepository(ItemRepository):

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # --- ItemRepository interface ---------------------------------------------

    def get_by_id(self, item_id: int) -> Item | None:
        row = self._conn.execute("SELECT * FROM item WHERE id = ?", (item_id,)).fetchone()
        return self._to_domain(row) if row else None

    def get_by_name(self, name: str) -> Item | None:
        row = self._conn.execute("SELECT * FROM item WHERE name = ?", (name,)).fetchone()
        return self._to_domain(row) if row else None

    def list_all(self) -> list[Item]:
        return [self._to_domain(row) for row in self._conn.execute("SELECT * FROM item ORDER BY id")]

    def save(self, item: Item) -> None:
        with self._conn:
            if item.id is None:
                cursor = self._conn.execute(
                    "INSERT INTO item (name, price, stock_quantity) VALUES (?, ?, ?)",
                    (item.name, item.price, item.stock_quantity),
                )
                item.id = cursor.lastrowid
            else:
                self._conn.execute(
                    "UPDATE item SET name = ?, price = ?, stock_quantity = ? WHERE id = ?",
                    (item.name, item.price, item.stock_quantity, item.id),
                )

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> Item:
        return Item(
            id=row["id"],
            name=row["name"],
            price=row["price"],
            stock_quantity=row["stock_quantity"],
        )
