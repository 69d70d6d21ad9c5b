"""SQLite implementation of the read-side Store.

Translates a ``QueryDescriptor`` (logical ``entity.column`` names, joins,
predicate tree, order-by, page) into one parameterised SQL statement.
Nothing outside this module builds SQL text for reads.
"""

from __future__ import annotations

import sqlite3
import time
from datetime import datetime
from typing import Any, Callable

import structlog

from shop.domain.model.item import Item
from shop.domain.model.member import Member
from shop.domain.model.order import Delivery, DeliveryStatus
from shop.domain.model.value_objects import Address
from shop.domain.query.predicate import And, Contains, Eq, In, MatchAll, Predicate
from shop.domain.query.store import Join, QueryDescriptor, Row, Store, StoreTimeoutError

logger = structlog.get_logger(__name__)

# entity -> (table, alias, columns)
_TABLES: dict[str, tuple[str, str, frozenset[str]]] = {
    "order": ("orders", "o", frozenset({"id", "member_id", "delivery_id", "order_date", "status"})),
    "member": ("member", "m", frozenset({"id", "name", "city", "street", "zipcode"})),
    "delivery": ("delivery", "d", frozenset({"id", "city", "street", "zipcode", "status"})),
    "order_item": ("order_item", "oi", frozenset({"id", "order_id", "item_id", "order_price", "count"})),
    "item": ("item", "i", frozenset({"id", "name", "price", "stock_quantity"})),
}

_JOINS: dict[Join, str] = {
    Join.MEMBER: "JOIN member m ON m.id = o.member_id",
    Join.DELIVERY: "JOIN delivery d ON d.id = o.delivery_id",
    Join.ORDER_ITEMS: "JOIN order_item oi ON oi.order_id = o.id",
    Join.ITEM: "JOIN item i ON i.id = oi.item_id",
}

_CONVERTERS: dict[str, Callable[[Any], Any]] = {
    "order.order_date": datetime.fromisoformat,
}

# VM instructions between deadline checks
_PROGRESS_STEPS = 1000


def _to_member(row: sqlite3.Row) -> Member:
    return Member(
        id=row["id"],
        name=row["name"],
        address=Address(city=row["city"], street=row["street"], zipcode=row["zipcode"]),
    )


def _to_delivery(row: sqlite3.Row) -> Delivery:
    return Delivery(
        id=row["id"],
        address=Address(city=row["city"], street=row["street"], zipcode=row["zipcode"]),
        status=DeliveryStatus(row["status"]),
    )


def _to_item(row: sqlite3.Row) -> Item:
    return Item(
        id=row["id"],
        name=row["name"],
        price=row["price"],
        stock_quantity=row["stock_quantity"],
    )


_ENTITIES: dict[type, tuple[str, Callable[[sqlite3.Row], Any]]] = {
    Member: ("member", _to_member),
    Delivery: ("delivery", _to_delivery),
    Item: ("item", _to_item),
}


class SqliteStore(Store):

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # --- Store interface --------------------------------------------------------

    def execute(self, descriptor: QueryDescriptor, timeout: float | None = None) -> list[Row]:
        sql, params = self.compile(descriptor)
        rows = self._query(sql, params, timeout)
        return [
            {
                column: _CONVERTERS.get(column, _identity)(row[index])
                for index, column in enumerate(descriptor.columns)
            }
            for row in rows
        ]

    def find_by_id(self, entity_type, entity_id, timeout=None):
        try:
            table, to_entity = _ENTITIES[entity_type]
        except KeyError:
            raise TypeError(f"Cannot load {entity_type.__name__} by id") from None
        rows = self._query(f"SELECT * FROM {table} WHERE id = ?", (entity_id,), timeout)
        return to_entity(rows[0]) if rows else None

    # --- SQL translation --------------------------------------------------------

    def compile(self, descriptor: QueryDescriptor) -> tuple[str, list[Any]]:
        """Return ``(sql, params)`` for *descriptor*.

        Raises ValueError for unknown entities/columns or fields on a table
        the descriptor does not join.
        """
        if descriptor.root not in _TABLES:
            raise ValueError(f"Unknown root entity '{descriptor.root}'")
        reachable = {descriptor.root} | {join.value for join in descriptor.joins}

        table, alias, _ = _TABLES[descriptor.root]
        select = ", ".join(
            f'{self._column(name, reachable)} AS "{name}"' for name in descriptor.columns
        )
        parts = [f"SELECT {select}", f"FROM {table} {alias}"]
        parts.extend(_JOINS[join] for join in descriptor.joins)

        params: list[Any] = []
        if not isinstance(descriptor.where, MatchAll):
            parts.append("WHERE " + self._predicate(descriptor.where, reachable, params))
        if descriptor.order_by:
            parts.append(
                "ORDER BY " + ", ".join(self._column(name, reachable) for name in descriptor.order_by)
            )
        if descriptor.page is not None:
            parts.append("LIMIT ? OFFSET ?")
            params.extend([descriptor.page.limit, descriptor.page.offset])
        return " ".join(parts), params

    def _predicate(self, predicate: Predicate, reachable: set[str], params: list[Any]) -> str:
        if isinstance(predicate, MatchAll):
            return "1 = 1"
        if isinstance(predicate, Eq):
            params.append(predicate.value)
            return f"{self._column(predicate.field, reachable)} = ?"
        if isinstance(predicate, Contains):
            # instr() is case-sensitive; LIKE is not for ASCII in SQLite
            params.append(predicate.value)
            return f"instr({self._column(predicate.field, reachable)}, ?) > 0"
        if isinstance(predicate, In):
            if not predicate.values:
                return "1 = 0"
            params.extend(predicate.values)
            placeholders = ", ".join("?" for _ in predicate.values)
            return f"{self._column(predicate.field, reachable)} IN ({placeholders})"
        if isinstance(predicate, And):
            return " AND ".join(
                f"({self._predicate(operand, reachable, params)})" for operand in predicate.operands
            )
        raise TypeError(f"Unsupported predicate node {type(predicate).__name__}")

    @staticmethod
    def _column(name: str, reachable: set[str]) -> str:
        entity, _, column = name.partition(".")
        if entity not in _TABLES or column not in _TABLES[entity][2]:
            raise ValueError(f"Unknown field '{name}'")
        if entity not in reachable:
            raise ValueError(f"Field '{name}' needs a join on '{entity}'")
        return f"{_TABLES[entity][1]}.{column}"

    # --- Execution --------------------------------------------------------------

    def _query(self, sql: str, params, timeout: float | None) -> list[sqlite3.Row]:
        logger.debug("Executing query", sql=sql, params=len(params), timeout=timeout)
        if timeout is None:
            return self._conn.execute(sql, params).fetchall()
        if timeout <= 0:
            raise StoreTimeoutError("Query timeout must be positive")

        deadline = time.monotonic() + timeout
        self._conn.set_progress_handler(
            lambda: 1 if time.monotonic() > deadline else 0, _PROGRESS_STEPS
        )
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.OperationalError as exc:
            if "interrupted" not in str(exc):
                raise
            logger.warning("Query aborted by timeout", timeout=timeout)
            raise StoreTimeoutError(f"Query exceeded {timeout:.3f}s") from exc
        finally:
            self._conn.set_progress_handler(None, 0)


def _identity(value: Any) -> Any:
    return value
