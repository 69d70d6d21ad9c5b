"""SQLite-backed implementation of OrderRepository.

An order is spread over four tables (orders, delivery, order_item and the
stock column of item); every save touches them inside one transaction.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime

from shop.domain.model.item import Item
from shop.domain.model.member import Member
from shop.domain.model.order import (
    Delivery,
    DeliveryStatus,
    Order,
    OrderItem,
    OrderStatus,
)
from shop.domain.model.value_objects import Address, Quantity
from shop.domain.repository.order_repository import OrderRepository


class SqliteOrderRepository(OrderRepository):

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # --- OrderRepository interface --------------------------------------------

    def get_by_id(self, order_id: int) -> Order | None:
        row = self._conn.execute(
            "SELECT o.id, o.order_date, o.status,"
            " m.id AS member_id, m.name, m.city AS m_city, m.street AS m_street, m.zipcode AS m_zipcode,"
            " d.id AS delivery_id, d.city AS d_city, d.street AS d_street, d.zipcode AS d_zipcode,"
            " d.status AS delivery_status"
            " FROM orders o"
            " JOIN member m ON m.id = o.member_id"
            " JOIN delivery d ON d.id = o.delivery_id"
            " WHERE o.id = ?",
            (order_id,),
        ).fetchone()
        if row is None:
            return None

        items: dict[int, Item] = {}
        order_items = []
        for line in self._conn.execute(
            "SELECT oi.id, oi.order_price, oi.count, i.id AS item_id, i.name, i.price, i.stock_quantity"
            " FROM order_item oi JOIN item i ON i.id = oi.item_id"
            " WHERE oi.order_id = ? ORDER BY oi.id",
            (order_id,),
        ):
            # one Item object per id so stock changes accumulate
            item = items.setdefault(
                line["item_id"],
                Item(
                    id=line["item_id"],
                    name=line["name"],
                    price=line["price"],
                    stock_quantity=line["stock_quantity"],
                ),
            )
            order_items.append(
                OrderItem(
                    id=line["id"],
                    item=item,
                    order_price=line["order_price"],
                    count=Quantity(line["count"]),
                )
            )

        return Order(
            id=row["id"],
            member=Member(
                id=row["member_id"],
                name=row["name"],
                address=Address(row["m_city"], row["m_street"], row["m_zipcode"]),
            ),
            delivery=Delivery(
                id=row["delivery_id"],
                address=Address(row["d_city"], row["d_street"], row["d_zipcode"]),
                status=DeliveryStatus(row["delivery_status"]),
            ),
            items=order_items,
            status=OrderStatus(row["status"]),
            order_date=datetime.fromisoformat(row["order_date"]),
        )

    def save(self, order: Order) -> None:
        with self._conn:
            if order.id is None:
                self._insert(order)
            else:
                self._update(order)
            self._save_stock(order)

    # --- Writes ---------------------------------------------------------------

    def _insert(self, order: Order) -> None:
        delivery = order.delivery
        cursor = self._conn.execute(
            "INSERT INTO delivery (city, street, zipcode, status) VALUES (?, ?, ?, ?)",
            (
                delivery.address.city,
                delivery.address.street,
                delivery.address.zipcode,
                delivery.status.value,
            ),
        )
        delivery.id = cursor.lastrowid

        cursor = self._conn.execute(
            "INSERT INTO orders (member_id, delivery_id, order_date, status) VALUES (?, ?, ?, ?)",
            (order.member.id, delivery.id, order.order_date.isoformat(), order.status.value),
        )
        order.id = cursor.lastrowid

        for order_item in order.items:
            cursor = self._conn.execute(
                "INSERT INTO order_item (order_id, item_id, order_price, count) VALUES (?, ?, ?, ?)",
                (order.id, order_item.item.id, order_item.order_price, order_item.count.value),
            )
            order_item.id = cursor.lastrowid

    def _update(self, order: Order) -> None:
        self._conn.execute(
            "UPDATE orders SET status = ? WHERE id = ?", (order.status.value, order.id)
        )
        self._conn.execute(
            "UPDATE delivery SET status = ? WHERE id = ?",
            (order.delivery.status.value, order.delivery.id),
        )

    def _save_stock(self, order: Order) -> None:
        stock = {oi.item.id: oi.item.stock_quantity for oi in order.items}
        self._conn.executemany(
            "UPDATE item SET stock_quantity = ? WHERE id = ?",
            [(quantity, item_id) for item_id, quantity in stock.items()],
        )
