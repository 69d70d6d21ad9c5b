"""Data Transfer Objects: plain containers that cross layer boundaries.

Fetch strategies never hand out domain entities: whatever path they take
through the store, they return ``OrderAggregate`` values that reference
nothing back (no order -> member -> orders cycles).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from shop.domain.model.order import Order
from shop.domain.model.value_objects import Address


@dataclass(frozen=True)
class OrderLineSpec:
    """Input: one requested line (catalog item + count)."""

    item_id: int
    count: int


@dataclass(frozen=True)
class OrderItemLine:
    """Output: one order line as seen by the caller."""

    item_name: str
    order_price: int
    count: int

    @property
    def total_price(self) -> int:
        return self.order_price * self.count


@dataclass(frozen=True)
class OrderAggregate:
    """Output: an order with its buyer, delivery address and lines."""

    order_id: int
    member_name: str
    order_date: datetime
    order_status: str
    address: Address
    items: tuple[OrderItemLine, ...]

    @property
    def total_price(self) -> int:
        return sum(line.total_price for line in self.items)

    @staticmethod
    def from_order(order: Order) -> OrderAggregate:
        return OrderAggregate(
            order_id=order.id,  # type: ignore[arg-type]
            member_name=order.member.name,
            order_date=order.order_date,
            order_status=order.status.value,
            address=order.delivery.address,
            items=tuple(
                OrderItemLine(
                    item_name=order_item.item.name,
                    order_price=order_item.order_price,
                    count=order_item.count.value,
                )
                for order_item in order.items
            ),
        )


@dataclass(frozen=True)
class FlatOrderRow:
    """One row of the fully joined (order x line) projection.

    Header fields repeat on every row of the same order.
    """

    order_id: int
    member_name: str
    order_date: datetime
    order_status: str
    address: Address
    item_name: str
    order_price: int
    count: int

    @property
    def line(self) -> OrderItemLine:
        return OrderItemLine(
            item_name=self.item_name, order_price=self.order_price, count=self.count
        )


@dataclass(frozen=True)
class MemberDTO:
    id: int
    name: str
    address: str


@dataclass(frozen=True)
class SimpleOrderDTO:
    """Output: an order's to-one fields only, without its lines."""

    order_id: int
    member_name: str
    order_date: datetime
    order_status: str
    address: Address
