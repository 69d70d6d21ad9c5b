"""Order aggregate: the core of the domain.

The Order is an aggregate root that owns its Delivery and its OrderItems.
Member and Item are separate aggregates the order only references.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from shop.domain.exceptions import ValidationError
from shop.domain.model.item import Item
from shop.domain.model.member import Member
from shop.domain.model.value_objects import Address, Quantity


class OrderStatus(Enum):
    ORDERED = "ORDERED"
    CANCELLED = "CANCELLED"


class DeliveryStatus(Enum):
    READY = "READY"
    COMP = "COMP"


@dataclass
class Delivery:

    id: int | None
    address: Address
    status: DeliveryStatus = DeliveryStatus.READY

    @staticmethod
    def for_member(member: Member) -> Delivery:
        """Ship to the member's current address (copied, not shared)."""
        return Delivery(id=None, address=member.address)


@dataclass
class OrderItem:
    """One order line.

    ``order_price`` is the unit price at order time and never changes,
    even when the catalog price of ``item`` does.
    """

    id: int | None
    item: Item
    order_price: int
    count: Quantity

    @staticmethod
    def create(item: Item, order_price: int, count: int) -> OrderItem:
        quantity = Quantity(count)
        item.remove_stock(quantity.value)
        return OrderItem(id=None, item=item, order_price=order_price, count=quantity)

    @property
    def total_price(self) -> int:
        return self.order_price * self.count.value

    def cancel(self) -> None:
        """Give the reserved units back to the catalog item."""
        self.item.add_stock(self.count.value)


@dataclass
class Order:
    """Aggregate root for purchase orders.

    Use the ``Order.create()`` factory for new orders. The ``__init__`` is
    intentionally simple so the repository and the fetch strategies can
    reconstitute persisted orders without re-validating.
    """

    id: int | None
    member: Member
    delivery: Delivery
    items: list[OrderItem]
    status: OrderStatus = OrderStatus.ORDERED
    order_date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(member: Member, delivery: Delivery, items: list[OrderItem]) -> Order:
        if not items:
            raise ValidationError("Order must contain at least one item")
        return Order(id=None, member=member, delivery=delivery, items=list(items))

    # --- State transitions ----------------------------------------------------

    def cancel(self) -> None:
        """Transition ORDERED -> CANCELLED and restore item stock."""
        if self.status == OrderStatus.CANCELLED:
            raise ValidationError(f"Order #{self.id} is already cancelled")
        if self.delivery.status == DeliveryStatus.COMP:
            raise ValidationError(
                f"Order #{self.id} cannot be cancelled after delivery is complete"
            )
        self.status = OrderStatus.CANCELLED
        for order_item in self.items:
            order_item.cancel()

    # --- Computed properties --------------------------------------------------

    @property
    def total_price(self) -> int:
        return sum(order_item.total_price for order_item in self.items)
