"""Application service: Create Order use case.

Orchestrates the flow between repositories and the domain model.
This is the only place that coordinates multiple aggregates (Member and
Item lookup + Order creation).
"""

from __future__ import annotations

from shop.application.dto import OrderLineSpec
from shop.domain.exceptions import EntityNotFoundError
from shop.domain.model.item import Item
from shop.domain.model.order import Delivery, Order, OrderItem
from shop.domain.repository.item_repository import ItemRepository
from shop.domain.repository.member_repository import MemberRepository
from shop.domain.repository.order_repository import OrderRepository


class CreateOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        member_repo: MemberRepository,
        item_repo: ItemRepository,
    ) -> None:
        self._order_repo = order_repo
        self._member_repo = member_repo
        self._item_repo = item_repo

    def handle(self, member_id: int, line_specs: list[OrderLineSpec]) -> int:
        """Place an order and return its id.

        Steps:
        1. Resolve the member and every item (fail if any is missing).
        2. Ship to the member's current address.
        3. Build lines at the *current* item price (snapshot), taking stock.
        4. Persist order, delivery, lines and stock in one save.
        """
        member = self._member_repo.get_by_id(member_id)
        if member is None:
            raise EntityNotFoundError(f"Member #{member_id} not found")

        # Lines naming the same item must draw on one stock counter
        items: dict[int, Item] = {}
        order_items: list[OrderItem] = []
        for spec in line_specs:
            item = items.get(spec.item_id) or self._item_repo.get_by_id(spec.item_id)
            if item is None:
                raise EntityNotFoundError(f"Item #{spec.item_id} not found")
            items[spec.item_id] = item
            order_items.append(OrderItem.create(item, item.price, spec.count))

        order = Order.create(member, Delivery.for_member(member), order_items)
        self._order_repo.save(order)
        return order.id  # type: ignore[return-value]
