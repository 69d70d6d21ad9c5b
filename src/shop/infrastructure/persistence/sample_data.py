"""Sample data: two members, four books and one two-line order each.

* userA orders JPA1 BOOK x1 and JPA2 BOOK x2
* userB orders SPRING1 BOOK x3 and SPRING2 BOOK x4
"""

from __future__ import annotations

import structlog

from shop.application.add_item import AddItemHandler
from shop.application.create_order import CreateOrderHandler
from shop.application.dto import OrderLineSpec
from shop.application.join_member import JoinMemberHandler
from shop.domain.repository.item_repository import ItemRepository
from shop.domain.repository.member_repository import MemberRepository
from shop.domain.repository.order_repository import OrderRepository

logger = structlog.get_logger(__name__)

SAMPLE_ORDERS = [
    {
        "member": ("userA", "Seoul", "1", "1111"),
        "lines": [("JPA1 BOOK", 10000, 100, 1), ("JPA2 BOOK", 20000, 100, 2)],
    },
    {
        "member": ("userB", "Busan", "2", "2222"),
        "lines": [("SPRING1 BOOK", 20000, 200, 3), ("SPRING2 BOOK", 40000, 300, 4)],
    },
]


def seed_sample_data(
    member_repo: MemberRepository,
    item_repo: ItemRepository,
    order_repo: OrderRepository,
) -> list[int]:
    """Insert the sample members, items and orders; return the order ids."""
    join = JoinMemberHandler(member_repo)
    add_item = AddItemHandler(item_repo)
    create_order = CreateOrderHandler(order_repo, member_repo, item_repo)

    order_ids = []
    for sample in SAMPLE_ORDERS:
        member_id = join.handle(*sample["member"])
        specs = []
        for name, price, stock, count in sample["lines"]:
            item = add_item.handle(name=name, price=price, stock_quantity=stock)
            specs.append(OrderLineSpec(item_id=item.id, count=count))  # type: ignore[arg-type]
        order_ids.append(create_order.handle(member_id, specs))

    logger.info("Seeded sample data", orders=order_ids)
    return order_ids
