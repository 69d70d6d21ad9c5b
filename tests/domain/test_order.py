"""Unit tests for the Order aggregate and its business rules."""

import pytest

from shop.domain.exceptions import NotEnoughStockError, ValidationError
from shop.domain.model.item import Item
from shop.domain.model.member import Member
from shop.domain.model.order import (
    Delivery,
    DeliveryStatus,
    Order,
    OrderItem,
    OrderStatus,
)
from shop.domain.model.value_objects import Address


def _member() -> Member:
    return Member(id=1, name="userA", address=Address("Seoul", "1", "1111"))


def _book(name: str = "JPA1 BOOK", price: int = 10000, stock: int = 100) -> Item:
    return Item(id=1, name=name, price=price, stock_quantity=stock)


def _order(*lines: tuple[Item, int]) -> Order:
    member = _member()
    items = [OrderItem.create(item, item.price, count) for item, count in lines]
    return Order.create(member, Delivery.for_member(member), items)


class TestOrderCreation:

    def test_happy_path(self):
        order = _order((_book(), 2))
        assert order.status == OrderStatus.ORDERED
        assert order.id is None  # assigned by repository
        assert len(order.items) == 1

    def test_total_is_sum_of_lines(self):
        jpa1 = _book("JPA1 BOOK", 10000)
        jpa2 = _book("JPA2 BOOK", 20000)
        order = _order((jpa1, 1), (jpa2, 2))
        assert order.total_price == 50000

    def test_takes_stock(self):
        book = _book(stock=10)
        _order((book, 3))
        assert book.stock_quantity == 7

    def test_order_price_is_a_snapshot(self):
        book = _book(price=10000)
        order = _order((book, 1))
        book.price = 99999
        assert order.items[0].order_price == 10000
        assert order.total_price == 10000

    def test_empty_order_rejected(self):
        member = _member()
        with pytest.raises(ValidationError, match="at least one item"):
            Order.create(member, Delivery.for_member(member), [])

    def test_not_enough_stock(self):
        with pytest.raises(NotEnoughStockError, match="Not enough stock"):
            _order((_book(stock=1), 2))

    def test_zero_count_rejected(self):
        with pytest.raises(ValidationError, match="must be positive"):
            _order((_book(), 0))


class TestDelivery:

    def test_copies_member_address(self):
        member = _member()
        delivery = Delivery.for_member(member)
        assert delivery.address == member.address
        assert delivery.status == DeliveryStatus.READY


class TestOrderCancel:

    def test_cancel_sets_status(self):
        order = _order((_book(), 1))
        order.cancel()
        assert order.status == OrderStatus.CANCELLED

    def test_cancel_restores_stock(self):
        book = _book(stock=10)
        order = _order((book, 4))
        order.cancel()
        assert book.stock_quantity == 10

    def test_cancel_is_terminal(self):
        order = _order((_book(), 1))
        order.cancel()
        with pytest.raises(ValidationError, match="already cancelled"):
            order.cancel()

    def test_completed_delivery_cannot_be_cancelled(self):
        book = _book(stock=10)
        order = _order((book, 1))
        order.delivery.status = DeliveryStatus.COMP
        with pytest.raises(ValidationError, match="delivery is complete"):
            order.cancel()
        assert order.status == OrderStatus.ORDERED
        assert book.stock_quantity == 9
