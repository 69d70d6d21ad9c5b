"""Unit tests for the Item aggregate."""

import pytest

from shop.domain.exceptions import NotEnoughStockError, ValidationError
from shop.domain.model.item import Item


class TestItemCreate:

    def test_happy_path(self):
        item = Item.create("  JPA1 BOOK ", 10000, 100)
        assert item.id is None
        assert item.name == "JPA1 BOOK"
        assert item.stock_quantity == 100

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError, match="name is required"):
            Item.create("  ", 10000, 1)

    def test_zero_price_rejected(self):
        with pytest.raises(ValidationError, match="price"):
            Item.create("Book", 0, 1)

    def test_negative_stock_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            Item.create("Book", 100, -1)


class TestStock:

    def test_remove_and_add(self):
        item = Item(id=1, name="Book", price=100, stock_quantity=5)
        item.remove_stock(5)
        assert item.stock_quantity == 0
        item.add_stock(2)
        assert item.stock_quantity == 2

    def test_remove_more_than_available(self):
        item = Item(id=1, name="Book", price=100, stock_quantity=1)
        with pytest.raises(NotEnoughStockError):
            item.remove_stock(2)
        assert item.stock_quantity == 1

    def test_not_enough_stock_is_a_validation_error(self):
        assert issubclass(NotEnoughStockError, ValidationError)
