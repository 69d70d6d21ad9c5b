"""Item aggregate: a catalog entry with its own stock level.

Items are referenced by order lines but never owned by an order: price
changes or restocking here do not rewrite existing orders, which keep a
price snapshot per line.
"""

from __future__ import annotations

from dataclasses import dataclass

from shop.domain.exceptions import NotEnoughStockError, ValidationError


@dataclass
class Item:

    id: int | None
    name: str
    price: int
    stock_quantity: int = 0

    @staticmethod
    def create(name: str, price: int, stock_quantity: int) -> Item:
        if not name or not name.strip():
            raise ValidationError("Item name is required")
        if price <= 0:
            raise ValidationError("Item price must be greater than zero")
        if stock_quantity < 0:
            raise ValidationError("Stock quantity cannot be negative")
        return Item(id=None, name=name.strip(), price=price, stock_quantity=stock_quantity)

    def add_stock(self, quantity: int) -> None:
        self.stock_quantity += quantity

    def remove_stock(self, quantity: int) -> None:
        remaining = self.stock_quantity - quantity
        if remaining < 0:
            raise NotEnoughStockError(
                f"Not enough stock for '{self.name}': "
                f"requested {quantity}, available {self.stock_quantity}"
            )
        self.stock_quantity = remaining
