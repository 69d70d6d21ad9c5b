"""Application service: Add Item use case."""

from __future__ import annotations

from shop.domain.exceptions import ValidationError
from shop.domain.model.item import Item
from shop.domain.repository.item_repository import ItemRepository


class AddItemHandler:

    def __init__(self, item_repo: ItemRepository) -> None:
        self._item_repo = item_repo

    def handle(self, name: str, price: int, stock_quantity: int) -> Item:
        """Add a new item to the catalog."""
        item = Item.create(name=name, price=price, stock_quantity=stock_quantity)

        if self._item_repo.get_by_name(item.name) is not None:
            raise ValidationError(f"Item '{item.name}' already exists")

        self._item_repo.save(item)
        return item
