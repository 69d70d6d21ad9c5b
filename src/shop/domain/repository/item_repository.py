"""Abstract repository for Item aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from shop.domain.model.item import Item


class ItemRepository(ABC):

    @abstractmethod
    def get_by_id(self, item_id: int) -> Item | None:
        """Return an item by its ID, or None if not found."""

    @abstractmethod
    def get_by_name(self, name: str) -> Item | None:
        """Return an item by its exact name, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[Item]:
        """Return every item in the catalog."""

    @abstractmethod
    def save(self, item: Item) -> None:
        """Persist a new or updated item."""
