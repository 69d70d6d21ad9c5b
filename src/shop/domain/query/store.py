"""Read-side store contract consumed by the fetch strategies.

The store adapter is the only component that talks to the database. It
accepts a ``QueryDescriptor`` (shape, joins, predicate tree, order-by,
optional page) and returns rows keyed by logical ``entity.column`` names.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from shop.domain.exceptions import ValidationError
from shop.domain.query.predicate import MATCH_ALL, Predicate

T = TypeVar("T")

Row = dict[str, Any]


class StoreTimeoutError(TimeoutError):
    """A store call did not finish within the caller's time budget."""


@dataclass(frozen=True)
class Page:
    offset: int = 0
    limit: int = 100

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValidationError(f"Page offset cannot be negative, got {self.offset}")
        if self.limit < 1:
            raise ValidationError(f"Page limit must be at least 1, got {self.limit}")


class Join(Enum):
    """Navigable relations; the adapter owns the join conditions."""

    MEMBER = "member"            # order -> member (to-one)
    DELIVERY = "delivery"        # order -> delivery (to-one)
    ORDER_ITEMS = "order_item"   # order -> order_item (to-many)
    ITEM = "item"                # order_item -> item (to-one)


@dataclass(frozen=True)
class QueryDescriptor:
    root: str
    columns: tuple[str, ...]
    joins: tuple[Join, ...] = ()
    where: Predicate = MATCH_ALL
    order_by: tuple[str, ...] = ()
    page: Page | None = None


class Store(ABC):

    @abstractmethod
    def execute(self, descriptor: QueryDescriptor, timeout: float | None = None) -> list[Row]:
        """Run one query and return its rows in order."""

    @abstractmethod
    def find_by_id(self, entity_type: type[T], entity_id: int, timeout: float | None = None) -> T | None:
        """Load a single entity (Member, Delivery or Item) by primary key."""
