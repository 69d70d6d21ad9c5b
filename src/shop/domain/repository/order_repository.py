"""Abstract repository for Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from shop.domain.model.order import Order


class OrderRepository(ABC):

    @abstractmethod
    def get_by_id(self, order_id: int) -> Order | None:
        """Return an order with its member, delivery and lines, or None."""

    @abstractmethod
    def save(self, order: Order) -> None:
        """Persist a new or updated order.

        A new order is written together with its delivery, its lines and
        the stock changes of the referenced items, all or nothing.
        """
