"""Batch loading of order lines.

Replaces "one line query per order" with one ``order_id IN (...)`` query
per window of at most ``batch_size`` orders, so N orders cost
``ceil(N / batch_size)`` queries instead of N.
"""

from __future__ import annotations

from typing import Iterable, Protocol

import structlog

from shop.application.dto import OrderItemLine
from shop.domain.exceptions import ValidationError
from shop.domain.query.predicate import In
from shop.domain.query.store import Join, QueryDescriptor, Row

logger = structlog.get_logger(__name__)

DEFAULT_BATCH_SIZE = 100

LINE_COLUMNS = (
    "order_item.order_id",
    "item.name",
    "order_item.order_price",
    "order_item.count",
)


def line_from_row(row: Row) -> OrderItemLine:
    return OrderItemLine(
        item_name=row["item.name"],
        order_price=row["order_item.order_price"],
        count=row["order_item.count"],
    )


def lines_query(order_ids: Iterable[int]) -> QueryDescriptor:
    """Line projection for the given orders, in stored line sequence."""
    return QueryDescriptor(
        root="order_item",
        columns=LINE_COLUMNS,
        joins=(Join.ITEM,),
        where=In("order_item.order_id", tuple(order_ids)),
        order_by=("order_item.order_id", "order_item.id"),
    )


class QueryRunner(Protocol):
    """Anything that runs one ``QueryDescriptor``: a ``Store`` or a fetch session."""

    def execute(self, descriptor: QueryDescriptor) -> list[Row]:
        ...


class BatchLoader:

    def __init__(self, store: QueryRunner, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValidationError(f"Batch size must be at least 1, got {batch_size}")
        self._store = store
        self._batch_size = batch_size

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def windows(self, order_ids: Iterable[int]) -> list[tuple[int, ...]]:
        """Split distinct ids (first occurrence order) into windows of <= batch_size."""
        distinct = tuple(dict.fromkeys(order_ids))
        return [
            distinct[start:start + self._batch_size]
            for start in range(0, len(distinct), self._batch_size)
        ]

    def load(self, order_ids: Iterable[int]) -> dict[int, list[OrderItemLine]]:
        """Return ``{order_id: [lines...]}`` for every requested id.

        Ids without lines map to an empty list.
        """
        windows = self.windows(order_ids)
        lines_by_order: dict[int, list[OrderItemLine]] = {
            order_id: [] for window in windows for order_id in window
        }
        for window in windows:
            for row in self._store.execute(lines_query(window)):
                lines_by_order[row["order_item.order_id"]].append(line_from_row(row))

        logger.debug(
            "Batch-loaded order lines",
            orders=len(lines_by_order),
            windows=len(windows),
            batch_size=self._batch_size,
        )
        return lines_by_order
