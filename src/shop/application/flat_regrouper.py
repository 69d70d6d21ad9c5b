"""Regroup a flat (order x line) row stream into order aggregates."""

from __future__ import annotations

from typing import Iterable

import structlog

from shop.application.dto import FlatOrderRow, OrderAggregate, OrderItemLine

logger = structlog.get_logger(__name__)


def regroup_flat_rows(rows: Iterable[FlatOrderRow]) -> list[OrderAggregate]:
    """Collapse flat rows into one aggregate per order.

    Groups are keyed by ``order_id`` alone. The header (buyer, date,
    status, address) is taken from the first row of each group; a later
    row whose header disagrees is still added to the same group, and the
    mismatch is logged. Lines keep their row order and aggregates come out
    in first-encounter order.
    """
    headers: dict[int, FlatOrderRow] = {}
    lines: dict[int, list[OrderItemLine]] = {}

    for row in rows:
        first = headers.get(row.order_id)
        if first is None:
            headers[row.order_id] = row
            lines[row.order_id] = []
        elif _header(first) != _header(row):
            logger.warning(
                "Flat rows disagree on order header; keeping the first",
                order_id=row.order_id,
                first=_header(first),
                conflicting=_header(row),
            )
        lines[row.order_id].append(row.line)

    return [
        OrderAggregate(
            order_id=order_id,
            member_name=header.member_name,
            order_date=header.order_date,
            order_status=header.order_status,
            address=header.address,
            items=tuple(lines[order_id]),
        )
        for order_id, header in headers.items()
    ]


def _header(row: FlatOrderRow) -> tuple:
    return (row.member_name, row.order_date, row.order_status, row.address)
