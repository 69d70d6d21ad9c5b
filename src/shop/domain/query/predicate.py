"""Store-agnostic predicate expressions for order searches.

A predicate is a small immutable tree. Fields are logical
``entity.column`` names (``"order.status"``, ``"member.name"``); only the
store adapter knows how they map onto tables and how each node is written
in its query language.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from shop.domain.exceptions import ValidationError
from shop.domain.model.order import OrderStatus

# Upper bound on rows returned by any query that is not explicitly paged.
MAX_UNPAGED_ROWS = 1000


class Predicate:
    """Base class for predicate nodes."""

    def __and__(self, other: Predicate) -> Predicate:
        return and_(self, other)


@dataclass(frozen=True)
class MatchAll(Predicate):
    pass


MATCH_ALL = MatchAll()


@dataclass(frozen=True)
class Eq(Predicate):
    field: str
    value: Any


@dataclass(frozen=True)
class Contains(Predicate):
    """Case-sensitive substring match."""

    field: str
    value: str


@dataclass(frozen=True)
class In(Predicate):
    field: str
    values: tuple

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))


@dataclass(frozen=True)
class And(Predicate):
    operands: tuple[Predicate, ...]


def and_(*predicates: Predicate) -> Predicate:
    """AND the given predicates, dropping MatchAll and flattening nested Ands."""
    operands: list[Predicate] = []
    for predicate in predicates:
        if isinstance(predicate, MatchAll):
            continue
        if isinstance(predicate, And):
            operands.extend(predicate.operands)
        else:
            operands.append(predicate)
    if not operands:
        return MATCH_ALL
    if len(operands) == 1:
        return operands[0]
    return And(tuple(operands))


@dataclass(frozen=True)
class OrderSearch:
    """Optional order filter: status equality and buyer-name substring."""

    status: OrderStatus | None = None
    member_name: str | None = None

    @staticmethod
    def of(status: str | None = None, member_name: str | None = None) -> OrderSearch:
        """Build a search from raw input, rejecting unknown status literals."""
        parsed: OrderStatus | None = None
        if status is not None and status.strip():
            try:
                parsed = OrderStatus(status.strip().upper())
            except ValueError as exc:
                allowed = ", ".join(s.value for s in OrderStatus)
                raise ValidationError(
                    f"Unknown order status {status!r} (expected one of {allowed})"
                ) from exc
        return OrderSearch(status=parsed, member_name=member_name)


def build_order_predicate(search: OrderSearch | None) -> Predicate:
    if search is None:
        return MATCH_ALL
    criteria: list[Predicate] = []
    if search.status is not None:
        criteria.append(Eq("order.status", search.status.value))
    # Blank names count as "no name filter"
    if search.member_name and search.member_name.strip():
        criteria.append(Contains("member.name", search.member_name))
    return and_(*criteria)
