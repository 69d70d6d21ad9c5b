"""Application service: fetch order aggregates (query side).

Six interchangeable strategies answer the same question, "which orders
match this search, optionally paged", and all return ``OrderAggregate``
DTOs. They differ in how many queries they issue for N orders with L lines
in total, and whether the store may page them:

========================  ======================  ========
strategy                  queries                 pageable
========================  ======================  ========
entity-graph              1 + 3N + L              yes
per-row-projection        1 + 3N + L              yes
join-fetch                1                       no
split-fan-out             1 + ceil(N / batch)     yes
two-stage-projection      2                       yes
flat-regroup              1                       no
========================  ======================  ========

Strategies that join the order lines multiply rows per order, so a store
LIMIT/OFFSET would page lines rather than orders; they raise
``PagingConflictError`` instead.

``fetch_summaries`` answers the same question without the lines, in one
pageable query.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import TypeVar

import structlog

from shop.application.batch_loader import (
    DEFAULT_BATCH_SIZE,
    LINE_COLUMNS,
    BatchLoader,
    line_from_row,
    lines_query,
)
from shop.application.dto import (
    FlatOrderRow,
    OrderAggregate,
    OrderItemLine,
    SimpleOrderDTO,
)
from shop.application.flat_regrouper import regroup_flat_rows
from shop.domain.exceptions import (
    EntityNotFoundError,
    PagingConflictError,
    ValidationError,
)
from shop.domain.model.item import Item
from shop.domain.model.member import Member
from shop.domain.model.order import (
    Delivery,
    DeliveryStatus,
    Order,
    OrderItem,
    OrderStatus,
)
from shop.domain.model.value_objects import Address, Quantity
from shop.domain.query.predicate import (
    MAX_UNPAGED_ROWS,
    Eq,
    OrderSearch,
    Predicate,
    build_order_predicate,
)
from shop.domain.query.store import (
    Join,
    Page,
    QueryDescriptor,
    Row,
    Store,
    StoreTimeoutError,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Largest expected lines-per-order for which one flat query is preferred.
FLAT_FAN_OUT_LIMIT = 10

ORDER_COLUMNS = (
    "order.id",
    "order.member_id",
    "order.delivery_id",
    "order.order_date",
    "order.status",
)

SUMMARY_COLUMNS = (
    "order.id",
    "member.name",
    "order.order_date",
    "order.status",
    "delivery.city",
    "delivery.street",
    "delivery.zipcode",
)

GRAPH_COLUMNS = ORDER_COLUMNS + (
    "member.name",
    "member.city",
    "member.street",
    "member.zipcode",
    "delivery.city",
    "delivery.street",
    "delivery.zipcode",
    "delivery.status",
    "order_item.id",
    "order_item.order_price",
    "order_item.count",
    "item.id",
    "item.name",
    "item.price",
    "item.stock_quantity",
)

FLAT_COLUMNS = SUMMARY_COLUMNS + LINE_COLUMNS[1:]

ORDER_ITEM_COLUMNS = (
    "order_item.id",
    "order_item.item_id",
    "order_item.order_price",
    "order_item.count",
)


class _FetchSession:
    """Per-fetch view of the store: one deadline, one query counter."""

    def __init__(self, store: Store, timeout: float | None) -> None:
        self._store = store
        self._deadline = None if timeout is None else time.monotonic() + timeout
        self.query_count = 0

    def execute(self, descriptor: QueryDescriptor) -> list[Row]:
        remaining = self._remaining()
        self.query_count += 1
        return self._store.execute(descriptor, timeout=remaining)

    def find_by_id(self, entity_type: type[T], entity_id: int) -> T | None:
        remaining = self._remaining()
        self.query_count += 1
        return self._store.find_by_id(entity_type, entity_id, timeout=remaining)

    def _remaining(self) -> float | None:
        if self._deadline is None:
            return None
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            raise StoreTimeoutError(
                f"Fetch timed out after {self.query_count} queries"
            )
        return remaining


class OrderFetchStrategy(ABC):

    name: str = ""
    pageable: bool = True

    def __init__(self, store: Store) -> None:
        self._store = store

    def fetch(
        self,
        search: OrderSearch | None = None,
        page: Page | None = None,
        timeout: float | None = None,
    ) -> list[OrderAggregate]:
        """Return the aggregates matching *search*, in order id order.

        Args:
            search: Optional status / buyer-name filter.
            page: Offset/limit over orders. Without a page at most
                ``MAX_UNPAGED_ROWS`` rows are read.
            timeout: Seconds for the whole fetch; exceeding it raises
                ``StoreTimeoutError`` and nothing is returned.
        """
        if page is not None and not self.pageable:
            raise PagingConflictError(
                f"Strategy '{self.name}' joins order lines and cannot be paged; "
                f"use split-fan-out or two-stage-projection"
            )

        session = _FetchSession(self._store, timeout)
        aggregates = self._fetch(session, build_order_predicate(search), page)

        logger.info(
            "Fetched order aggregates",
            strategy=self.name,
            aggregates=len(aggregates),
            queries=session.query_count,
            paged=page is not None,
        )
        return aggregates

    @abstractmethod
    def _fetch(
        self, session: _FetchSession, where: Predicate, page: Page | None
    ) -> list[OrderAggregate]:
        ...

    # --- Shared query helpers -------------------------------------------------

    @staticmethod
    def _bounded(page: Page | None) -> Page:
        return page if page is not None else Page(0, MAX_UNPAGED_ROWS)

    def _capped_rows(self, session: _FetchSession, descriptor: QueryDescriptor) -> list[Row]:
        """Run an unpaged (order x line) query, keeping only whole orders.

        The cap counts joined rows, not orders. One row past the cap is read
        so a cut through the last order can be seen; that order is dropped
        rather than returned with part of its lines. *descriptor* must be
        ordered by order id.
        """
        rows = session.execute(replace(descriptor, page=Page(0, MAX_UNPAGED_ROWS + 1)))
        if len(rows) <= MAX_UNPAGED_ROWS:
            return rows

        kept = rows[:MAX_UNPAGED_ROWS]
        cut_order = rows[MAX_UNPAGED_ROWS]["order.id"]
        dropped = None
        if kept[-1]["order.id"] == cut_order:
            kept = [row for row in kept if row["order.id"] != cut_order]
            dropped = cut_order
        logger.warning(
            "Row cap reached; returning only orders read in full",
            strategy=self.name,
            cap=MAX_UNPAGED_ROWS,
            dropped_order=dropped,
        )
        return kept


# --- Row mapping ------------------------------------------------------------


def _address(row: Row, entity: str) -> Address:
    return Address(
        city=row[f"{entity}.city"],
        street=row[f"{entity}.street"],
        zipcode=row[f"{entity}.zipcode"],
    )


def _summary(row: Row, items: list[OrderItemLine] | tuple[OrderItemLine, ...]) -> OrderAggregate:
    return OrderAggregate(
        order_id=row["order.id"],
        member_name=row["member.name"],
        order_date=row["order.order_date"],
        order_status=row["order.status"],
        address=_address(row, "delivery"),
        items=tuple(items),
    )


def _summary_query(where: Predicate, page: Page) -> QueryDescriptor:
    return QueryDescriptor(
        root="order",
        columns=SUMMARY_COLUMNS,
        joins=(Join.MEMBER, Join.DELIVERY),
        where=where,
        order_by=("order.id",),
        page=page,
    )


# --- Per-row resolution (N+1) -------------------------------------------------


class _PerRowStrategy(OrderFetchStrategy):

    def _order_rows(self, session: _FetchSession, where: Predicate, page: Page | None) -> list[Row]:
        # member is joined only so the buyer-name filter can apply
        return session.execute(
            QueryDescriptor(
                root="order",
                columns=ORDER_COLUMNS,
                joins=(Join.MEMBER,),
                where=where,
                order_by=("order.id",),
                page=self._bounded(page),
            )
        )

    @staticmethod
    def _order_item_rows(session: _FetchSession, order_id: int) -> list[Row]:
        return session.execute(
            QueryDescriptor(
                root="order_item",
                columns=ORDER_ITEM_COLUMNS,
                where=Eq("order_item.order_id", order_id),
                order_by=("order_item.id",),
            )
        )

    @staticmethod
    def _require(entity: T | None, kind: str, entity_id: int) -> T:
        if entity is None:
            raise EntityNotFoundError(f"Dangling reference: {kind} #{entity_id} does not exist")
        return entity


class EntityGraphStrategy(_PerRowStrategy):
    """Load every order as a domain object graph, one relation at a time."""

    name = "entity-graph"

    def _fetch(self, session, where, page):
        aggregates = []
        for row in self._order_rows(session, where, page):
            member = self._require(
                session.find_by_id(Member, row["order.member_id"]), "member", row["order.member_id"]
            )
            delivery = self._require(
                session.find_by_id(Delivery, row["order.delivery_id"]), "delivery", row["order.delivery_id"]
            )
            order_items = []
            for line in self._order_item_rows(session, row["order.id"]):
                item = self._require(
                    session.find_by_id(Item, line["order_item.item_id"]), "item", line["order_item.item_id"]
                )
                order_items.append(
                    OrderItem(
                        id=line["order_item.id"],
                        item=item,
                        order_price=line["order_item.order_price"],
                        count=Quantity(line["order_item.count"]),
                    )
                )
            order = Order(
                id=row["order.id"],
                member=member,
                delivery=delivery,
                items=order_items,
                status=OrderStatus(row["order.status"]),
                order_date=row["order.order_date"],
            )
            aggregates.append(OrderAggregate.from_order(order))
        return aggregates


class PerRowProjectionStrategy(_PerRowStrategy):
    """Copy each relation straight into the DTO, still one query per relation per row."""

    name = "per-row-projection"

    def _fetch(self, session, where, page):
        aggregates = []
        for row in self._order_rows(session, where, page):
            member = self._require(
                session.find_by_id(Member, row["order.member_id"]), "member", row["order.member_id"]
            )
            delivery = self._require(
                session.find_by_id(Delivery, row["order.delivery_id"]), "delivery", row["order.delivery_id"]
            )
            lines = []
            for line in self._order_item_rows(session, row["order.id"]):
                item = self._require(
                    session.find_by_id(Item, line["order_item.item_id"]), "item", line["order_item.item_id"]
                )
                lines.append(
                    OrderItemLine(
                        item_name=item.name,
                        order_price=line["order_item.order_price"],
                        count=line["order_item.count"],
                    )
                )
            aggregates.append(
                OrderAggregate(
                    order_id=row["order.id"],
                    member_name=member.name,
                    order_date=row["order.order_date"],
                    order_status=row["order.status"],
                    address=delivery.address,
                    items=tuple(lines),
                )
            )
        return aggregates


# --- Full join-fetch ---------------------------------------------------------


class JoinFetchStrategy(OrderFetchStrategy):
    """One query over all five tables; parent rows are de-duplicated by id."""

    name = "join-fetch"
    pageable = False

    def _fetch(self, session, where, page):
        rows = self._capped_rows(
            session,
            QueryDescriptor(
                root="order",
                columns=GRAPH_COLUMNS,
                joins=(Join.MEMBER, Join.DELIVERY, Join.ORDER_ITEMS, Join.ITEM),
                where=where,
                order_by=("order.id", "order_item.id"),
            ),
        )

        # Each order appears once per line; keep the first instance only.
        orders: dict[int, Order] = {}
        for row in rows:
            order = orders.get(row["order.id"])
            if order is None:
                order = Order(
                    id=row["order.id"],
                    member=Member(
                        id=row["order.member_id"],
                        name=row["member.name"],
                        address=_address(row, "member"),
                    ),
                    delivery=Delivery(
                        id=row["order.delivery_id"],
                        address=_address(row, "delivery"),
                        status=DeliveryStatus(row["delivery.status"]),
                    ),
                    items=[],
                    status=OrderStatus(row["order.status"]),
                    order_date=row["order.order_date"],
                )
                orders[order.id] = order  # type: ignore[index]
            order.items.append(
                OrderItem(
                    id=row["order_item.id"],
                    item=Item(
                        id=row["item.id"],
                        name=row["item.name"],
                        price=row["item.price"],
                        stock_quantity=row["item.stock_quantity"],
                    ),
                    order_price=row["order_item.order_price"],
                    count=Quantity(row["order_item.count"]),
                )
            )
        return [OrderAggregate.from_order(order) for order in orders.values()]


# --- To-one join + batch loader ----------------------------------------------


class SplitFanOutStrategy(OrderFetchStrategy):
    """Page over orders joined to their to-one relations, then batch-load lines."""

    name = "split-fan-out"

    def __init__(self, store: Store, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValidationError(f"Batch size must be at least 1, got {batch_size}")
        super().__init__(store)
        self._batch_size = batch_size

    def _fetch(self, session, where, page):
        rows = session.execute(_summary_query(where, self._bounded(page)))
        loader = BatchLoader(session, self._batch_size)
        lines = loader.load(row["order.id"] for row in rows)
        return [_summary(row, lines[row["order.id"]]) for row in rows]


# --- Two-stage direct projection ---------------------------------------------


class TwoStageProjectionStrategy(OrderFetchStrategy):
    """Project headers (paged), then every line in one unsplit IN query.

    The id list is not windowed, so a page must stay within the store's
    practical IN-list size.
    """

    name = "two-stage-projection"

    def _fetch(self, session, where, page):
        rows = session.execute(_summary_query(where, self._bounded(page)))

        lines_by_order: dict[int, list[OrderItemLine]] = {row["order.id"]: [] for row in rows}
        for line in session.execute(lines_query(lines_by_order)):
            lines_by_order[line["order_item.order_id"]].append(line_from_row(line))

        return [_summary(row, lines_by_order[row["order.id"]]) for row in rows]


# --- Flat single query + regroup ---------------------------------------------


class FlatRegroupStrategy(OrderFetchStrategy):
    """One flat (order x line) projection, regrouped in memory by order id."""

    name = "flat-regroup"
    pageable = False

    def _fetch(self, session, where, page):
        rows = self._capped_rows(
            session,
            QueryDescriptor(
                root="order",
                columns=FLAT_COLUMNS,
                joins=(Join.MEMBER, Join.DELIVERY, Join.ORDER_ITEMS, Join.ITEM),
                where=where,
                order_by=("order.id", "order_item.id"),
            ),
        )
        return regroup_flat_rows(
            FlatOrderRow(
                order_id=row["order.id"],
                member_name=row["member.name"],
                order_date=row["order.order_date"],
                order_status=row["order.status"],
                address=_address(row, "delivery"),
                item_name=row["item.name"],
                order_price=row["order_item.order_price"],
                count=row["order_item.count"],
            )
            for row in rows
        )


# --- Summary read (to-one relations only) -------------------------------------


def fetch_summaries(
    store: Store,
    search: OrderSearch | None = None,
    page: Page | None = None,
    timeout: float | None = None,
) -> list[SimpleOrderDTO]:
    """Return buyer, date, status and address of matching orders, no lines.

    Only to-one relations are joined, so rows and orders correspond one to
    one: the result is always a single query and may be paged.
    """
    session = _FetchSession(store, timeout)
    rows = session.execute(
        _summary_query(
            build_order_predicate(search),
            page if page is not None else Page(0, MAX_UNPAGED_ROWS),
        )
    )
    summaries = [
        SimpleOrderDTO(
            order_id=row["order.id"],
            member_name=row["member.name"],
            order_date=row["order.order_date"],
            order_status=row["order.status"],
            address=_address(row, "delivery"),
        )
        for row in rows
    ]

    logger.info(
        "Fetched order summaries",
        summaries=len(summaries),
        queries=session.query_count,
        paged=page is not None,
    )
    return summaries


# --- Registry & selection -----------------------------------------------------

STRATEGIES: dict[str, type[OrderFetchStrategy]] = {
    cls.name: cls
    for cls in (
        EntityGraphStrategy,
        PerRowProjectionStrategy,
        JoinFetchStrategy,
        SplitFanOutStrategy,
        TwoStageProjectionStrategy,
        FlatRegroupStrategy,
    )
}


def create_strategy(
    name: str, store: Store, batch_size: int = DEFAULT_BATCH_SIZE
) -> OrderFetchStrategy:
    try:
        cls = STRATEGIES[name]
    except KeyError:
        raise ValidationError(
            f"Unknown fetch strategy '{name}' (expected one of {', '.join(STRATEGIES)})"
        ) from None
    if cls is SplitFanOutStrategy:
        return SplitFanOutStrategy(store, batch_size=batch_size)
    return cls(store)


def choose_strategy(
    paging_required: bool,
    expected_fan_out: float,
    prefer_fewer_queries: bool,
) -> str:
    """Pick a strategy name from the caller's constraints.

    Per-row and full join-fetch strategies are never picked; they exist as
    baselines and for comparison.
    """
    if paging_required:
        return TwoStageProjectionStrategy.name if prefer_fewer_queries else SplitFanOutStrategy.name
    if prefer_fewer_queries:
        if expected_fan_out <= FLAT_FAN_OUT_LIMIT:
            return FlatRegroupStrategy.name
        return TwoStageProjectionStrategy.name
    return SplitFanOutStrategy.name
