"""Tests for the order aggregate fetch strategies.

All strategies run against the same in-memory sample database (userA with
two JPA books, userB with two SPRING books) and must agree on the result.
"""

from datetime import datetime

import pytest
from structlog.testing import capture_logs

from shop.application.cancel_order import CancelOrderHandler
from shop.application.create_order import CreateOrderHandler
from shop.application.dto import OrderItemLine, OrderLineSpec
from shop.application.fetch_orders import (
    STRATEGIES,
    EntityGraphStrategy,
    FlatRegroupStrategy,
    JoinFetchStrategy,
    PerRowProjectionStrategy,
    SplitFanOutStrategy,
    TwoStageProjectionStrategy,
    choose_strategy,
    create_strategy,
    fetch_summaries,
)
from shop.domain.exceptions import PagingConflictError, ValidationError
from shop.domain.model.item import Item
from shop.domain.model.member import Member
from shop.domain.model.value_objects import Address
from shop.domain.query.predicate import MAX_UNPAGED_ROWS, OrderSearch
from shop.domain.query.store import Page, StoreTimeoutError
from shop.infrastructure.persistence.database import connect
from shop.infrastructure.persistence.sqlite_order_repository import SqliteOrderRepository
from shop.infrastructure.persistence.sqlite_store import SqliteStore
from tests.fakes import CountingStore, repositories, sample_database, sample_store

ALL_STRATEGIES = sorted(STRATEGIES)
PAGEABLE = [name for name in ALL_STRATEGIES if STRATEGIES[name].pageable]

EXPECTED = {
    "userA": (
        Address("Seoul", "1", "1111"),
        (OrderItemLine("JPA1 BOOK", 10000, 1), OrderItemLine("JPA2 BOOK", 20000, 2)),
    ),
    "userB": (
        Address("Busan", "2", "2222"),
        (OrderItemLine("SPRING1 BOOK", 20000, 3), OrderItemLine("SPRING2 BOOK", 40000, 4)),
    ),
}


def _fetch(name, search=None, page=None, store=None):
    store = store or sample_store()
    return create_strategy(name, store, batch_size=1).fetch(search, page)


class TestSampleScenario:

    @pytest.mark.parametrize("name", ALL_STRATEGIES)
    def test_returns_both_sample_orders(self, name):
        result = _fetch(name)
        assert [a.member_name for a in result] == ["userA", "userB"]
        for aggregate in result:
            address, lines = EXPECTED[aggregate.member_name]
            assert aggregate.address == address
            assert aggregate.items == lines
            assert aggregate.order_status == "ORDERED"
            assert isinstance(aggregate.order_date, datetime)

    @pytest.mark.parametrize("name", ALL_STRATEGIES)
    def test_totals(self, name):
        assert [a.total_price for a in _fetch(name)] == [50000, 220000]

    def test_all_strategies_agree(self):
        conn = sample_database()
        results = {
            name: set(create_strategy(name, SqliteStore(conn)).fetch())
            for name in ALL_STRATEGIES
        }
        baseline = results.pop("entity-graph")
        for name, result in results.items():
            assert result == baseline, name


class TestFiltering:

    @pytest.mark.parametrize("name", ALL_STRATEGIES)
    def test_name_substring(self, name):
        result = _fetch(name, OrderSearch(member_name="B"))
        assert [a.member_name for a in result] == ["userB"]

    @pytest.mark.parametrize("name", ALL_STRATEGIES)
    def test_name_match_is_case_sensitive(self, name):
        assert _fetch(name, OrderSearch(member_name="usera")) == []

    @pytest.mark.parametrize("name", ALL_STRATEGIES)
    def test_status(self, name):
        conn = sample_database()
        CancelOrderHandler(SqliteOrderRepository(conn)).handle(1)
        store = SqliteStore(conn)

        cancelled = _fetch(name, OrderSearch.of(status="CANCELLED"), store=store)
        ordered = _fetch(name, OrderSearch.of(status="ORDERED"), store=store)
        assert [(a.order_id, a.order_status) for a in cancelled] == [(1, "CANCELLED")]
        assert [a.order_id for a in ordered] == [2]

    @pytest.mark.parametrize("name", ALL_STRATEGIES)
    def test_status_and_name(self, name):
        search = OrderSearch.of(status="ORDERED", member_name="userA")
        assert [a.member_name for a in _fetch(name, search)] == ["userA"]


class TestPaging:

    @pytest.mark.parametrize("name", ["join-fetch", "flat-regroup"])
    def test_fan_out_strategies_refuse_paging(self, name):
        store = sample_store()
        with pytest.raises(PagingConflictError, match="cannot be paged"):
            create_strategy(name, store).fetch(page=Page(0, 1))
        assert store.total_calls == 0

    @pytest.mark.parametrize("name", PAGEABLE)
    def test_page_counts_orders_not_lines(self, name):
        first = _fetch(name, page=Page(offset=0, limit=1))
        second = _fetch(name, page=Page(offset=1, limit=1))
        assert [a.member_name for a in first] == ["userA"]
        assert [a.member_name for a in second] == ["userB"]
        assert len(first[0].items) == 2

    @pytest.mark.parametrize("name", PAGEABLE)
    def test_page_past_the_end(self, name):
        assert _fetch(name, page=Page(offset=5, limit=10)) == []

    def test_unpaged_root_query_is_capped(self):
        store = sample_store()
        SplitFanOutStrategy(store).fetch()
        assert store.queries[0].page == Page(0, MAX_UNPAGED_ROWS)

    def test_invalid_page(self):
        with pytest.raises(ValidationError):
            Page(offset=-1, limit=10)
        with pytest.raises(ValidationError):
            Page(offset=0, limit=0)


class TestQueryCounts:

    def test_entity_graph_is_n_plus_one(self):
        store = sample_store()
        EntityGraphStrategy(store).fetch()
        # 1 root + per order (member, delivery, lines) + one item lookup per line
        assert store.total_calls == 1 + 2 * 3 + 4

    def test_per_row_projection_costs_the_same(self):
        store = sample_store()
        PerRowProjectionStrategy(store).fetch()
        assert store.total_calls == 1 + 2 * 3 + 4

    def test_join_fetch_is_one_query(self):
        store = sample_store()
        result = JoinFetchStrategy(store).fetch()
        assert store.total_calls == 1
        assert len(result) == 2

    def test_split_fan_out_batches_lines(self):
        store = sample_store()
        SplitFanOutStrategy(store, batch_size=1).fetch()
        assert store.total_calls == 1 + 2
        store.reset()
        SplitFanOutStrategy(store, batch_size=100).fetch()
        assert store.total_calls == 1 + 1

    def test_split_fan_out_batches_only_the_paged_ids(self):
        store = sample_store()
        SplitFanOutStrategy(store).fetch(page=Page(offset=1, limit=1))
        assert [q.where.values for q in store.in_queries()] == [(2,)]

    def test_two_stage_is_always_two_queries(self):
        store = sample_store()
        TwoStageProjectionStrategy(store).fetch()
        assert store.total_calls == 2

    def test_two_stage_with_no_orders_still_two_queries(self):
        store = sample_store()
        result = TwoStageProjectionStrategy(store).fetch(OrderSearch(member_name="nobody"))
        assert result == []
        assert store.total_calls == 2

    def test_flat_regroup_is_one_query(self):
        store = sample_store()
        FlatRegroupStrategy(store).fetch()
        assert store.total_calls == 1


class TestTimeout:

    @pytest.mark.parametrize("name", ALL_STRATEGIES)
    def test_exhausted_budget_raises_before_querying(self, name):
        store = sample_store()
        with pytest.raises(StoreTimeoutError):
            create_strategy(name, store).fetch(timeout=0)
        assert store.total_calls == 0

    def test_generous_budget_succeeds(self):
        assert len(create_strategy("split-fan-out", sample_store()).fetch(timeout=30)) == 2


class TestRegistry:

    def test_six_strategies(self):
        assert set(STRATEGIES) == {
            "entity-graph",
            "per-row-projection",
            "join-fetch",
            "split-fan-out",
            "two-stage-projection",
            "flat-regroup",
        }

    def test_unknown_strategy(self):
        with pytest.raises(ValidationError, match="Unknown fetch strategy"):
            create_strategy("v7", sample_store())

    def test_batch_size_is_passed_to_split_fan_out(self):
        store = sample_store()
        create_strategy("split-fan-out", store, batch_size=1).fetch()
        assert len(store.in_queries()) == 2

    def test_invalid_batch_size(self):
        with pytest.raises(ValidationError, match="at least 1"):
            SplitFanOutStrategy(sample_store(), batch_size=0)


class TestChooseStrategy:

    def test_paging_with_fewest_queries(self):
        assert choose_strategy(True, 50, prefer_fewer_queries=True) == "two-stage-projection"

    def test_paging_default(self):
        assert choose_strategy(True, 2, prefer_fewer_queries=False) == "split-fan-out"

    def test_small_fan_out_unpaged(self):
        assert choose_strategy(False, 3, prefer_fewer_queries=True) == "flat-regroup"

    def test_large_fan_out_unpaged(self):
        assert choose_strategy(False, 500, prefer_fewer_queries=True) == "two-stage-projection"

    def test_never_picks_a_non_pageable_strategy_when_paging(self):
        for fan_out in (0, 1, 10, 1000):
            for prefer in (True, False):
                assert STRATEGIES[choose_strategy(True, fan_out, prefer)].pageable


def _cap_store(*lines_per_order: int) -> CountingStore:
    """One order per argument, each line one unit of a 10-priced item."""
    conn = connect(":memory:")
    member_repo, item_repo, order_repo = repositories(conn)
    member = Member.create("bulk", Address("Seoul", "1", "1111"))
    member_repo.save(member)
    item = Item.create("PENCIL", 10, 10_000)
    item_repo.save(item)
    handler = CreateOrderHandler(order_repo, member_repo, item_repo)
    for lines in lines_per_order:
        handler.handle(member.id, [OrderLineSpec(item.id, 1)] * lines)
    return CountingStore(SqliteStore(conn))


def _shape(aggregates):
    return [(a.order_id, len(a.items), a.total_price) for a in aggregates]


class TestRowCap:

    @pytest.mark.parametrize("name", ["join-fetch", "flat-regroup"])
    def test_order_cut_by_the_cap_is_dropped(self, name):
        store = _cap_store(999, 2)
        complete = {a.order_id: a for a in SplitFanOutStrategy(store).fetch()}
        assert _shape(complete.values()) == [(1, 999, 9990), (2, 2, 20)]

        result = create_strategy(name, store).fetch()
        assert _shape(result) == [(1, 999, 9990)]
        assert all(aggregate == complete[aggregate.order_id] for aggregate in result)

    @pytest.mark.parametrize("name", ["join-fetch", "flat-regroup"])
    def test_cap_on_an_order_boundary_keeps_the_full_order(self, name):
        result = create_strategy(name, _cap_store(1000, 2)).fetch()
        assert _shape(result) == [(1, 1000, 10000)]

    @pytest.mark.parametrize("name", ["join-fetch", "flat-regroup"])
    def test_rows_up_to_the_cap_are_all_returned(self, name):
        result = create_strategy(name, _cap_store(998, 2)).fetch()
        assert _shape(result) == [(1, 998, 9980), (2, 2, 20)]

    @pytest.mark.parametrize("name", ["join-fetch", "flat-regroup"])
    def test_reads_one_row_past_the_cap(self, name):
        store = sample_store()
        create_strategy(name, store).fetch()
        assert store.queries[0].page == Page(0, MAX_UNPAGED_ROWS + 1)

    def test_dropped_order_is_logged(self):
        store = _cap_store(999, 2)
        with capture_logs() as logs:
            JoinFetchStrategy(store).fetch()
        warnings = [entry for entry in logs if entry["log_level"] == "warning"]
        assert [entry["dropped_order"] for entry in warnings] == [2]


class TestSummaries:

    def test_one_query_without_lines(self):
        store = sample_store()
        result = fetch_summaries(store)
        assert store.total_calls == 1
        assert [(s.order_id, s.member_name, s.order_status, s.address) for s in result] == [
            (1, "userA", "ORDERED", Address("Seoul", "1", "1111")),
            (2, "userB", "ORDERED", Address("Busan", "2", "2222")),
        ]
        assert all(isinstance(s.order_date, datetime) for s in result)

    def test_paged(self):
        store = sample_store()
        result = fetch_summaries(store, page=Page(offset=1, limit=1))
        assert [s.member_name for s in result] == ["userB"]
        assert store.queries[0].page == Page(1, 1)

    def test_unpaged_is_capped(self):
        store = sample_store()
        fetch_summaries(store)
        assert store.queries[0].page == Page(0, MAX_UNPAGED_ROWS)

    def test_filtered(self):
        result = fetch_summaries(sample_store(), OrderSearch(member_name="B"))
        assert [s.member_name for s in result] == ["userB"]

    def test_exhausted_budget(self):
        store = sample_store()
        with pytest.raises(StoreTimeoutError):
            fetch_summaries(store, timeout=0)
        assert store.total_calls == 0
