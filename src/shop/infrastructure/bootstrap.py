"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions. One ``Container`` is one
request-scoped session: a single SQLite connection shared by the store
and the repositories.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from functools import cached_property

from shop.application.fetch_orders import OrderFetchStrategy, create_strategy
from shop.infrastructure.config import Settings, load_settings
from shop.infrastructure.persistence.database import connect
from shop.infrastructure.persistence.sqlite_item_repository import SqliteItemRepository
from shop.infrastructure.persistence.sqlite_member_repository import (
    SqliteMemberRepository,
)
from shop.infrastructure.persistence.sqlite_order_repository import (
    SqliteOrderRepository,
)
from shop.infrastructure.persistence.sqlite_store import SqliteStore


@dataclass
class Container:
    settings: Settings

    @cached_property
    def connection(self) -> sqlite3.Connection:
        return connect(self.settings.database)

    def store(self) -> SqliteStore:
        return SqliteStore(self.connection)

    def order_repository(self) -> SqliteOrderRepository:
        return SqliteOrderRepository(self.connection)

    def member_repository(self) -> SqliteMemberRepository:
        return SqliteMemberRepository(self.connection)

    def item_repository(self) -> SqliteItemRepository:
        return SqliteItemRepository(self.connection)

    def fetch_strategy(self, name: str | None = None) -> OrderFetchStrategy:
        return create_strategy(
            name or self.settings.fetch_strategy,
            self.store(),
            batch_size=self.settings.batch_size,
        )

    def close(self) -> None:
        conn = self.__dict__.pop("connection", None)
        if conn is not None:
            conn.close()


def container(settings: Settings | None = None) -> Container:
    return Container(settings or load_settings())
