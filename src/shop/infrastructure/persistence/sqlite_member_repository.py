"""SQLite-backed implementation of MemberRepository."""

from __future__ import annotations

import sqlite3

from shop.domain.model.member import Member
from shop.domain.model.value_objects import Address
from shop.domain.repository.member_repository import MemberRepository


class SqliteMemberRepository(MemberRepository):

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # --- MemberRepository interface -------------------------------------------

    def get_by_id(self, member_id: int) -> Member | None:
        row = self._conn.execute("SELECT * FROM member WHERE id = ?", (member_id,)).fetchone()
        return self._to_domain(row) if row else None

    def find_by_name(self, name: str) -> list[Member]:
        rows = self._conn.execute("SELECT * FROM member WHERE name = ? ORDER BY id", (name,))
        return [self._to_domain(row) for row in rows]

    def list_all(self) -> list[Member]:
        return [self._to_domain(row) for row in self._conn.execute("SELECT * FROM member ORDER BY id")]

    def save(self, member: Member) -> None:
        values = (member.name, member.address.city, member.address.street, member.address.zipcode)
        with self._conn:
            if member.id is None:
                cursor = self._conn.execute(
                    "INSERT INTO member (name, city, street, zipcode) VALUES (?, ?, ?, ?)", values
                )
                member.id = cursor.lastrowid
            else:
                self._conn.execute(
                    "UPDATE member SET name = ?, city = ?, street = ?, zipcode = ? WHERE id = ?",
                    (*values, member.id),
                )

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> Member:
        return Member(
            id=row["id"],
            name=row["name"],
            address=Address(city=row["city"], street=row["street"], zipcode=row["zipcode"]),
        )
