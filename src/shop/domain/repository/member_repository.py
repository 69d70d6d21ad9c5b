"""Abstract repository for Member aggregate.

Defined in the domain layer so the domain never depends on
infrastructure. Concrete implementations live in the infrastructure layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from shop.domain.model.member import Member


class MemberRepository(ABC):

    @abstractmethod
    def get_by_id(self, member_id: int) -> Member | None:
        """Return a member by its ID, or None if not found."""

    @abstractmethod
    def find_by_name(self, name: str) -> list[Member]:
        """Return every member with exactly this name."""

    @abstractmethod
    def list_all(self) -> list[Member]:
        """Return every member."""

    @abstractmethod
    def save(self, member: Member) -> None:
        """Persist a new or updated member."""
