"""Member aggregate.

Members live independently of orders; an order only references the
member who placed it.
"""

from __future__ import annotations

from dataclasses import dataclass

from shop.domain.exceptions import ValidationError
from shop.domain.model.value_objects import Address


@dataclass
class Member:

    id: int | None
    name: str
    address: Address

    @staticmethod
    def create(name: str, address: Address) -> Member:
        if not name or not name.strip():
            raise ValidationError("Member name is required")
        return Member(id=None, name=name.strip(), address=address)

    def rename(self, name: str) -> None:
        if not name or not name.strip():
            raise ValidationError("Member name is required")
        self.name = name.strip()
