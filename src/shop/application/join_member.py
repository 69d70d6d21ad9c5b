"""Application services: Join, List and Update Member use cases."""

from __future__ import annotations

from shop.application.dto import MemberDTO
from shop.domain.exceptions import EntityNotFoundError, ValidationError
from shop.domain.model.member import Member
from shop.domain.model.value_objects import Address
from shop.domain.repository.member_repository import MemberRepository


class JoinMemberHandler:

    def __init__(self, member_repo: MemberRepository) -> None:
        self._member_repo = member_repo

    def handle(self, name: str, city: str, street: str, zipcode: str) -> int:
        """Register a member and return the new id. Names must be unique."""
        member = Member.create(name, Address(city=city, street=street, zipcode=zipcode))

        if self._member_repo.find_by_name(member.name):
            raise ValidationError(f"Member '{member.name}' already exists")

        self._member_repo.save(member)
        return member.id  # type: ignore[return-value]


class ListMembersHandler:

    def __init__(self, member_repo: MemberRepository) -> None:
        self._member_repo = member_repo

    def handle(self) -> list[MemberDTO]:
        return [
            MemberDTO(id=m.id, name=m.name, address=str(m.address))  # type: ignore[arg-type]
            for m in self._member_repo.list_all()
        ]


class UpdateMemberHandler:

    def __init__(self, member_repo: MemberRepository) -> None:
        self._member_repo = member_repo

    def handle(self, member_id: int, name: str) -> MemberDTO:
        """Rename a member; the new name must not belong to another member."""
        member = self._member_repo.get_by_id(member_id)
        if member is None:
            raise EntityNotFoundError(f"Member #{member_id} not found")

        taken = self._member_repo.find_by_name(name.strip()) if name else []
        if any(other.id != member_id for other in taken):
            raise ValidationError(f"Member '{name.strip()}' already exists")

        member.rename(name)
        self._member_repo.save(member)
        return MemberDTO(id=member_id, name=member.name, address=str(member.address))
