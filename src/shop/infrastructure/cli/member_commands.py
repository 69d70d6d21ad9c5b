"""CLI commands for the Member aggregate."""

from __future__ import annotations

import click

from shop.application.join_member import (
    JoinMemberHandler,
    ListMembersHandler,
    UpdateMemberHandler,
)
from shop.domain.exceptions import DomainException
from shop.infrastructure.bootstrap import Container


@click.command("join")
@click.option("--name", required=True, help="Member name (unique).")
@click.option("--city", required=True, help="City.")
@click.option("--street", required=True, help="Street.")
@click.option("--zipcode", required=True, help="Zipcode.")
@click.pass_obj
def member_join(app: Container, name: str, city: str, street: str, zipcode: str) -> None:
    """Register a new member."""
    handler = JoinMemberHandler(member_repo=app.member_repository())

    try:
        member_id = handler.handle(name=name, city=city, street=street, zipcode=zipcode)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Member #{member_id} '{name.strip()}' joined")


@click.command("list")
@click.pass_obj
def member_list(app: Container) -> None:
    """List all members."""
    members = ListMembersHandler(member_repo=app.member_repository()).handle()

    if not members:
        click.echo("No members found.")
        return

    click.echo(f"{'ID':<6} {'Name':<20} {'Address'}")
    click.echo("-" * 50)
    for m in members:
        click.echo(f"{m.id:<6} {m.name:<20} {m.address}")


@click.command("update")
@click.option("--id", "member_id", required=True, type=int, help="Member ID to rename.")
@click.option("--name", required=True, help="New member name (unique).")
@click.pass_obj
def member_update(app: Container, member_id: int, name: str) -> None:
    """Rename an existing member."""
    handler = UpdateMemberHandler(member_repo=app.member_repository())

    try:
        member = handler.handle(member_id=member_id, name=name)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Member #{member.id} renamed to '{member.name}'")
