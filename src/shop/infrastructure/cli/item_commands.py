"""CLI commands for the Item catalog."""

from __future__ import annotations

import click

from shop.application.add_item import AddItemHandler
from shop.domain.exceptions import DomainException
from shop.infrastructure.bootstrap import Container


@click.command("add")
@click.option("--name", required=True, help="Item name.")
@click.option("--price", required=True, type=int, help="Unit price.")
@click.option("--stock", required=True, type=int, help="Units in stock.")
@click.pass_obj
def item_add(app: Container, name: str, price: int, stock: int) -> None:
    """Add a new item to the catalog."""
    handler = AddItemHandler(item_repo=app.item_repository())

    try:
        item = handler.handle(name=name, price=price, stock_quantity=stock)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Item #{item.id} '{item.name}' added at {item.price:,} ({item.stock_quantity} in stock)")


@click.command("list")
@click.pass_obj
def item_list(app: Container) -> None:
    """List all items in the catalog."""
    items = app.item_repository().list_all()

    if not items:
        click.echo("No items found.")
        return

    click.echo(f"{'ID':<6} {'Name':<20} {'Price':>10} {'Stock':>8}")
    click.echo("-" * 47)
    for i in items:
        click.echo(f"{i.id:<6} {i.name:<20} {i.price:>10,} {i.stock_quantity:>8}")
