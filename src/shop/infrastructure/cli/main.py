import click

from shop.domain.exceptions import DomainException
from shop.infrastructure.bootstrap import Container, container
from shop.infrastructure.cli.item_commands import item_add, item_list
from shop.infrastructure.cli.member_commands import (
    member_join,
    member_list,
    member_update,
)
from shop.infrastructure.cli.order_commands import (
    order_cancel,
    order_create,
    order_list,
    order_show,
)
from shop.infrastructure.logging import configure_logging
from shop.infrastructure.persistence.sample_data import seed_sample_data


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Shop: orders, members and catalog items"""
    if ctx.obj is None:
        try:
            ctx.obj = container()
        except ValueError as exc:
            raise click.ClickException(str(exc))
    ctx.call_on_close(ctx.obj.close)


@cli.group()
def order() -> None:
    """Manage and list orders."""


@cli.group()
def member() -> None:
    """Manage members."""


@cli.group()
def item() -> None:
    """Manage catalog items."""


@cli.group()
def db() -> None:
    """Database utilities."""


@click.command("init")
@click.pass_obj
def db_init(app: Container) -> None:
    """Create the schema (idempotent)."""
    app.connection  # connecting creates any missing tables
    click.echo(f"Database ready at {app.settings.database}")


@click.command("seed")
@click.pass_obj
def db_seed(app: Container) -> None:
    """Insert the two sample orders (userA, userB)."""
    try:
        order_ids = seed_sample_data(
            app.member_repository(), app.item_repository(), app.order_repository()
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Seeded orders {', '.join(f'#{i}' for i in order_ids)}")


# Register subcommands
order.add_command(order_cancel)
order.add_command(order_create)
order.add_command(order_list)
order.add_command(order_show)
member.add_command(member_join)
member.add_command(member_list)
member.add_command(member_update)
item.add_command(item_add)
item.add_command(item_list)
db.add_command(db_init)
db.add_command(db_seed)


def main() -> None:
    configure_logging()
    cli()
