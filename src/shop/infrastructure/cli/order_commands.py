"""CLI commands for the Order aggregate."""

from __future__ import annotations

import click

from shop.application.cancel_order import CancelOrderHandler
from shop.application.create_order import CreateOrderHandler
from shop.application.dto import OrderAggregate, OrderLineSpec, SimpleOrderDTO
from shop.application.fetch_orders import STRATEGIES, fetch_summaries
from shop.application.show_order import ShowOrderHandler
from shop.domain.exceptions import DomainException
from shop.domain.query.predicate import OrderSearch
from shop.domain.query.store import Page, StoreTimeoutError
from shop.infrastructure.bootstrap import Container


def _parse_items(raw: str) -> list[OrderLineSpec]:
    """Parse '1:3,2:5' (item id : count) into OrderLineSpec list."""
    specs: list[OrderLineSpec] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ItemId:Count'."
            )
        item_str, count_str = pair.split(":", 1)
        try:
            specs.append(OrderLineSpec(item_id=int(item_str), count=int(count_str)))
        except ValueError:
            raise click.BadParameter(f"Invalid item id or count in '{pair}'.")
    return specs


def _display_order(dto: OrderAggregate) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order #{dto.order_id}  (status={dto.order_status})")
    click.echo(f"Member:   {dto.member_name}")
    click.echo(f"Ordered:  {dto.order_date:%Y-%m-%d %H:%M}")
    click.echo(f"Address:  {dto.address}")
    click.echo()
    click.echo(f"  {'Item':<20} {'Qty':>5} {'Price':>10} {'Total':>12}")
    click.echo(f"  {'-'*50}")
    for line in dto.items:
        click.echo(
            f"  {line.item_name:<20} {line.count:>5} {line.order_price:>10,} {line.total_price:>12,}"
        )
    click.echo(f"  {'-'*50}")
    click.echo(f"  {'Order Total':<27} {dto.total_price:>23,}")


@click.command("create")
@click.option("--member", "member_id", required=True, type=int, help="Ordering member ID.")
@click.option("--items", required=True, help="Lines as 'ItemId:Count,ItemId:Count'.")
@click.pass_obj
def order_create(app: Container, member_id: int, items: str) -> None:
    """Place a new order."""
    specs = _parse_items(items)

    handler = CreateOrderHandler(
        order_repo=app.order_repository(),
        member_repo=app.member_repository(),
        item_repo=app.item_repository(),
    )

    try:
        order_id = handler.handle(member_id, specs)
        dto = ShowOrderHandler(app.order_repository()).handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo("Order created.")
    _display_order(dto)


@click.command("show")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to display.")
@click.pass_obj
def order_show(app: Container, order_id: int) -> None:
    """Show details of an existing order."""
    handler = ShowOrderHandler(order_repo=app.order_repository())

    try:
        dto = handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(dto)


@click.command("cancel")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to cancel.")
@click.pass_obj
def order_cancel(app: Container, order_id: int) -> None:
    """Cancel an order (returns its items to stock)."""
    handler = CancelOrderHandler(order_repo=app.order_repository())

    try:
        handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order #{order_id} cancelled.")


def _display_summaries(summaries: list[SimpleOrderDTO]) -> None:
    click.echo(f"{'ID':<6} {'Member':<12} {'Ordered':<17} {'Status':<10} {'Address'}")
    click.echo("-" * 70)
    for s in summaries:
        click.echo(
            f"{s.order_id:<6} {s.member_name:<12} {s.order_date:%Y-%m-%d %H:%M}"
            f" {s.order_status:<10} {s.address}"
        )


@click.command("list")
@click.option(
    "--strategy",
    type=click.Choice(sorted(STRATEGIES)),
    default=None,
    help="Fetch strategy (defaults to SHOP_FETCH_STRATEGY).",
)
@click.option("--summary", is_flag=True, help="Show buyer, date, status and address only, without lines.")
@click.option("--status", default=None, help="Only orders in this status (ORDERED, CANCELLED).")
@click.option("--name", "member_name", default=None, help="Only orders whose member name contains this.")
@click.option("--offset", type=int, default=None, help="Orders to skip.")
@click.option("--limit", type=int, default=None, help="Maximum orders to return.")
@click.option("--timeout", type=float, default=None, help="Seconds before the fetch is aborted.")
@click.pass_obj
def order_list(
    app: Container,
    strategy: str | None,
    summary: bool,
    status: str | None,
    member_name: str | None,
    offset: int | None,
    limit: int | None,
    timeout: float | None,
) -> None:
    """List orders, with their lines unless --summary is given."""
    if summary and strategy is not None:
        raise click.UsageError("--summary reads no lines and takes no --strategy.")

    if timeout is None:
        timeout = app.settings.query_timeout
    try:
        search = OrderSearch.of(status=status, member_name=member_name)
        page = None
        if offset is not None or limit is not None:
            page = Page(offset=offset or 0, limit=limit if limit is not None else 100)

        if summary:
            summaries = fetch_summaries(app.store(), search, page, timeout=timeout)
            aggregates = []
        else:
            summaries = []
            aggregates = app.fetch_strategy(strategy).fetch(search, page, timeout=timeout)
    except (DomainException, StoreTimeoutError) as exc:
        raise click.ClickException(str(exc))

    if not summaries and not aggregates:
        click.echo("No orders found.")
        return

    if summaries:
        _display_summaries(summaries)

    for index, dto in enumerate(aggregates):
        if index:
            click.echo()
        _display_order(dto)
