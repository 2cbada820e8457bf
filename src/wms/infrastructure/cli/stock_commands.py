"""CLI commands for the stock ledger and lot store."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

import click

from wms.application.receive_stock import ReceiveStockHandler
from wms.application.show_stock import ShowLotsHandler, ShowStockHandler, VerifyLedgerHandler
from wms.domain.exceptions import DomainException
from wms.infrastructure.bootstrap import Container


def parse_decimal(raw: str, label: str) -> Decimal:
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise click.BadParameter(f"Invalid {label} '{raw}'.") from exc


@click.command("receive")
@click.option("--item", required=True, help="Item code.")
@click.option("--warehouse", required=True, help="Warehouse code.")
@click.option("--qty", required=True, help="Quantity received.")
@click.option("--unit-cost", required=True, help="Unit cost of this receipt.")
@click.option("--expiry", type=click.DateTime(formats=["%Y-%m-%d"]), default=None, help="Expiry date (YYYY-MM-DD).")
@click.option("--line", "line_id", default=None, help="Receipt line this lot comes from.")
@click.pass_obj
def stock_receive(
    container: Container,
    item: str,
    warehouse: str,
    qty: str,
    unit_cost: str,
    expiry: datetime | None,
    line_id: str | None,
) -> None:
    """Receive stock into a warehouse as a new lot."""
    handler = ReceiveStockHandler(consumption_service=container.consumption_service())

    try:
        lot = handler.handle(
            item_id=item,
            warehouse_id=warehouse,
            quantity=parse_decimal(qty, "quantity"),
            unit_cost=parse_decimal(unit_cost, "unit cost"),
            expiry_at=expiry.replace(tzinfo=timezone.utc) if expiry else None,
            provenance_line_id=line_id,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Lot #{lot.lot_id} received: {lot.qty_received} x {lot.item_id} "
        f"@ {lot.unit_cost} into {lot.warehouse_id}"
    )


@click.command("show")
@click.pass_obj
def stock_show(container: Container) -> None:
    """Show stock levels."""
    handler = ShowStockHandler(ledger=container.stock_ledger())
    levels = handler.handle()

    if not levels:
        click.echo("No stock records found.")
        return

    click.echo(f"{'Item':<16} {'Warehouse':<12} {'On hand':>10} {'Reserved':>10} {'Available':>10}")
    click.echo("-" * 62)
    for level in levels:
        click.echo(
            f"{level.item_id:<16} {level.warehouse_id:<12} "
            f"{level.on_hand:>10} {level.reserved:>10} {level.available:>10}"
        )


@click.command("lots")
@click.option("--item", required=True, help="Item code.")
@click.option("--warehouse", required=True, help="Warehouse code.")
@click.pass_obj
def stock_lots(container: Container, item: str, warehouse: str) -> None:
    """Show the lots of one item in one warehouse."""
    handler = ShowLotsHandler(ledger=container.stock_ledger())
    lots = handler.handle(item_id=item, warehouse_id=warehouse)

    if not lots:
        click.echo(f"No lots for {item} in {warehouse}.")
        return

    click.echo(f"  {'Lot':>5} {'Received':>10} {'Available':>10} {'Cost':>10}  {'Received at':<20} {'Expires':<20}")
    click.echo(f"  {'-'*80}")
    for lot in lots:
        click.echo(
            f"  {lot.lot_id:>5} {lot.qty_received:>10} {lot.qty_available:>10} {lot.unit_cost:>10}  "
            f"{lot.received_at:<20} {lot.expiry_at or '-':<20}"
        )


@click.command("verify")
@click.pass_obj
def stock_verify(container: Container) -> None:
    """Check the ledger invariants; exits 1 on any violation."""
    handler = VerifyLedgerHandler(ledger=container.stock_ledger())
    violations = handler.handle()

    if not violations:
        click.echo("Ledger OK.")
        return

    for violation in violations:
        click.echo(f"{violation.key}: {violation.message}")
    raise click.ClickException(f"{len(violations)} ledger invariant violation(s)")
