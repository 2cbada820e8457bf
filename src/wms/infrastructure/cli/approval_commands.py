"""CLI commands for approval routing."""

from __future__ import annotations

import click

from wms.application.resolve_approval import ResolveApprovalHandler
from wms.domain.exceptions import DomainException
from wms.infrastructure.bootstrap import Container
from wms.infrastructure.cli.stock_commands import parse_decimal


@click.command("resolve")
@click.option("--type", "document_type", required=True, help="Document type, e.g. mirv.")
@click.option("--amount", required=True, help="Document amount.")
@click.pass_obj
def approval_resolve(container: Container, document_type: str, amount: str) -> None:
    """Show who must approve a document of this type and amount."""
    try:
        handler = ResolveApprovalHandler(
            approval_router=container.approval_router(),
            clock=container.clock,
        )
        route = handler.handle(document_type, parse_decimal(amount, "amount"))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"{route.document_type} @ {route.amount}: {route.approver_role} ({route.sla_hours}h SLA)")
    click.echo(f"Due if submitted now: {route.sla_due_at}")
