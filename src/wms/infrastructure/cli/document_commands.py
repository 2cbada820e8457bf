"""CLI commands for the Document aggregate."""

from __future__ import annotations

from decimal import Decimal

import click

from wms.application.approve_document import ApproveDocumentHandler
from wms.application.cancel_document import CancelDocumentHandler
from wms.application.create_document import CreateDocumentHandler
from wms.application.dto import DocumentDTO, DocumentLineSpec
from wms.application.issue_document import IssueDocumentHandler
from wms.application.show_document import ShowDocumentHandler
from wms.application.submit_document import SubmitDocumentHandler
from wms.domain.exceptions import DomainException
from wms.infrastructure.bootstrap import Container
from wms.infrastructure.cli.stock_commands import parse_decimal


def _parse_lines(raw: str) -> list[DocumentLineSpec]:
    """Parse 'CEMENT:10@5.5,REBAR:3' into DocumentLineSpec list (cost defaults to 0)."""
    specs: list[DocumentLineSpec] = []
    for entry in raw.split(","):
        entry = entry.strip()
        if ":" not in entry:
            raise click.BadParameter(
                f"Invalid line format '{entry}'. Expected 'Item:Qty@Cost'."
            )
        item, rest = entry.rsplit(":", 1)
        qty_str, _, cost_str = rest.partition("@")
        specs.append(
            DocumentLineSpec(
                item_id=item.strip(),
                quantity=parse_decimal(qty_str.strip(), f"quantity for '{item.strip()}'"),
                estimated_unit_cost=parse_decimal(cost_str.strip() or "0", f"cost for '{item.strip()}'"),
            )
        )
    return specs


def _parse_issue_lines(raw: str) -> dict[str, Decimal]:
    """Parse 'a1b2c3:4,d4e5f6:2' into {line_id: qty}."""
    result: dict[str, Decimal] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if ":" not in entry:
            raise click.BadParameter(
                f"Invalid line format '{entry}'. Expected 'LineId:Qty'."
            )
        line_id, qty_str = entry.rsplit(":", 1)
        result[line_id.strip()] = parse_decimal(qty_str.strip(), f"quantity for line '{line_id}'")
    return result


def _display_document(dto: DocumentDTO) -> None:
    """Shared formatting for displaying a document."""
    click.echo(f"{dto.document_type.upper()} #{dto.id}  (status={dto.status}, reservation={dto.reservation_status})")
    click.echo(f"Warehouse: {dto.warehouse_id}")
    click.echo(f"Created:   {dto.created_at}")
    if dto.approver_role:
        breached = "  [SLA BREACHED]" if dto.sla_breached else ""
        click.echo(f"Approver:  {dto.approver_role}, due {dto.sla_due_at}{breached}")
    if dto.rejection_reason:
        click.echo(f"Rejected:  {dto.rejection_reason}")
    click.echo()

    click.echo(
        f"  {'Line':<12} {'Item':<16} {'Qty':>8} {'Reserved':>9} {'Issued':>8} {'Est. cost':>10} {'Cost':>10}"
    )
    click.echo(f"  {'-'*79}")
    for line in dto.lines:
        click.echo(
            f"  {line.line_id:<12} {line.item_id:<16} {line.qty_requested:>8} "
            f"{line.qty_reserved:>9} {line.qty_issued:>8} "
            f"{line.estimated_unit_cost:>10} {line.issued_unit_cost:>10}"
        )
    click.echo(f"  {'-'*79}")
    click.echo(f"  {'Amount':<27} {dto.amount:>20}")
    if dto.has_issues:
        click.echo(f"  {'Issued cost':<27} {dto.total_issued_cost:>20}")


@click.command("create")
@click.option("--type", "document_type", required=True, help="Document type (mirv, mi, stock_transfer).")
@click.option("--warehouse", required=True, help="Warehouse code.")
@click.option("--lines", required=True, help="Lines as 'Item:Qty@Cost,Item:Qty@Cost'.")
@click.pass_obj
def document_create(container: Container, document_type: str, warehouse: str, lines: str) -> None:
    """Create a new draft document."""
    specs = _parse_lines(lines)

    handler = CreateDocumentHandler(document_repo=container.document_repository(), clock=container.clock)

    try:
        dto = handler.handle(document_type=document_type, warehouse_id=warehouse, line_specs=specs)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Document #{dto.id} created  (status={dto.status})")
    _display_document(dto)


@click.command("submit")
@click.option("--id", "document_id", required=True, type=int, help="Document ID to submit.")
@click.pass_obj
def document_submit(container: Container, document_id: int) -> None:
    """Submit a draft for approval (routes it by amount)."""
    try:
        handler = SubmitDocumentHandler(
            document_repo=container.document_repository(),
            approval_router=container.approval_router(),
            clock=container.clock,
        )
        dto = handler.handle(document_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Document #{document_id} submitted — awaiting {dto.approver_role} by {dto.sla_due_at}.")


@click.command("approve")
@click.option("--id", "document_id", required=True, type=int, help="Document ID to approve.")
@click.pass_obj
def document_approve(container: Container, document_id: int) -> None:
    """Approve a pending document (reserves stock)."""
    handler = ApproveDocumentHandler(
        document_repo=container.document_repository(),
        reservation_service=container.reservation_service(),
        policy=container.settings.reservation_policy,
    )

    try:
        outcome = handler.approve(document_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Document #{document_id} approved — stock {outcome.reservation_status}.")
    if outcome.failed_line_ids:
        click.echo(f"Not reserved: {', '.join(outcome.failed_line_ids)}")


@click.command("reject")
@click.option("--id", "document_id", required=True, type=int, help="Document ID to reject.")
@click.option("--reason", default=None, help="Why the document is rejected.")
@click.pass_obj
def document_reject(container: Container, document_id: int, reason: str | None) -> None:
    """Reject a pending document."""
    handler = ApproveDocumentHandler(
        document_repo=container.document_repository(),
        reservation_service=container.reservation_service(),
    )

    try:
        dto = handler.reject(document_id, reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Document #{document_id} rejected: {dto.rejection_reason}")


@click.command("issue")
@click.option("--id", "document_id", required=True, type=int, help="Document ID to issue.")
@click.option("--lines", "lines_str", default=None, help="Partial issue as 'LineId:Qty,LineId:Qty'.")
@click.pass_obj
def document_issue(container: Container, document_id: int, lines_str: str | None) -> None:
    """Issue reserved stock (consumes lots, records cost).

    Without --lines: issues every reserved quantity.
    With --lines: issues only the given quantities.
    """
    quantities = _parse_issue_lines(lines_str) if lines_str else None

    handler = IssueDocumentHandler(
        document_repo=container.document_repository(),
        consumption_service=container.consumption_service(),
    )

    try:
        outcome = handler.handle(document_id, quantities=quantities)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Document #{document_id} {outcome.status}.")
    for line in outcome.lines:
        click.echo(
            f"  {line.line_id:<12} {line.item_id:<16} {line.qty_issued:>8} @ {line.unit_cost:>10} = {line.total_cost:>10}"
        )


@click.command("cancel")
@click.option("--id", "document_id", required=True, type=int, help="Document ID to cancel.")
@click.pass_obj
def document_cancel(container: Container, document_id: int) -> None:
    """Cancel a document (releases reserved stock)."""
    handler = CancelDocumentHandler(
        document_repo=container.document_repository(),
        reservation_service=container.reservation_service(),
    )

    try:
        handler.handle(document_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Document #{document_id} cancelled.")


@click.command("show")
@click.option("--id", "document_id", required=True, type=int, help="Document ID to display.")
@click.pass_obj
def document_show(container: Container, document_id: int) -> None:
    """Show details of an existing document."""
    handler = ShowDocumentHandler(document_repo=container.document_repository(), clock=container.clock)

    try:
        dto = handler.handle(document_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_document(dto)
