import click

from wms.infrastructure.bootstrap import Container
from wms.infrastructure.cli.approval_commands import approval_resolve
from wms.infrastructure.cli.document_commands import (
    document_approve,
    document_cancel,
    document_create,
    document_issue,
    document_reject,
    document_show,
    document_submit,
)
from wms.infrastructure.cli.stock_commands import stock_lots, stock_receive, stock_show, stock_verify
from wms.infrastructure.config import load_settings
from wms.infrastructure.logging import setup_logging


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """WMS — warehouse stock, lot costing and document approvals"""
    try:
        settings = load_settings()
    except ValueError as exc:
        raise click.ClickException(str(exc))
    setup_logging(settings.log_level)
    ctx.obj = Container(settings)


@cli.group()
def stock() -> None:
    """Receive and inspect stock."""


@cli.group()
def document() -> None:
    """Manage stock-moving documents."""


@cli.group()
def approval() -> None:
    """Inspect approval routing."""


# Register subcommands
stock.add_command(stock_receive)
stock.add_command(stock_show)
stock.add_command(stock_lots)
stock.add_command(stock_verify)
document.add_command(document_create)
document.add_command(document_submit)
document.add_command(document_approve)
document.add_command(document_reject)
document.add_command(document_issue)
document.add_command(document_cancel)
document.add_command(document_show)
approval.add_command(approval_resolve)
