"""Data Transfer Objects — plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world. Quantities and money
are pre-formatted strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from wms.domain.model.document import Document
from wms.domain.model.lot import Lot
from wms.domain.model.value_objects import Money


def qty_text(value: Decimal) -> str:
    """'10.0000' -> '10', '2.50' -> '2.5'."""
    return format(value.normalize(), "f")


def money_text(value: Decimal) -> str:
    return str(Money(value))


def time_text(value: datetime | None) -> str | None:
    return value.strftime("%Y-%m-%d %H:%M UTC") if value is not None else None


@dataclass(frozen=True)
class DocumentLineSpec:
    """Input: one requested item (quantity + estimated unit cost)."""

    item_id: str
    quantity: Decimal
    estimated_unit_cost: Decimal


@dataclass(frozen=True)
class DocumentLineDTO:
    line_id: str
    item_id: str
    qty_requested: str
    qty_reserved: str
    qty_issued: str
    remaining: str
    estimated_unit_cost: str
    issued_unit_cost: str


@dataclass(frozen=True)
class DocumentDTO:
    """Output: a complete document as displayed to the user."""

    id: int
    document_type: str
    warehouse_id: str
    status: str
    reservation_status: str
    approver_role: str | None
    sla_due_at: str | None
    sla_breached: bool
    rejection_reason: str | None
    amount: str
    total_issued_cost: str
    lines: list[DocumentLineDTO]
    created_at: str

    @property
    def has_issues(self) -> bool:
        return any(Decimal(line.qty_issued) > 0 for line in self.lines)


def to_document_dto(document: Document, now: datetime | None = None) -> DocumentDTO:
    return DocumentDTO(
        id=document.id,  # type: ignore[arg-type]
        document_type=document.document_type,
        warehouse_id=document.warehouse_id,
        status=document.status.value,
        reservation_status=document.reservation_status.value,
        approver_role=document.approver_role,
        sla_due_at=time_text(document.sla_due_at),
        sla_breached=now is not None and document.is_sla_breached(now),
        rejection_reason=document.rejection_reason,
        amount=money_text(document.amount),
        total_issued_cost=money_text(document.total_issued_cost),
        lines=[
            DocumentLineDTO(
                line_id=line.line_id,
                item_id=line.item_id,
                qty_requested=qty_text(line.qty_requested),
                qty_reserved=qty_text(line.qty_reserved),
                qty_issued=qty_text(line.qty_issued),
                remaining=qty_text(line.remaining_quantity),
                estimated_unit_cost=money_text(line.estimated_unit_cost),
                issued_unit_cost=money_text(line.issued_unit_cost),
            )
            for line in document.lines
        ],
        created_at=time_text(document.created_at),  # type: ignore[arg-type]
    )


@dataclass(frozen=True)
class ApprovalOutcomeDTO:
    document_id: int
    status: str
    reservation_status: str
    reserved_line_ids: list[str]
    failed_line_ids: list[str]


@dataclass(frozen=True)
class IssuedLineDTO:
    line_id: str
    item_id: str
    qty_issued: str
    unit_cost: str
    total_cost: str
    shortfall: str


@dataclass(frozen=True)
class IssueOutcomeDTO:
    document_id: int
    status: str
    lines: list[IssuedLineDTO]


@dataclass(frozen=True)
class LotDTO:
    lot_id: int
    item_id: str
    warehouse_id: str
    qty_received: str
    qty_available: str
    unit_cost: str
    received_at: str
    expiry_at: str | None
    provenance_line_id: str | None


def to_lot_dto(lot: Lot) -> LotDTO:
    return LotDTO(
        lot_id=lot.id,  # type: ignore[arg-type]
        item_id=lot.item_id,
        warehouse_id=lot.warehouse_id,
        qty_received=qty_text(lot.qty_received),
        qty_available=qty_text(lot.qty_available),
        unit_cost=money_text(lot.unit_cost),
        received_at=time_text(lot.received_at),  # type: ignore[arg-type]
        expiry_at=time_text(lot.expiry_at),
        provenance_line_id=lot.provenance_line_id,
    )


@dataclass(frozen=True)
class StockLevelDTO:
    item_id: str
    warehouse_id: str
    on_hand: str
    reserved: str
    available: str


@dataclass(frozen=True)
class ApprovalRouteDTO:
    document_type: str
    amount: str
    approver_role: str
    sla_hours: int
    sla_due_at: str
