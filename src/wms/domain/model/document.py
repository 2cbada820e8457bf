"""Document aggregate — a stock-moving request (MIRV, stock transfer, ...).

The document owns its lines and, through them, the reservation claims it
holds against the ledger. It never touches the ledger itself; the
application handlers coordinate the two.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from wms.domain.exceptions import ValidationError
from wms.domain.model.document_status import DocumentStatus, ReservationStatus
from wms.domain.model.stock_level import StockKey
from wms.domain.model.value_objects import ZERO, check_scale
from wms.domain.service.document_state_machine import TRANSITIONS, assert_transition


@dataclass
class DocumentLine:
    """One requested item.

    ``qty_reserved`` is the line's reservation claim: exactly what it
    currently holds against the ledger's reserved counter, so a release
    can give back the right amount even after a partial failure.
    """

    line_id: str
    item_id: str
    qty_requested: Decimal
    estimated_unit_cost: Decimal = ZERO
    qty_reserved: Decimal = ZERO
    qty_issued: Decimal = ZERO
    issued_cost: Decimal = ZERO

    @property
    def line_value(self) -> Decimal:
        return self.qty_requested * self.estimated_unit_cost

    @property
    def remaining_quantity(self) -> Decimal:
        return self.qty_requested - self.qty_issued

    @property
    def is_fully_issued(self) -> bool:
        return self.remaining_quantity <= ZERO

    @property
    def issued_unit_cost(self) -> Decimal:
        if self.qty_issued <= ZERO:
            return ZERO
        return self.issued_cost / self.qty_issued

    def record_reservation(self, qty: Decimal) -> None:
        if qty > self.remaining_quantity - self.qty_reserved:
            raise ValidationError(
                f"Cannot reserve {qty} on line {self.line_id} "
                f"— only {self.remaining_quantity - self.qty_reserved} unclaimed"
            )
        self.qty_reserved += qty

    def record_issue(self, qty: Decimal, total_cost: Decimal) -> None:
        """Record a consumption against this line's claim."""
        if qty <= ZERO:
            raise ValidationError("Issue quantity must be positive")
        if qty > self.remaining_quantity:
            raise ValidationError(
                f"Cannot issue {qty} on line {self.line_id} "
                f"— only {self.remaining_quantity} remaining"
            )
        self.qty_issued += qty
        self.issued_cost += total_cost
        self.qty_reserved = max(ZERO, self.qty_reserved - qty)

    def clear_claim(self) -> Decimal:
        """Drop the claim; returns how much was held."""
        held = self.qty_reserved
        self.qty_reserved = ZERO
        return held


MAX_LINES = 200


@dataclass
class Document:
    """Aggregate root for stock-moving documents.

    Use ``Document.create()`` for new documents. ``__init__`` stays plain
    so repositories can rebuild persisted documents without re-validating.
    """

    id: int | None
    document_type: str
    warehouse_id: str
    lines: list[DocumentLine]
    created_at: datetime
    status: DocumentStatus = DocumentStatus.DRAFT
    reservation_status: ReservationStatus = ReservationStatus.NONE
    approver_role: str | None = None
    sla_due_at: datetime | None = None
    rejection_reason: str | None = None

    # --- Factory --------------------------------------------------------------

    @staticmethod
    def create(
        document_type: str,
        warehouse_id: str,
        lines: list[tuple[str, Decimal, Decimal]],
        created_at: datetime,
    ) -> Document:
        """Create a draft from ``(item_id, qty, estimated_unit_cost)`` tuples."""
        if document_type not in TRANSITIONS:
            raise ValidationError(f"Unknown document type '{document_type}'")
        if not warehouse_id or not warehouse_id.strip():
            raise ValidationError("Warehouse is required")
        if not lines:
            raise ValidationError("Document must contain at least one line")
        if len(lines) > MAX_LINES:
            raise ValidationError(f"Maximum {MAX_LINES} lines per document")

        doc_lines: list[DocumentLine] = []
        for item_id, qty, cost in lines:
            if not item_id or not item_id.strip():
                raise ValidationError("Item is required on every line")
            if qty <= ZERO:
                raise ValidationError(f"Quantity for '{item_id}' must be positive")
            check_scale(qty, f"quantity for '{item_id}'")
            if cost < ZERO:
                raise ValidationError(f"Estimated cost for '{item_id}' cannot be negative")
            doc_lines.append(
                DocumentLine(
                    line_id=uuid4().hex[:12],
                    item_id=item_id.strip(),
                    qty_requested=qty,
                    estimated_unit_cost=cost,
                )
            )
        return Document(
            id=None,
            document_type=document_type,
            warehouse_id=warehouse_id.strip(),
            lines=doc_lines,
            created_at=created_at,
        )

    # --- State transitions ----------------------------------------------------

    def transition_to(self, target: DocumentStatus) -> None:
        assert_transition(self.document_type, self.status, target)
        self.status = target

    def submit(self, approver_role: str, sla_due_at: datetime) -> None:
        self.transition_to(DocumentStatus.PENDING_APPROVAL)
        self.approver_role = approver_role
        self.sla_due_at = sla_due_at

    def reject(self, reason: str | None = None) -> None:
        self.transition_to(DocumentStatus.REJECTED)
        self.rejection_reason = reason or "Rejected"

    def refresh_reservation_status(self) -> None:
        open_lines = [line for line in self.lines if not line.is_fully_issued]
        if not open_lines:
            self.reservation_status = ReservationStatus.RELEASED
        elif all(line.qty_reserved >= line.remaining_quantity for line in open_lines):
            self.reservation_status = ReservationStatus.RESERVED
        elif any(line.qty_reserved > ZERO for line in open_lines):
            self.reservation_status = ReservationStatus.PARTIAL
        else:
            self.reservation_status = ReservationStatus.NONE

    # --- Computed properties --------------------------------------------------

    @property
    def amount(self) -> Decimal:
        return sum((line.line_value for line in self.lines), ZERO)

    @property
    def is_fully_issued(self) -> bool:
        return all(line.is_fully_issued for line in self.lines)

    @property
    def total_issued_cost(self) -> Decimal:
        return sum((line.issued_cost for line in self.lines), ZERO)

    def stock_key(self, line: DocumentLine) -> StockKey:
        return StockKey(line.item_id, self.warehouse_id)

    def is_sla_breached(self, now: datetime) -> bool:
        """True while awaiting approval past the SLA deadline."""
        return (
            self.status == DocumentStatus.PENDING_APPROVAL
            and self.sla_due_at is not None
            and now > self.sla_due_at
        )

    def find_line(self, line_id: str) -> DocumentLine:
        for line in self.lines:
            if line.line_id == line_id:
                return line
        raise ValidationError(f"Line '{line_id}' not found on this document")
