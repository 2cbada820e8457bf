"""In-memory fakes and builders for testing.

The fake repository implements the same abstract interface as the JSON
repository but keeps everything in a dict. No file I/O, no side effects.
Stock tests use the real InMemoryStockLedger: it has no I/O either.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from wms.domain.clock import FixedClock
from wms.domain.model.approval import ApprovalThreshold
from wms.domain.model.document import Document
from wms.domain.repository.document_repository import DocumentRepository
from wms.domain.service.consumption_service import ConsumptionService
from wms.domain.service.inventory_reservation_service import InventoryReservationService
from wms.infrastructure.persistence.in_memory_stock_ledger import InMemoryStockLedger

T0 = datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)


class FakeDocumentRepository(DocumentRepository):

    def __init__(self) -> None:
        self._store: dict[int, Document] = {}
        self._next_id = 1

    def next_id(self) -> int:
        return self._next_id

    def get_by_id(self, document_id: int) -> Document | None:
        return self._store.get(document_id)

    def save(self, document: Document) -> None:
        if document.id is None:
            document.id = self._next_id
            self._next_id += 1
        self._store[document.id] = document


def D(value: str | int) -> Decimal:
    return Decimal(str(value))


def make_engine(ledger: InMemoryStockLedger | None = None, clock: FixedClock | None = None, **kwargs):
    """Return (ledger, clock, reservations, consumption) over one in-memory ledger."""
    ledger = ledger or InMemoryStockLedger(lock_timeout=2.0)
    clock = clock or FixedClock(T0)
    return (
        ledger,
        clock,
        InventoryReservationService(ledger),
        ConsumptionService(ledger, clock, **kwargs),
    )


def two_bracket_table(document_type: str = "mirv") -> list[ApprovalThreshold]:
    """A: [0, 10000] 4h, B: [10000, inf) 8h. The shared bound belongs to B."""
    return [
        ApprovalThreshold(document_type, D(0), D(10000), "A", 4),
        ApprovalThreshold(document_type, D(10000), None, "B", 8),
    ]
