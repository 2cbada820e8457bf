"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from sqlalchemy import create_engine

from wms.domain.clock import Clock, SystemClock
from wms.domain.repository.stock_ledger_repository import StockLedgerRepository
from wms.domain.service.approval_router import ApprovalRouter
from wms.domain.service.consumption_service import ConsumptionService
from wms.domain.service.inventory_reservation_service import InventoryReservationService
from wms.infrastructure.approval_config import load_thresholds
from wms.infrastructure.config import Settings, load_settings
from wms.infrastructure.persistence.json_document_repository import JsonDocumentRepository
from wms.infrastructure.persistence.json_stock_ledger import JsonStockLedger
from wms.infrastructure.persistence.sql_stock_ledger import SqlStockLedger


class Container:
    """Builds each collaborator once per CLI invocation."""

    def __init__(self, settings: Settings | None = None, clock: Clock | None = None) -> None:
        self.settings = settings or load_settings()
        self.clock = clock or SystemClock()
        self._ledger: StockLedgerRepository | None = None

    def stock_ledger(self) -> StockLedgerRepository:
        if self._ledger is None:
            timeout = self.settings.lock_timeout_seconds
            if self.settings.database_url:
                ledger = SqlStockLedger(create_engine(self.settings.database_url), lock_timeout=timeout)
                ledger.create_schema()
                self._ledger = ledger
            else:
                self._ledger = JsonStockLedger(self.settings.data_dir / "stock_ledger.json", lock_timeout=timeout)
        return self._ledger

    def document_repository(self) -> JsonDocumentRepository:
        return JsonDocumentRepository(self.settings.data_dir / "documents.json")

    def approval_router(self) -> ApprovalRouter:
        return ApprovalRouter(load_thresholds(self.settings.approval_thresholds_file))

    def reservation_service(self) -> InventoryReservationService:
        return InventoryReservationService(self.stock_ledger())

    def consumption_service(self) -> ConsumptionService:
        return ConsumptionService(self.stock_ledger(), self.clock, self.settings.shortfall_policy)
