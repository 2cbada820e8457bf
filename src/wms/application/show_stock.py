"""Application services: stock queries (levels, lots, ledger audit)."""

from __future__ import annotations

from dataclasses import dataclass

from wms.application.dto import LotDTO, StockLevelDTO, qty_text, to_lot_dto
from wms.domain.model.stock_level import StockKey
from wms.domain.repository.stock_ledger_repository import StockLedgerRepository
from wms.domain.service.ledger_audit import verify_ledger


@dataclass(frozen=True)
class ViolationDTO:
    key: str
    message: str


class ShowStockHandler:

    def __init__(self, ledger: StockLedgerRepository) -> None:
        self._ledger = ledger

    def handle(self) -> list[StockLevelDTO]:
        return [
            StockLevelDTO(
                item_id=level.item_id,
                warehouse_id=level.warehouse_id,
                on_hand=qty_text(level.qty_on_hand),
                reserved=qty_text(level.qty_reserved),
                available=qty_text(level.available),
            )
            for level in self._ledger.list_stock_levels()
        ]


class ShowLotsHandler:

    def __init__(self, ledger: StockLedgerRepository) -> None:
        self._ledger = ledger

    def handle(self, item_id: str, warehouse_id: str) -> list[LotDTO]:
        return [to_lot_dto(lot) for lot in self._ledger.list_lots(StockKey(item_id, warehouse_id))]


class VerifyLedgerHandler:

    def __init__(self, ledger: StockLedgerRepository) -> None:
        self._ledger = ledger

    def handle(self) -> list[ViolationDTO]:
        return [ViolationDTO(key=str(v.key), message=v.message) for v in verify_ledger(self._ledger)]
