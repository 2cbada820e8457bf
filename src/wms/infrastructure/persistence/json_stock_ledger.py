"""JSON-file-backed implementation of StockLedgerRepository.

Behaves exactly like the in-memory ledger and rewrites the whole file
after every committed unit of work. Locks are in-process only: one
process per data file.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from wms.domain.model.lot import Lot, LotConsumption
from wms.domain.model.stock_level import StockLevel
from wms.infrastructure.persistence.in_memory_stock_ledger import InMemoryStockLedger


class JsonStockLedger(InMemoryStockLedger):

    def __init__(self, file_path: Path, lock_timeout: float | None = 5.0) -> None:
        super().__init__(lock_timeout=lock_timeout)
        self._file_path = file_path
        self._ensure_file()
        self._load()

    def _after_commit(self) -> None:
        self._persist_raw(
            {
                "next_lot_id": self._next_lot_id,
                "stock_levels": [self._level_to_raw(level) for level in self._levels.values()],
                "lots": [self._lot_to_raw(lot) for lot in self._lots.values()],
                "consumptions": [self._consumption_to_raw(c) for c in self._consumptions],
            }
        )

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _level_to_raw(level: StockLevel) -> dict:
        return {
            "item_id": level.item_id,
            "warehouse_id": level.warehouse_id,
            "qty_on_hand": str(level.qty_on_hand),
            "qty_reserved": str(level.qty_reserved),
        }

    @staticmethod
    def _level_to_domain(raw: dict) -> StockLevel:
        return StockLevel(
            item_id=raw["item_id"],
            warehouse_id=raw["warehouse_id"],
            qty_on_hand=Decimal(raw["qty_on_hand"]),
            qty_reserved=Decimal(raw["qty_reserved"]),
        )

    @staticmethod
    def _lot_to_raw(lot: Lot) -> dict:
        return {
            "id": lot.id,
            "item_id": lot.item_id,
            "warehouse_id": lot.warehouse_id,
            "qty_received": str(lot.qty_received),
            "qty_available": str(lot.qty_available),
            "unit_cost": str(lot.unit_cost),
            "received_at": lot.received_at.isoformat(),
            "expiry_at": lot.expiry_at.isoformat() if lot.expiry_at else None,
            "provenance_line_id": lot.provenance_line_id,
        }

    @staticmethod
    def _lot_to_domain(raw: dict) -> Lot:
        return Lot(
            id=raw["id"],
            item_id=raw["item_id"],
            warehouse_id=raw["warehouse_id"],
            qty_received=Decimal(raw["qty_received"]),
            qty_available=Decimal(raw["qty_available"]),
            unit_cost=Decimal(raw["unit_cost"]),
            received_at=datetime.fromisoformat(raw["received_at"]),
            expiry_at=datetime.fromisoformat(raw["expiry_at"]) if raw.get("expiry_at") else None,
            provenance_line_id=raw.get("provenance_line_id"),
        )

    @staticmethod
    def _consumption_to_raw(record: LotConsumption) -> dict:
        return {
            "lot_id": record.lot_id,
            "consuming_line_id": record.consuming_line_id,
            "qty_consumed": str(record.qty_consumed),
            "unit_cost_applied": str(record.unit_cost_applied),
            "consumed_at": record.consumed_at.isoformat(),
        }

    @staticmethod
    def _consumption_to_domain(raw: dict) -> LotConsumption:
        return LotConsumption(
            lot_id=raw["lot_id"],
            consuming_line_id=raw["consuming_line_id"],
            qty_consumed=Decimal(raw["qty_consumed"]),
            unit_cost_applied=Decimal(raw["unit_cost_applied"]),
            consumed_at=datetime.fromisoformat(raw["consumed_at"]),
        )

    # --- File helpers ---------------------------------------------------------

    def _load(self) -> None:
        raw = json.loads(self._file_path.read_text(encoding="utf-8"))
        for item in raw.get("stock_levels", []):
            level = self._level_to_domain(item)
            self._levels[level.key] = level
        for item in raw.get("lots", []):
            lot = self._lot_to_domain(item)
            self._lots[lot.id] = lot  # type: ignore[index]
        self._consumptions = [self._consumption_to_domain(c) for c in raw.get("consumptions", [])]
        self._next_lot_id = raw.get("next_lot_id", max(self._lots, default=0) + 1)

    def _persist_raw(self, data: dict) -> None:
        self._file_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("{}", encoding="utf-8")
