"""Application service: Receive Stock use case.

Creates a receipt lot and raises on-hand through the consumption engine.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from wms.application.dto import LotDTO, to_lot_dto
from wms.domain.service.consumption_service import ConsumptionService

logger = logging.getLogger(__name__)


class ReceiveStockHandler:

    def __init__(self, consumption_service: ConsumptionService) -> None:
        self._consumption_service = consumption_service

    def handle(
        self,
        item_id: str,
        warehouse_id: str,
        quantity: Decimal,
        unit_cost: Decimal,
        expiry_at: datetime | None = None,
        provenance_line_id: str | None = None,
    ) -> LotDTO:
        lot = self._consumption_service.add_stock(
            item_id=item_id,
            warehouse_id=warehouse_id,
            qty=quantity,
            unit_cost=unit_cost,
            provenance_line_id=provenance_line_id,
            expiry_at=expiry_at,
        )
        logger.info(
            "Received %s of %s into %s as lot %s at %s",
            lot.qty_received, item_id, warehouse_id, lot.id, lot.unit_cost,
        )
        return to_lot_dto(lot)
