"""Lot store records: receipt lots and their append-only consumption trail."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from wms.domain.exceptions import ValidationError
from wms.domain.model.stock_level import StockKey
from wms.domain.model.value_objects import ZERO


@dataclass
class Lot:
    """A batch of stock tied to one receipt line.

    ``qty_received`` never changes after creation; ``qty_available`` only
    ever goes down. Lots are kept after depletion so the costing history
    stays reconstructible.
    """

    id: int | None
    item_id: str
    warehouse_id: str
    qty_received: Decimal
    qty_available: Decimal
    unit_cost: Decimal
    received_at: datetime
    expiry_at: datetime | None = None
    provenance_line_id: str | None = None

    @staticmethod
    def create(
        item_id: str,
        warehouse_id: str,
        quantity: Decimal,
        unit_cost: Decimal,
        received_at: datetime,
        expiry_at: datetime | None = None,
        provenance_line_id: str | None = None,
    ) -> Lot:
        """Create a new lot; the store assigns ``id`` when it is added."""
        if quantity <= ZERO:
            raise ValidationError("Lot quantity must be positive")
        if unit_cost < ZERO:
            raise ValidationError("Lot unit cost cannot be negative")
        return Lot(
            id=None,
            item_id=item_id,
            warehouse_id=warehouse_id,
            qty_received=quantity,
            qty_available=quantity,
            unit_cost=unit_cost,
            received_at=received_at,
            expiry_at=expiry_at,
            provenance_line_id=provenance_line_id,
        )

    @property
    def key(self) -> StockKey:
        return StockKey(self.item_id, self.warehouse_id)

    @property
    def is_depleted(self) -> bool:
        return self.qty_available <= ZERO

    def draw(self, quantity: Decimal) -> Decimal:
        """Take up to ``quantity`` from this lot; returns what was taken."""
        if quantity <= ZERO:
            raise ValidationError("Draw quantity must be positive")
        taken = min(quantity, self.qty_available)
        self.qty_available -= taken
        return taken


@dataclass(frozen=True)
class LotConsumption:
    """One lot's contribution to one consuming document line. Never mutated."""

    lot_id: int
    consuming_line_id: str
    qty_consumed: Decimal
    unit_cost_applied: Decimal
    consumed_at: datetime


def consumption_order(lots: Iterable[Lot]) -> list[Lot]:
    """Return lots with stock left, in the order they should be drawn.

    FEFO first: earliest ``expiry_at`` wins and lots without an expiry go
    last. Ties (and the non-expiring group) fall back to FIFO on
    ``received_at``, then to lot id for a stable result.
    """
    candidates = [lot for lot in lots if not lot.is_depleted]
    return sorted(
        candidates,
        key=lambda lot: (
            lot.expiry_at is None,
            lot.expiry_at if lot.expiry_at is not None else lot.received_at,
            lot.received_at,
            lot.id if lot.id is not None else 0,
        ),
    )
