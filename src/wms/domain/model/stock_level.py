"""StockLevel aggregate — on-hand and reserved counters per (item, warehouse).

The stock level is the source of truth for availability. It is created
lazily by the first receipt for its key and is never deleted; zero is a
valid steady state.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from wms.domain.exceptions import InsufficientStockError, ValidationError
from wms.domain.model.value_objects import ZERO


@dataclass(frozen=True, order=True)
class StockKey:
    """Identity of a stock level. Ordering defines the global lock order."""

    item_id: str
    warehouse_id: str

    def __str__(self) -> str:
        return f"{self.item_id}@{self.warehouse_id}"


@dataclass
class StockLevel:
    """Aggregate root for stock bookkeeping.

    Invariants:
    - ``0 <= qty_reserved <= qty_on_hand``
    - ``available`` is always >= 0
    """

    item_id: str
    warehouse_id: str
    qty_on_hand: Decimal = ZERO
    qty_reserved: Decimal = ZERO

    @property
    def key(self) -> StockKey:
        return StockKey(self.item_id, self.warehouse_id)

    @property
    def available(self) -> Decimal:
        return self.qty_on_hand - self.qty_reserved

    def receive(self, quantity: Decimal) -> None:
        """Add physically received stock. No reservation interaction."""
        _require_positive(quantity, "Receipt")
        self.qty_on_hand += quantity

    def reserve(self, quantity: Decimal) -> None:
        """Claim available capacity ahead of physical movement.

        Raises InsufficientStockError if less than ``quantity`` is available.
        """
        _require_positive(quantity, "Reservation")
        if quantity > self.available:
            raise InsufficientStockError(
                f"Insufficient stock for {self.key} "
                f"(need {quantity}, have {self.available} available)"
            )
        self.qty_reserved += quantity

    def release(self, quantity: Decimal) -> Decimal:
        """Drop a previous claim, floored at zero.

        Returns the quantity actually released.
        """
        _require_positive(quantity, "Release")
        released = min(quantity, self.qty_reserved)
        self.qty_reserved -= released
        return released

    def consume(self, quantity: Decimal) -> Decimal:
        """Permanently remove stock that was reserved for this movement.

        Both counters go down by the same amount; the reservation part is
        floored at zero. Returns the reservation quantity retired.
        """
        _require_positive(quantity, "Consumption")
        if quantity > self.qty_on_hand:
            raise InsufficientStockError(
                f"Cannot consume {quantity} of {self.key} "
                f"— only {self.qty_on_hand} on hand"
            )
        retired = min(quantity, self.qty_reserved)
        self.qty_on_hand -= quantity
        self.qty_reserved -= retired
        return retired

    def deduct(self, quantity: Decimal) -> None:
        """Remove unreserved stock (write-off, transfer-out without a claim).

        Only ``available`` stock can be deducted so other callers' claims
        are never eaten into.
        """
        _require_positive(quantity, "Deduction")
        if quantity > self.available:
            raise InsufficientStockError(
                f"Cannot deduct {quantity} of {self.key} "
                f"— only {self.available} unreserved"
            )
        self.qty_on_hand -= quantity


def _require_positive(quantity: Decimal, label: str) -> None:
    if quantity <= ZERO:
        raise ValidationError(f"{label} quantity must be positive")
