"""Domain service: ledger invariant check.

Walks a whole ledger and reports every key that breaks one of the
bookkeeping invariants:

- ``0 <= qty_reserved <= qty_on_hand``
- ``sum(lot.qty_available) == qty_on_hand``
- no lot holds more than it received, or less than zero
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal

from wms.domain.model.stock_level import StockKey
from wms.domain.model.value_objects import ZERO
from wms.domain.repository.stock_ledger_repository import StockLedgerRepository


@dataclass(frozen=True)
class InvariantViolation:
    key: StockKey
    message: str

    def __str__(self) -> str:
        return f"{self.key}: {self.message}"


def verify_ledger(ledger: StockLedgerRepository) -> list[InvariantViolation]:
    violations: list[InvariantViolation] = []

    lot_totals: dict[StockKey, Decimal] = defaultdict(lambda: ZERO)
    for lot in ledger.list_lots():
        lot_totals[lot.key] += lot.qty_available
        if lot.qty_available < ZERO or lot.qty_available > lot.qty_received:
            violations.append(
                InvariantViolation(
                    lot.key,
                    f"lot {lot.id} has {lot.qty_available} available "
                    f"of {lot.qty_received} received",
                )
            )

    seen: set[StockKey] = set()
    for level in ledger.list_stock_levels():
        seen.add(level.key)
        if level.qty_reserved < ZERO:
            violations.append(InvariantViolation(level.key, f"reserved {level.qty_reserved} is negative"))
        if level.qty_reserved > level.qty_on_hand:
            violations.append(
                InvariantViolation(
                    level.key,
                    f"reserved {level.qty_reserved} exceeds on hand {level.qty_on_hand}",
                )
            )
        in_lots = lot_totals.get(level.key, ZERO)
        if in_lots != level.qty_on_hand:
            violations.append(
                InvariantViolation(
                    level.key,
                    f"lots hold {in_lots} but on hand is {level.qty_on_hand}",
                )
            )

    for key, in_lots in lot_totals.items():
        if key not in seen and in_lots != ZERO:
            violations.append(InvariantViolation(key, f"lots hold {in_lots} but no stock level exists"))

    return violations
