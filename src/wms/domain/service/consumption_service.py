"""Domain service: Consumption Engine and stock receipt.

Receipts create lots and raise on-hand. Consumption walks the key's lots
in FEFO/FIFO order, depletes them, writes one LotConsumption per lot
touched and returns the quantity-weighted unit cost.

What happens when the lots cannot cover a request is decided once, by
the ShortfallPolicy this service is built with, so every caller of one
engine sees the same behaviour.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from wms.domain.clock import Clock
from wms.domain.exceptions import InsufficientStockError, ValidationError
from wms.domain.model.lot import Lot, LotConsumption, consumption_order
from wms.domain.model.policies import ShortfallPolicy
from wms.domain.model.stock_level import StockKey, StockLevel
from wms.domain.model.value_objects import ZERO, Money, Quantity
from wms.domain.repository.stock_ledger_repository import LedgerSession, StockLedgerRepository


@dataclass(frozen=True)
class StockReceipt:
    item_id: str
    warehouse_id: str
    qty: Decimal
    unit_cost: Decimal
    provenance_line_id: str | None = None
    expiry_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "qty", Quantity.of(self.qty).value)
        object.__setattr__(self, "unit_cost", Money.of(self.unit_cost).amount)
        if self.expiry_at is not None and self.expiry_at.utcoffset() is None:
            raise ValidationError(f"Expiry for '{self.item_id}' must carry a timezone (UTC)")

    @property
    def key(self) -> StockKey:
        return StockKey(self.item_id, self.warehouse_id)


@dataclass(frozen=True)
class ConsumptionRequest:
    item_id: str
    warehouse_id: str
    qty: Decimal
    consuming_line_id: str
    from_reservation: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "qty", Quantity.of(self.qty).value)

    @property
    def key(self) -> StockKey:
        return StockKey(self.item_id, self.warehouse_id)


@dataclass(frozen=True)
class LotAllocation:
    lot_id: int
    qty: Decimal
    unit_cost: Decimal


@dataclass(frozen=True)
class ConsumptionResult:
    consuming_line_id: str
    qty_requested: Decimal
    qty_consumed: Decimal
    total_cost: Decimal
    allocations: list[LotAllocation] = field(default_factory=list)

    @property
    def shortfall(self) -> Decimal:
        return self.qty_requested - self.qty_consumed

    @property
    def unit_cost_applied(self) -> Decimal:
        if self.qty_consumed <= ZERO:
            return ZERO
        return self.total_cost / self.qty_consumed


@dataclass(frozen=True)
class LineCost:
    consuming_line_id: str
    qty: Decimal
    total_cost: Decimal

    @property
    def unit_cost(self) -> Decimal:
        return self.total_cost / self.qty if self.qty > ZERO else ZERO


class ConsumptionService:

    def __init__(
        self,
        ledger: StockLedgerRepository,
        clock: Clock,
        shortfall_policy: ShortfallPolicy = ShortfallPolicy.FAIL_FAST,
    ) -> None:
        self._ledger = ledger
        self._clock = clock
        self._shortfall_policy = shortfall_policy

    @property
    def shortfall_policy(self) -> ShortfallPolicy:
        return self._shortfall_policy

    # --- Receipts -------------------------------------------------------------

    def add_stock(
        self,
        item_id: str,
        warehouse_id: str,
        qty: Decimal | int | str,
        unit_cost: Decimal | int | str,
        provenance_line_id: str | None = None,
        expiry_at: datetime | None = None,
    ) -> Lot:
        receipt = StockReceipt(item_id, warehouse_id, qty, unit_cost, provenance_line_id, expiry_at)
        return self.add_stock_batch([receipt])[0]

    def add_stock_batch(self, receipts: list[StockReceipt]) -> list[Lot]:
        """Create one lot per receipt, all in a single unit of work."""
        if not receipts:
            return []
        now = self._clock.now()
        lots: list[Lot] = []
        with self._ledger.session(r.key for r in receipts) as tx:
            levels: dict[StockKey, StockLevel] = {}
            for receipt in receipts:
                level = levels.get(receipt.key) or tx.get_stock_level(receipt.key)
                if level is None:
                    level = StockLevel(item_id=receipt.item_id, warehouse_id=receipt.warehouse_id)
                level.receive(receipt.qty)
                levels[receipt.key] = level

                lot = Lot.create(
                    item_id=receipt.item_id,
                    warehouse_id=receipt.warehouse_id,
                    quantity=receipt.qty,
                    unit_cost=receipt.unit_cost,
                    received_at=now,
                    expiry_at=receipt.expiry_at,
                    provenance_line_id=receipt.provenance_line_id,
                )
                lots.append(tx.add_lot(lot))
            for level in levels.values():
                tx.save_stock_level(level)
        return lots

    # --- Consumption ----------------------------------------------------------

    def consume(
        self,
        item_id: str,
        warehouse_id: str,
        qty: Decimal | int | str,
        consuming_line_id: str,
        from_reservation: bool = True,
    ) -> ConsumptionResult:
        """Deplete lots for one line.

        ``from_reservation=True`` (issue against a claim) retires the same
        quantity of reservation. ``False`` is for write-offs and
        transfer-outs that never reserved: they may only use unreserved
        stock and leave ``qty_reserved`` alone.
        """
        request = ConsumptionRequest(item_id, warehouse_id, qty, consuming_line_id, from_reservation)
        return self.consume_lines([request])[0]

    def consume_lines(
        self,
        requests: list[ConsumptionRequest],
        require_full: bool = False,
    ) -> list[ConsumptionResult]:
        """Consume several lines under one set of key locks.

        Under FAIL_FAST any line that cannot be covered aborts the batch
        before anything is written. ``require_full`` applies the same check
        under PARTIAL, for callers that have no way to record a shortfall.
        """
        if not requests:
            return []
        now = self._clock.now()
        with self._ledger.session(r.key for r in requests) as tx:
            levels = {r.key: tx.get_stock_level(r.key) for r in requests}
            lots = {key: consumption_order(tx.list_open_lots(key)) for key in levels}

            if require_full or self._shortfall_policy is ShortfallPolicy.FAIL_FAST:
                self._check_coverage(requests, levels, lots)

            results = [self._consume_one(tx, r, levels[r.key], lots[r.key], now) for r in requests]
        return results

    def line_cost(self, consuming_line_id: str) -> LineCost:
        """Rebuild a line's issued quantity and cost from the audit trail."""
        records = self._ledger.list_consumptions(consuming_line_id)
        qty = sum((r.qty_consumed for r in records), ZERO)
        cost = sum((r.qty_consumed * r.unit_cost_applied for r in records), ZERO)
        return LineCost(consuming_line_id, qty, cost)

    # --- Internal helpers -----------------------------------------------------

    @staticmethod
    def _coverable(request: ConsumptionRequest, level: StockLevel | None, lots: list[Lot]) -> Decimal:
        in_lots = sum((lot.qty_available for lot in lots), ZERO)
        if request.from_reservation:
            return in_lots
        unreserved = level.available if level is not None else ZERO
        return min(in_lots, unreserved)

    def _check_coverage(
        self,
        requests: list[ConsumptionRequest],
        levels: dict[StockKey, StockLevel | None],
        lots: dict[StockKey, list[Lot]],
    ) -> None:
        by_key: dict[StockKey, list[ConsumptionRequest]] = defaultdict(list)
        for request in requests:
            by_key[request.key].append(request)

        for key, key_requests in by_key.items():
            level = levels[key]
            in_lots = sum((lot.qty_available for lot in lots[key]), ZERO)
            unreserved = level.available if level is not None else ZERO
            total = sum((r.qty for r in key_requests), ZERO)
            unreserved_needed = sum((r.qty for r in key_requests if not r.from_reservation), ZERO)
            if total > in_lots or unreserved_needed > unreserved:
                lines = ", ".join(r.consuming_line_id for r in key_requests)
                raise InsufficientStockError(
                    f"Insufficient stock for {key} (need {total}, "
                    f"have {in_lots} on hand, {unreserved} unreserved) "
                    f"for line(s) {lines}"
                )

    def _consume_one(
        self,
        tx: LedgerSession,
        request: ConsumptionRequest,
        level: StockLevel | None,
        lots: list[Lot],
        now: datetime,
    ) -> ConsumptionResult:
        wanted = min(request.qty, self._coverable(request, level, lots))
        remaining = wanted
        total_cost = ZERO
        allocations: list[LotAllocation] = []

        for lot in lots:
            if remaining <= ZERO:
                break
            if lot.is_depleted:
                continue
            taken = lot.draw(remaining)
            remaining -= taken
            total_cost += taken * lot.unit_cost
            tx.save_lot(lot)
            tx.append_consumption(
                LotConsumption(
                    lot_id=lot.id,  # type: ignore[arg-type]
                    consuming_line_id=request.consuming_line_id,
                    qty_consumed=taken,
                    unit_cost_applied=lot.unit_cost,
                    consumed_at=now,
                )
            )
            allocations.append(LotAllocation(lot.id, taken, lot.unit_cost))  # type: ignore[arg-type]

        consumed = wanted - remaining
        if consumed > ZERO and level is not None:
            if request.from_reservation:
                level.consume(consumed)
            else:
                level.deduct(consumed)
            tx.save_stock_level(level)

        return ConsumptionResult(
            consuming_line_id=request.consuming_line_id,
            qty_requested=request.qty,
            qty_consumed=consumed,
            total_cost=total_cost,
            allocations=allocations,
        )
