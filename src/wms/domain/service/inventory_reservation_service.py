"""Domain service: Inventory Reservation.

Claims and releases ledger capacity ahead of physical movement.
Reservations only move the ``qty_reserved`` counter; lots are untouched.

Every call runs inside one ledger session, so the availability check and
the increment are a single atomic step per key. For multi-line documents
the caller picks a ReservationPolicy explicitly:

  ALL_OR_NOTHING — lock every key (sorted), check every line, then
                   commit all claims or none.
  BEST_EFFORT    — one critical section per line; failures reported.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal

from wms.domain.exceptions import NotFoundError
from wms.domain.model.policies import ReservationPolicy
from wms.domain.model.stock_level import StockKey
from wms.domain.model.value_objects import ZERO, Quantity, to_decimal
from wms.domain.repository.stock_ledger_repository import StockLedgerRepository


@dataclass(frozen=True)
class ReservationRequest:
    line_id: str
    item_id: str
    warehouse_id: str
    qty: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "qty", to_decimal(self.qty, "quantity"))

    @property
    def key(self) -> StockKey:
        return StockKey(self.item_id, self.warehouse_id)


@dataclass(frozen=True)
class ReservationResult:
    """Which lines got their claim and which did not."""

    policy: ReservationPolicy
    claims: dict[str, Decimal] = field(default_factory=dict)
    failed_line_ids: list[str] = field(default_factory=list)

    @property
    def fully_reserved(self) -> bool:
        return not self.failed_line_ids

    @property
    def partially_reserved(self) -> bool:
        return bool(self.claims) and bool(self.failed_line_ids)


class InventoryReservationService:

    def __init__(self, ledger: StockLedgerRepository) -> None:
        self._ledger = ledger

    def reserve(self, item_id: str, warehouse_id: str, qty: Decimal | int | str) -> bool:
        """Claim ``qty`` if that much is available; no change otherwise."""
        quantity = Quantity.of(qty).value
        key = StockKey(item_id, warehouse_id)
        with self._ledger.session([key]) as tx:
            level = tx.get_stock_level(key)
            if level is None or level.available < quantity:
                return False
            level.reserve(quantity)
            tx.save_stock_level(level)
        return True

    def release(self, item_id: str, warehouse_id: str, qty: Decimal | int | str) -> Decimal:
        """Give back a claim, floored at zero. Returns what was released.

        The engine does not remember who reserved what; pass back exactly
        the amount you claimed.
        """
        quantity = Quantity.of(qty).value
        key = StockKey(item_id, warehouse_id)
        with self._ledger.session([key]) as tx:
            level = tx.get_stock_level(key)
            if level is None:
                raise NotFoundError(f"No stock level for item '{item_id}' in warehouse '{warehouse_id}'")
            released = level.release(quantity)
            tx.save_stock_level(level)
        return released

    def reserve_lines(
        self,
        requests: list[ReservationRequest],
        policy: ReservationPolicy = ReservationPolicy.ALL_OR_NOTHING,
    ) -> ReservationResult:
        for request in requests:
            Quantity(request.qty)
        if policy is ReservationPolicy.ALL_OR_NOTHING:
            return self._reserve_all_or_nothing(requests)
        return self._reserve_best_effort(requests)

    def release_lines(self, requests: list[ReservationRequest]) -> dict[str, Decimal]:
        """Release several claims in one unit of work.

        Lines with a zero claim are skipped. Returns released qty per line.
        """
        to_release = [r for r in requests if r.qty > ZERO]
        released: dict[str, Decimal] = {}
        if not to_release:
            return released
        with self._ledger.session(r.key for r in to_release) as tx:
            for request in to_release:
                level = tx.get_stock_level(request.key)
                if level is None:
                    raise NotFoundError(f"No stock level for {request.key}")
                released[request.line_id] = level.release(request.qty)
                tx.save_stock_level(level)
        return released

    # --- Policies -------------------------------------------------------------

    def _reserve_all_or_nothing(self, requests: list[ReservationRequest]) -> ReservationResult:
        policy = ReservationPolicy.ALL_OR_NOTHING
        if not requests:
            return ReservationResult(policy)

        needed: dict[StockKey, Decimal] = defaultdict(lambda: ZERO)
        for request in requests:
            needed[request.key] += request.qty

        with self._ledger.session(needed) as tx:
            # Phase 1: check every key before touching any of them
            levels = {key: tx.get_stock_level(key) for key in needed}
            short_keys = {
                key for key, qty in needed.items()
                if levels[key] is None or levels[key].available < qty
            }
            if short_keys:
                failed = [r.line_id for r in requests if r.key in short_keys]
                return ReservationResult(policy, failed_line_ids=failed)

            # Phase 2: commit every claim
            for key, qty in needed.items():
                levels[key].reserve(qty)
                tx.save_stock_level(levels[key])

        return ReservationResult(policy, claims={r.line_id: r.qty for r in requests})

    def _reserve_best_effort(self, requests: list[ReservationRequest]) -> ReservationResult:
        claims: dict[str, Decimal] = {}
        failed: list[str] = []
        for request in requests:
            if self.reserve(request.item_id, request.warehouse_id, request.qty):
                claims[request.line_id] = request.qty
            else:
                failed.append(request.line_id)
        return ReservationResult(ReservationPolicy.BEST_EFFORT, claims=claims, failed_line_ids=failed)
