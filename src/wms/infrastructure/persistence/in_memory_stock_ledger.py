"""In-process implementation of StockLedgerRepository.

Each stock key has its own ``threading.Lock``. A session acquires the
locks of its keys in sorted order, works on private copies of the
records, and publishes them only if the ``with`` block exits cleanly.
Readers outside a session get copies taken under the store lock, so they
always see whole commits.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterable, Iterator

from wms.domain.exceptions import ConcurrentModificationError, ValidationError
from wms.domain.model.lot import Lot, LotConsumption
from wms.domain.model.stock_level import StockKey, StockLevel
from wms.domain.repository.stock_ledger_repository import LedgerSession, StockLedgerRepository


class InMemoryLedgerSession(LedgerSession):

    def __init__(self, store: InMemoryStockLedger, keys: list[StockKey]) -> None:
        self._store = store
        self._keys = frozenset(keys)
        self._levels: dict[StockKey, StockLevel] = {}
        self._lots: dict[int, Lot] = {}
        self._saved_levels: dict[StockKey, StockLevel] = {}
        self._saved_lots: dict[int, Lot] = {}
        self._new_lots: list[Lot] = []
        self._consumptions: list[LotConsumption] = []

    # --- LedgerSession interface ----------------------------------------------

    def get_stock_level(self, key: StockKey) -> StockLevel | None:
        self._check_locked(key)
        if key in self._levels:
            return self._levels[key]
        level = self._store._copy_level(key)
        if level is not None:
            self._levels[key] = level
        return level

    def save_stock_level(self, level: StockLevel) -> None:
        self._check_locked(level.key)
        self._levels[level.key] = level
        self._saved_levels[level.key] = level

    def list_open_lots(self, key: StockKey) -> list[Lot]:
        self._check_locked(key)
        lots = []
        for lot in self._store._copy_lots(key):
            staged = self._lots.setdefault(lot.id, lot)  # type: ignore[arg-type]
            lots.append(staged)
        lots.extend(lot for lot in self._new_lots if lot.key == key)
        return [lot for lot in lots if not lot.is_depleted]

    def add_lot(self, lot: Lot) -> Lot:
        self._check_locked(lot.key)
        lot.id = self._store._allocate_lot_id()
        self._new_lots.append(lot)
        return lot

    def save_lot(self, lot: Lot) -> None:
        self._check_locked(lot.key)
        if lot.id is None:
            raise ValidationError("Cannot save a lot that was never added")
        if not any(lot is new for new in self._new_lots):
            self._lots[lot.id] = lot
            self._saved_lots[lot.id] = lot

    def append_consumption(self, record: LotConsumption) -> None:
        self._consumptions.append(record)

    # --- Helpers --------------------------------------------------------------

    def _check_locked(self, key: StockKey) -> None:
        if key not in self._keys:
            raise ValidationError(f"Stock key {key} is not locked by this session")


class InMemoryStockLedger(StockLedgerRepository):

    def __init__(self, lock_timeout: float | None = 5.0) -> None:
        self._lock_timeout = lock_timeout
        self._levels: dict[StockKey, StockLevel] = {}
        self._lots: dict[int, Lot] = {}
        self._consumptions: list[LotConsumption] = []
        self._key_locks: dict[StockKey, threading.Lock] = {}
        self._store_lock = threading.RLock()
        self._next_lot_id = 1

    # --- StockLedgerRepository interface --------------------------------------

    @contextmanager
    def session(self, keys: Iterable[StockKey]) -> Iterator[LedgerSession]:
        ordered = sorted(set(keys))
        held: list[threading.Lock] = []
        try:
            for key in ordered:
                lock = self._lock_for(key)
                acquired = lock.acquire(timeout=-1 if self._lock_timeout is None else self._lock_timeout)
                if not acquired:
                    raise ConcurrentModificationError(
                        f"Timed out after {self._lock_timeout}s waiting for stock key {key}"
                    )
                held.append(lock)
            tx = InMemoryLedgerSession(self, ordered)
            yield tx
            self._commit(tx)
        finally:
            for lock in reversed(held):
                lock.release()

    def get_stock_level(self, key: StockKey) -> StockLevel | None:
        return self._copy_level(key)

    def list_stock_levels(self) -> list[StockLevel]:
        with self._store_lock:
            return [replace(level) for _, level in sorted(self._levels.items())]

    def get_lot(self, lot_id: int) -> Lot | None:
        with self._store_lock:
            lot = self._lots.get(lot_id)
            return replace(lot) if lot is not None else None

    def list_lots(self, key: StockKey | None = None) -> list[Lot]:
        with self._store_lock:
            return [
                replace(lot)
                for _, lot in sorted(self._lots.items())
                if key is None or lot.key == key
            ]

    def list_consumptions(self, consuming_line_id: str | None = None) -> list[LotConsumption]:
        with self._store_lock:
            return [
                record
                for record in self._consumptions
                if consuming_line_id is None or record.consuming_line_id == consuming_line_id
            ]

    # --- Internals used by sessions -------------------------------------------

    def _lock_for(self, key: StockKey) -> threading.Lock:
        with self._store_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def _allocate_lot_id(self) -> int:
        with self._store_lock:
            lot_id = self._next_lot_id
            self._next_lot_id += 1
            return lot_id

    def _copy_level(self, key: StockKey) -> StockLevel | None:
        with self._store_lock:
            level = self._levels.get(key)
            return replace(level) if level is not None else None

    def _copy_lots(self, key: StockKey) -> list[Lot]:
        return self.list_lots(key)

    def _commit(self, tx: InMemoryLedgerSession) -> None:
        with self._store_lock:
            for key, level in tx._saved_levels.items():
                self._levels[key] = replace(level)
            for lot_id, lot in tx._saved_lots.items():
                self._lots[lot_id] = replace(lot)
            for lot in tx._new_lots:
                self._lots[lot.id] = replace(lot)  # type: ignore[index]
            self._consumptions.extend(tx._consumptions)
            self._after_commit()

    def _after_commit(self) -> None:
        """Hook for subclasses that persist the committed state."""
