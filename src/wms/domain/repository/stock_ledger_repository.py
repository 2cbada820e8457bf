"""Abstract store for the stock ledger and the lot store.

Every read-modify-write goes through a ``LedgerSession`` obtained from
``StockLedgerRepository.session(keys)``. The session holds the locks of
exactly those keys until the ``with`` block ends; leaving the block
normally commits everything the session staged, raising discards it.

Implementations must acquire key locks in sorted ``StockKey`` order and
raise ConcurrentModificationError when a lock cannot be had in time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Iterable

from wms.domain.model.lot import Lot, LotConsumption
from wms.domain.model.stock_level import StockKey, StockLevel


class LedgerSession(ABC):

    @abstractmethod
    def get_stock_level(self, key: StockKey) -> StockLevel | None:
        """Return the locked stock level, or None if never stocked."""

    @abstractmethod
    def save_stock_level(self, level: StockLevel) -> None:
        """Stage a new or updated stock level."""

    @abstractmethod
    def list_open_lots(self, key: StockKey) -> list[Lot]:
        """Return the key's lots that still have quantity available."""

    @abstractmethod
    def add_lot(self, lot: Lot) -> Lot:
        """Stage a new lot and assign its id."""

    @abstractmethod
    def save_lot(self, lot: Lot) -> None:
        """Stage an updated lot."""

    @abstractmethod
    def append_consumption(self, record: LotConsumption) -> None:
        """Stage an audit record. Records are never updated afterwards."""


class StockLedgerRepository(ABC):

    @abstractmethod
    def session(self, keys: Iterable[StockKey]) -> AbstractContextManager[LedgerSession]:
        """Lock ``keys`` and open a unit of work over them."""

    @abstractmethod
    def get_stock_level(self, key: StockKey) -> StockLevel | None:
        """Return a committed snapshot of a stock level, or None."""

    @abstractmethod
    def list_stock_levels(self) -> list[StockLevel]:
        """Return every stock level."""

    @abstractmethod
    def get_lot(self, lot_id: int) -> Lot | None:
        """Return a lot by id, or None."""

    @abstractmethod
    def list_lots(self, key: StockKey | None = None) -> list[Lot]:
        """Return lots (depleted ones included), optionally for one key."""

    @abstractmethod
    def list_consumptions(self, consuming_line_id: str | None = None) -> list[LotConsumption]:
        """Return the consumption trail, optionally for one consuming line."""
