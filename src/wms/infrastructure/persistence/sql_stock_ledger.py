"""Relational implementation of StockLedgerRepository (SQLAlchemy).

A unit of work is one database transaction. Opening it locks the stock
level row of every key with ``SELECT ... FOR UPDATE`` in sorted key
order; lots and consumption records of those keys are only ever written
while that row lock is held.

A key that has never been stocked has no row to lock. Two transactions
creating the same key at once collide on the primary key instead; the
loser gets ConcurrentModificationError and may retry.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Iterator

from sqlalchemy import Engine, select, text
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from wms.domain.exceptions import ConcurrentModificationError, ValidationError
from wms.domain.model.lot import Lot, LotConsumption
from wms.domain.model.stock_level import StockKey, StockLevel
from wms.domain.model.value_objects import ZERO
from wms.domain.repository.stock_ledger_repository import LedgerSession, StockLedgerRepository
from wms.infrastructure.persistence.sql_models import Base, LotConsumptionRow, LotRow, StockLevelRow

logger = logging.getLogger(__name__)


def _utc(value: datetime | None) -> datetime | None:
    # SQLite drops the offset on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _level_to_domain(row: StockLevelRow) -> StockLevel:
    return StockLevel(
        item_id=row.item_id,
        warehouse_id=row.warehouse_id,
        qty_on_hand=row.qty_on_hand,
        qty_reserved=row.qty_reserved,
    )


def _lot_to_domain(row: LotRow) -> Lot:
    return Lot(
        id=row.id,
        item_id=row.item_id,
        warehouse_id=row.warehouse_id,
        qty_received=row.qty_received,
        qty_available=row.qty_available,
        unit_cost=row.unit_cost,
        received_at=_utc(row.received_at),  # type: ignore[arg-type]
        expiry_at=_utc(row.expiry_at),
        provenance_line_id=row.provenance_line_id,
    )


def _consumption_to_domain(row: LotConsumptionRow) -> LotConsumption:
    return LotConsumption(
        lot_id=row.lot_id,
        consuming_line_id=row.consuming_line_id,
        qty_consumed=row.qty_consumed,
        unit_cost_applied=row.unit_cost_applied,
        consumed_at=_utc(row.consumed_at),  # type: ignore[arg-type]
    )


class SqlLedgerSession(LedgerSession):

    def __init__(self, db: Session, keys: list[StockKey], rows: dict[StockKey, StockLevelRow]) -> None:
        self._db = db
        self._keys = frozenset(keys)
        self._rows = rows
        self._levels: dict[StockKey, StockLevel] = {
            key: _level_to_domain(row) for key, row in rows.items()
        }

    # --- LedgerSession interface ----------------------------------------------

    def get_stock_level(self, key: StockKey) -> StockLevel | None:
        self._check_locked(key)
        return self._levels.get(key)

    def save_stock_level(self, level: StockLevel) -> None:
        self._check_locked(level.key)
        row = self._rows.get(level.key)
        if row is None:
            row = StockLevelRow(item_id=level.item_id, warehouse_id=level.warehouse_id)
            self._db.add(row)
            self._rows[level.key] = row
        row.qty_on_hand = level.qty_on_hand
        row.qty_reserved = level.qty_reserved
        self._levels[level.key] = level
        self._db.flush()

    def list_open_lots(self, key: StockKey) -> list[Lot]:
        self._check_locked(key)
        rows = self._db.execute(
            select(LotRow)
            .where(
                LotRow.item_id == key.item_id,
                LotRow.warehouse_id == key.warehouse_id,
                LotRow.qty_available > ZERO,
            )
            .order_by(LotRow.id)
        ).scalars()
        return [_lot_to_domain(row) for row in rows]

    def add_lot(self, lot: Lot) -> Lot:
        self._check_locked(lot.key)
        row = LotRow(
            item_id=lot.item_id,
            warehouse_id=lot.warehouse_id,
            qty_received=lot.qty_received,
            qty_available=lot.qty_available,
            unit_cost=lot.unit_cost,
            received_at=lot.received_at,
            expiry_at=lot.expiry_at,
            provenance_line_id=lot.provenance_line_id,
        )
        self._db.add(row)
        self._db.flush()
        lot.id = row.id
        return lot

    def save_lot(self, lot: Lot) -> None:
        self._check_locked(lot.key)
        if lot.id is None:
            raise ValidationError("Cannot save a lot that was never added")
        row = self._db.get(LotRow, lot.id)
        if row is None:
            raise ValidationError(f"Lot {lot.id} does not exist")
        row.qty_available = lot.qty_available

    def append_consumption(self, record: LotConsumption) -> None:
        self._db.add(
            LotConsumptionRow(
                lot_id=record.lot_id,
                consuming_line_id=record.consuming_line_id,
                qty_consumed=record.qty_consumed,
                unit_cost_applied=record.unit_cost_applied,
                consumed_at=record.consumed_at,
            )
        )

    def _check_locked(self, key: StockKey) -> None:
        if key not in self._keys:
            raise ValidationError(f"Stock key {key} is not locked by this session")


class SqlStockLedger(StockLedgerRepository):

    def __init__(self, engine: Engine, lock_timeout: float | None = 5.0) -> None:
        self._engine = engine
        self._lock_timeout = lock_timeout
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    def create_schema(self) -> None:
        Base.metadata.create_all(self._engine)

    # --- StockLedgerRepository interface --------------------------------------

    @contextmanager
    def session(self, keys: Iterable[StockKey]) -> Iterator[LedgerSession]:
        ordered = sorted(set(keys))
        with self._session_factory() as db:
            try:
                with db.begin():
                    self._apply_lock_timeout(db)
                    rows: dict[StockKey, StockLevelRow] = {}
                    for key in ordered:
                        row = self._lock_row(db, key)
                        if row is not None:
                            rows[key] = row
                    yield SqlLedgerSession(db, ordered, rows)
            except OperationalError as exc:
                logger.warning("Stock ledger lock wait failed for %s: %s", ordered, exc)
                raise ConcurrentModificationError(
                    f"Could not lock stock keys {', '.join(map(str, ordered))}; retry"
                ) from exc
            except IntegrityError as exc:
                logger.warning("Concurrent stock ledger insert for %s: %s", ordered, exc)
                raise ConcurrentModificationError(
                    f"Stock keys {', '.join(map(str, ordered))} were modified concurrently; retry"
                ) from exc

    def get_stock_level(self, key: StockKey) -> StockLevel | None:
        with self._session_factory() as db:
            row = db.get(StockLevelRow, (key.item_id, key.warehouse_id))
            return _level_to_domain(row) if row is not None else None

    def list_stock_levels(self) -> list[StockLevel]:
        with self._session_factory() as db:
            rows = db.execute(
                select(StockLevelRow).order_by(StockLevelRow.item_id, StockLevelRow.warehouse_id)
            ).scalars()
            return [_level_to_domain(row) for row in rows]

    def get_lot(self, lot_id: int) -> Lot | None:
        with self._session_factory() as db:
            row = db.get(LotRow, lot_id)
            return _lot_to_domain(row) if row is not None else None

    def list_lots(self, key: StockKey | None = None) -> list[Lot]:
        stmt = select(LotRow).order_by(LotRow.id)
        if key is not None:
            stmt = stmt.where(LotRow.item_id == key.item_id, LotRow.warehouse_id == key.warehouse_id)
        with self._session_factory() as db:
            return [_lot_to_domain(row) for row in db.execute(stmt).scalars()]

    def list_consumptions(self, consuming_line_id: str | None = None) -> list[LotConsumption]:
        stmt = select(LotConsumptionRow).order_by(LotConsumptionRow.id)
        if consuming_line_id is not None:
            stmt = stmt.where(LotConsumptionRow.consuming_line_id == consuming_line_id)
        with self._session_factory() as db:
            return [_consumption_to_domain(row) for row in db.execute(stmt).scalars()]

    # --- Helpers --------------------------------------------------------------

    def _apply_lock_timeout(self, db: Session) -> None:
        if self._lock_timeout is None or self._engine.dialect.name != "postgresql":
            return
        millis = int(self._lock_timeout * 1000)
        db.execute(text(f"SET LOCAL lock_timeout = '{millis}ms'"))

    @staticmethod
    def _lock_row(db: Session, key: StockKey) -> StockLevelRow | None:
        return db.execute(
            select(StockLevelRow)
            .where(
                StockLevelRow.item_id == key.item_id,
                StockLevelRow.warehouse_id == key.warehouse_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
