"""SQLAlchemy tables for the relational stock ledger."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

QTY = Numeric(18, 4)
COST = Numeric(18, 4)


class Base(DeclarativeBase):
    pass


class StockLevelRow(Base):
    __tablename__ = "stock_levels"

    item_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    warehouse_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    qty_on_hand: Mapped[Decimal] = mapped_column(QTY, nullable=False, default=Decimal("0"))
    qty_reserved: Mapped[Decimal] = mapped_column(QTY, nullable=False, default=Decimal("0"))

    __table_args__ = (
        CheckConstraint("qty_on_hand >= 0", name="ck_stock_levels_on_hand_non_negative"),
        CheckConstraint("qty_reserved >= 0", name="ck_stock_levels_reserved_non_negative"),
        CheckConstraint("qty_reserved <= qty_on_hand", name="ck_stock_levels_reserved_within_on_hand"),
    )

    def __repr__(self):
        return (
            f"<StockLevelRow {self.item_id}@{self.warehouse_id} "
            f"on_hand={self.qty_on_hand} reserved={self.qty_reserved}>"
        )


class LotRow(Base):
    __tablename__ = "lots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_id: Mapped[str] = mapped_column(String(64), nullable=False)
    warehouse_id: Mapped[str] = mapped_column(String(64), nullable=False)
    qty_received: Mapped[Decimal] = mapped_column(QTY, nullable=False)
    qty_available: Mapped[Decimal] = mapped_column(QTY, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(COST, nullable=False)
    received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expiry_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    provenance_line_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_lots_item_warehouse", "item_id", "warehouse_id"),
        CheckConstraint("qty_available >= 0", name="ck_lots_available_non_negative"),
        CheckConstraint("qty_available <= qty_received", name="ck_lots_available_within_received"),
        CheckConstraint("unit_cost >= 0", name="ck_lots_unit_cost_non_negative"),
    )

    def __repr__(self):
        return f"<LotRow id={self.id} {self.item_id}@{self.warehouse_id} available={self.qty_available}>"


class LotConsumptionRow(Base):
    __tablename__ = "lot_consumptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lot_id: Mapped[int] = mapped_column(ForeignKey("lots.id", ondelete="RESTRICT"), nullable=False)
    consuming_line_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    qty_consumed: Mapped[Decimal] = mapped_column(QTY, nullable=False)
    unit_cost_applied: Mapped[Decimal] = mapped_column(COST, nullable=False)
    consumed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("qty_consumed > 0", name="ck_lot_consumptions_qty_positive"),
    )
