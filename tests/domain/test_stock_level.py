"""Unit tests for the StockLevel aggregate."""

from decimal import Decimal

import pytest

from wms.domain.exceptions import InsufficientStockError, ValidationError
from wms.domain.model.stock_level import StockKey, StockLevel


def _level(on_hand: str = "10", reserved: str = "0") -> StockLevel:
    return StockLevel("CEMENT", "WH1", Decimal(on_hand), Decimal(reserved))


class TestStockKey:

    def test_sorted_by_item_then_warehouse(self):
        keys = [StockKey("B", "WH1"), StockKey("A", "WH2"), StockKey("A", "WH1")]
        assert sorted(keys) == [StockKey("A", "WH1"), StockKey("A", "WH2"), StockKey("B", "WH1")]

    def test_str(self):
        assert str(StockKey("CEMENT", "WH1")) == "CEMENT@WH1"


class TestReserve:

    def test_reserve_reduces_available(self):
        level = _level()
        level.reserve(Decimal("4"))
        assert level.qty_reserved == Decimal("4")
        assert level.available == Decimal("6")

    def test_reserve_exactly_available(self):
        level = _level("10", "3")
        level.reserve(Decimal("7"))
        assert level.available == Decimal("0")

    def test_reserve_beyond_available_rejected(self):
        level = _level("10", "3")
        with pytest.raises(InsufficientStockError, match="CEMENT@WH1"):
            level.reserve(Decimal("8"))
        assert level.qty_reserved == Decimal("3")

    def test_non_positive_rejected(self):
        with pytest.raises(ValidationError, match="Reservation quantity must be positive"):
            _level().reserve(Decimal("0"))


class TestRelease:

    def test_release_returns_amount(self):
        level = _level("10", "5")
        assert level.release(Decimal("2")) == Decimal("2")
        assert level.qty_reserved == Decimal("3")

    def test_release_floors_at_zero(self):
        level = _level("10", "2")
        assert level.release(Decimal("5")) == Decimal("2")
        assert level.qty_reserved == Decimal("0")


class TestConsume:

    def test_consume_retires_reservation(self):
        level = _level("10", "4")
        retired = level.consume(Decimal("4"))
        assert retired == Decimal("4")
        assert level.qty_on_hand == Decimal("6")
        assert level.qty_reserved == Decimal("0")

    def test_consume_more_than_reserved_floors_reservation(self):
        level = _level("10", "2")
        assert level.consume(Decimal("5")) == Decimal("2")
        assert level.qty_on_hand == Decimal("5")
        assert level.qty_reserved == Decimal("0")

    def test_consume_beyond_on_hand_rejected(self):
        with pytest.raises(InsufficientStockError):
            _level("3").consume(Decimal("4"))


class TestDeduct:

    def test_deduct_leaves_reservation_alone(self):
        level = _level("10", "4")
        level.deduct(Decimal("6"))
        assert level.qty_on_hand == Decimal("4")
        assert level.qty_reserved == Decimal("4")

    def test_deduct_cannot_eat_into_reservations(self):
        level = _level("10", "4")
        with pytest.raises(InsufficientStockError, match="unreserved"):
            level.deduct(Decimal("7"))


class TestReceive:

    def test_receive_adds_on_hand(self):
        level = StockLevel("CEMENT", "WH1")
        level.receive(Decimal("2.5"))
        assert level.qty_on_hand == Decimal("2.5")
        assert level.available == Decimal("2.5")
