"""SqlStockLedger against in-memory SQLite: same contract as the in-process ledger."""

from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from wms.domain.exceptions import InsufficientStockError, ValidationError
from wms.domain.model.policies import ShortfallPolicy
from wms.domain.model.stock_level import StockKey, StockLevel
from wms.domain.service.inventory_reservation_service import ReservationRequest
from wms.domain.service.ledger_audit import verify_ledger
from wms.infrastructure.persistence.sql_stock_ledger import SqlStockLedger
from tests.fakes import D, T0, make_engine

KEY = StockKey("MED", "WH1")


@pytest.fixture
def sql_ledger():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    ledger = SqlStockLedger(engine)
    ledger.create_schema()
    yield ledger
    engine.dispose()


class TestSqlStockLedger:

    def test_receive_reserve_consume(self, sql_ledger):
        ledger, clock, reservations, consumption = make_engine(sql_ledger)
        consumption.add_stock("MED", "WH1", "4", "10", expiry_at=T0 + timedelta(days=5))
        clock.advance(days=1)
        consumption.add_stock("MED", "WH1", "6", "20")

        assert reservations.reserve("MED", "WH1", "8") is True
        assert reservations.reserve("MED", "WH1", "3") is False

        result = consumption.consume("MED", "WH1", "8", "line-1")

        # FEFO: 4 @ 10 from the expiring lot, then 4 @ 20
        assert result.total_cost == D(120)
        assert result.unit_cost_applied == D(15)
        level = ledger.get_stock_level(KEY)
        assert level.qty_on_hand == D(2)
        assert level.qty_reserved == D(0)
        assert consumption.line_cost("line-1").qty == D(8)
        assert verify_ledger(ledger) == []

    def test_lot_timestamps_are_utc(self, sql_ledger):
        _, _, _, consumption = make_engine(sql_ledger)
        consumption.add_stock("MED", "WH1", "1", "1", expiry_at=T0 + timedelta(days=5))

        lot = sql_ledger.get_lot(1)
        assert lot.received_at == T0
        assert lot.expiry_at == T0 + timedelta(days=5)

    def test_all_or_nothing_rolls_back(self, sql_ledger):
        ledger, _, reservations, consumption = make_engine(sql_ledger)
        consumption.add_stock("A", "WH1", "5", "1")
        consumption.add_stock("B", "WH1", "1", "1")

        result = reservations.reserve_lines(
            [ReservationRequest("l1", "A", "WH1", D(5)), ReservationRequest("l2", "B", "WH1", D(2))]
        )

        assert result.failed_line_ids == ["l2"]
        assert ledger.get_stock_level(StockKey("A", "WH1")).qty_reserved == D(0)

    def test_fail_fast_leaves_no_trace(self, sql_ledger):
        ledger, _, _, consumption = make_engine(sql_ledger)
        consumption.add_stock("MED", "WH1", "2", "1")

        with pytest.raises(InsufficientStockError):
            consumption.consume("MED", "WH1", "3", "line-1", from_reservation=False)

        assert ledger.get_stock_level(KEY).qty_on_hand == D(2)
        assert ledger.list_consumptions() == []

    def test_exception_in_session_rolls_back(self, sql_ledger):
        with pytest.raises(RuntimeError):
            with sql_ledger.session([KEY]) as tx:
                tx.save_stock_level(StockLevel("MED", "WH1", D(5)))
                raise RuntimeError("boom")
        assert sql_ledger.get_stock_level(KEY) is None
        assert sql_ledger.list_stock_levels() == []

    def test_partial_policy(self, sql_ledger):
        ledger, _, _, consumption = make_engine(sql_ledger, shortfall_policy=ShortfallPolicy.PARTIAL)
        consumption.add_stock("MED", "WH1", "2", "3")

        result = consumption.consume("MED", "WH1", "5", "line-1", from_reservation=False)

        assert result.qty_consumed == D(2)
        assert result.shortfall == D(3)
        assert [lot.is_depleted for lot in ledger.list_lots(KEY)] == [True]

    def test_four_decimal_quantities_kept_exactly(self, sql_ledger):
        ledger, _, _, consumption = make_engine(sql_ledger)
        consumption.add_stock("MED", "WH1", "1.0004", "2.5")
        consumption.add_stock("MED", "WH1", "0.0004", "2.5")

        with pytest.raises(ValidationError, match="more than 4 decimal places"):
            consumption.add_stock("MED", "WH1", "0.00004", "2.5")

        assert ledger.get_stock_level(KEY).qty_on_hand == D("1.0008")
        result = consumption.consume("MED", "WH1", "1.0008", "line-1", from_reservation=False)
        assert result.qty_consumed == D("1.0008")
        assert ledger.get_stock_level(KEY).qty_on_hand == D(0)
        assert verify_ledger(ledger) == []
