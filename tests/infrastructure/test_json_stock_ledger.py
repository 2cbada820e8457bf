"""Tests for JsonStockLedger persistence."""

import json
from datetime import timedelta

from wms.domain.model.stock_level import StockKey
from wms.domain.service.ledger_audit import verify_ledger
from wms.infrastructure.persistence.json_stock_ledger import JsonStockLedger
from tests.fakes import D, T0, make_engine

KEY = StockKey("MED", "WH1")


class TestJsonStockLedger:

    def test_state_survives_reload(self, tmp_path):
        path = tmp_path / "data" / "stock_ledger.json"
        ledger, clock, reservations, consumption = make_engine(JsonStockLedger(path))
        consumption.add_stock("MED", "WH1", "5", "10", expiry_at=T0 + timedelta(days=30))
        clock.advance(days=1)
        consumption.add_stock("MED", "WH1", "5", "20")
        reservations.reserve("MED", "WH1", "6")
        consumption.consume("MED", "WH1", "6", "line-1")

        reloaded = JsonStockLedger(path)

        level = reloaded.get_stock_level(KEY)
        assert level.qty_on_hand == D(4)
        assert level.qty_reserved == D(0)
        lots = reloaded.list_lots(KEY)
        assert [lot.qty_available for lot in lots] == [D(0), D(4)]
        assert lots[0].expiry_at == T0 + timedelta(days=30)
        assert lots[0].received_at.tzinfo is not None
        assert [c.qty_consumed for c in reloaded.list_consumptions("line-1")] == [D(5), D(1)]
        assert verify_ledger(reloaded) == []

    def test_lot_ids_continue_after_reload(self, tmp_path):
        path = tmp_path / "stock_ledger.json"
        _, _, _, consumption = make_engine(JsonStockLedger(path))
        consumption.add_stock("MED", "WH1", "1", "1")

        _, _, _, consumption = make_engine(JsonStockLedger(path))
        assert consumption.add_stock("MED", "WH1", "1", "1").id == 2

    def test_decimals_stored_as_strings(self, tmp_path):
        path = tmp_path / "stock_ledger.json"
        _, _, _, consumption = make_engine(JsonStockLedger(path))
        consumption.add_stock("MED", "WH1", "0.1", "0.3")

        raw = json.loads(path.read_text(encoding="utf-8"))
        assert raw["stock_levels"][0]["qty_on_hand"] == "0.1"
        assert raw["lots"][0]["unit_cost"] == "0.3"

    def test_refused_reservation_leaves_file_unchanged(self, tmp_path):
        path = tmp_path / "stock_ledger.json"
        _, _, reservations, consumption = make_engine(JsonStockLedger(path))
        consumption.add_stock("MED", "WH1", "1", "1")
        before = path.read_text(encoding="utf-8")

        assert reservations.reserve("MED", "WH1", "5") is False

        assert path.read_text(encoding="utf-8") == before
