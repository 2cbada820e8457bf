"""Integration tests for the ApproveDocument use case (approve and reject)."""

import pytest

from wms.application.approve_document import ApproveDocumentHandler
from wms.application.submit_document import SubmitDocumentHandler
from wms.domain.clock import FixedClock
from wms.domain.exceptions import InsufficientStockError, InvalidTransitionError
from wms.domain.model.document import Document
from wms.domain.model.document_status import DocumentStatus, ReservationStatus
from wms.domain.model.policies import ReservationPolicy
from wms.domain.model.stock_level import StockKey
from wms.domain.service.approval_router import ApprovalRouter
from wms.infrastructure.approval_config import DEFAULT_THRESHOLDS
from tests.fakes import D, T0, FakeDocumentRepository, make_engine


def _setup(stock: dict[str, str], lines: list[tuple[str, str]]):
    """Stock WH1, create and submit a mirv with (item, qty) lines."""
    ledger, clock, reservations, consumption = make_engine()
    for item, qty in stock.items():
        consumption.add_stock(item, "WH1", qty, "10")

    repo = FakeDocumentRepository()
    doc = Document.create(
        "mirv", "WH1", [(item, D(qty), D(10)) for item, qty in lines], created_at=T0
    )
    repo.save(doc)
    SubmitDocumentHandler(repo, ApprovalRouter(DEFAULT_THRESHOLDS), FixedClock(T0)).handle(doc.id)
    return ledger, reservations, repo, doc.id


def _reserved(ledger, item: str):
    return ledger.get_stock_level(StockKey(item, "WH1")).qty_reserved


class TestApproveAllOrNothing:

    def test_approve_reserves_every_line(self):
        ledger, reservations, repo, doc_id = _setup({"CEMENT": "10", "REBAR": "5"}, [("CEMENT", "6"), ("REBAR", "5")])

        outcome = ApproveDocumentHandler(repo, reservations).approve(doc_id)

        assert outcome.status == "approved"
        assert outcome.reservation_status == "reserved"
        doc = repo.get_by_id(doc_id)
        assert [line.qty_reserved for line in doc.lines] == [D(6), D(5)]
        assert _reserved(ledger, "CEMENT") == D(6)
        assert _reserved(ledger, "REBAR") == D(5)

    def test_shortfall_blocks_approval_and_reserves_nothing(self):
        ledger, reservations, repo, doc_id = _setup({"CEMENT": "10", "REBAR": "5"}, [("CEMENT", "6"), ("REBAR", "6")])

        with pytest.raises(InsufficientStockError, match="REBAR"):
            ApproveDocumentHandler(repo, reservations).approve(doc_id)

        doc = repo.get_by_id(doc_id)
        assert doc.status == DocumentStatus.PENDING_APPROVAL
        assert all(line.qty_reserved == 0 for line in doc.lines)
        assert _reserved(ledger, "CEMENT") == D(0)

    def test_approve_twice_rejected(self):
        _, reservations, repo, doc_id = _setup({"CEMENT": "10"}, [("CEMENT", "1")])
        handler = ApproveDocumentHandler(repo, reservations)
        handler.approve(doc_id)

        with pytest.raises(InvalidTransitionError):
            handler.approve(doc_id)


class TestApproveBestEffort:

    def test_partial_claims_recorded(self):
        ledger, reservations, repo, doc_id = _setup({"CEMENT": "10", "REBAR": "5"}, [("CEMENT", "6"), ("REBAR", "6")])

        outcome = ApproveDocumentHandler(repo, reservations, ReservationPolicy.BEST_EFFORT).approve(doc_id)

        doc = repo.get_by_id(doc_id)
        assert outcome.status == "approved"
        assert doc.reservation_status == ReservationStatus.PARTIAL
        assert outcome.failed_line_ids == [doc.lines[1].line_id]
        assert doc.lines[0].qty_reserved == D(6)
        assert doc.lines[1].qty_reserved == D(0)
        assert _reserved(ledger, "REBAR") == D(0)

    def test_nothing_reservable_blocks_approval(self):
        _, reservations, repo, doc_id = _setup({}, [("CEMENT", "1")])

        with pytest.raises(InsufficientStockError):
            ApproveDocumentHandler(repo, reservations, ReservationPolicy.BEST_EFFORT).approve(doc_id)
        assert repo.get_by_id(doc_id).status == DocumentStatus.PENDING_APPROVAL


class TestReject:

    def test_reject_is_terminal(self):
        _, reservations, repo, doc_id = _setup({"CEMENT": "10"}, [("CEMENT", "1")])
        handler = ApproveDocumentHandler(repo, reservations)

        dto = handler.reject(doc_id, "over budget")

        assert dto.status == "rejected"
        assert dto.rejection_reason == "over budget"
        with pytest.raises(InvalidTransitionError, match="terminal"):
            handler.approve(doc_id)
