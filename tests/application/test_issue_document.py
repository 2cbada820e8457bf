"""Integration tests for the IssueDocument use case (full and partial)."""

import pytest

from wms.application.approve_document import ApproveDocumentHandler
from wms.application.issue_document import IssueDocumentHandler
from wms.application.submit_document import SubmitDocumentHandler
from wms.domain.exceptions import InsufficientStockError, InvalidTransitionError, ValidationError
from wms.domain.model.document import Document
from wms.domain.model.document_status import DocumentStatus, ReservationStatus
from wms.domain.model.policies import ShortfallPolicy
from wms.domain.model.stock_level import StockKey
from wms.domain.service.approval_router import ApprovalRouter
from wms.domain.service.ledger_audit import verify_ledger
from wms.infrastructure.approval_config import DEFAULT_THRESHOLDS
from tests.fakes import D, T0, FakeDocumentRepository, make_engine

KEY = StockKey("MED", "WH1")


def _approved(
    document_type: str = "mirv", qty: str = "8", approve: bool = True, **engine_kwargs
):
    """Two MED lots (5 @ 10, 5 @ 20) and an approved document for ``qty`` MED."""
    ledger, clock, reservations, consumption = make_engine(**engine_kwargs)
    consumption.add_stock("MED", "WH1", "5", "10")
    clock.advance(days=1)
    consumption.add_stock("MED", "WH1", "5", "20")

    repo = FakeDocumentRepository()
    doc = Document.create(document_type, "WH1", [("MED", D(qty), D(15))], created_at=T0)
    repo.save(doc)
    SubmitDocumentHandler(repo, ApprovalRouter(DEFAULT_THRESHOLDS), clock).handle(doc.id)
    if approve:
        ApproveDocumentHandler(repo, reservations).approve(doc.id)
    return ledger, consumption, repo, doc.id


class TestFullIssue:

    def test_issue_consumes_lots_and_records_cost(self):
        ledger, consumption, repo, doc_id = _approved()

        outcome = IssueDocumentHandler(repo, consumption).handle(doc_id)

        assert outcome.status == "issued"
        assert outcome.lines[0].qty_issued == "8"
        assert outcome.lines[0].unit_cost == "13.75"
        assert outcome.lines[0].total_cost == "110.00"

        doc = repo.get_by_id(doc_id)
        line = doc.lines[0]
        assert line.qty_issued == D(8)
        assert line.qty_reserved == D(0)
        assert doc.reservation_status == ReservationStatus.RELEASED

        level = ledger.get_stock_level(KEY)
        assert level.qty_on_hand == D(2)
        assert level.qty_reserved == D(0)
        assert consumption.line_cost(line.line_id).total_cost == D(110)
        assert verify_ledger(ledger) == []

    def test_issue_before_approval_rejected(self):
        ledger, consumption, repo, doc_id = _approved(approve=False)

        with pytest.raises(InvalidTransitionError):
            IssueDocumentHandler(repo, consumption).handle(doc_id)
        assert ledger.get_stock_level(KEY).qty_on_hand == D(10)


class TestPartialIssue:

    def test_partial_then_rest(self):
        ledger, consumption, repo, doc_id = _approved()
        line_id = repo.get_by_id(doc_id).lines[0].line_id
        handler = IssueDocumentHandler(repo, consumption)

        first = handler.handle(doc_id, {line_id: D(3)})
        assert first.status == "partially_issued"
        level = ledger.get_stock_level(KEY)
        assert level.qty_on_hand == D(7)
        assert level.qty_reserved == D(5)

        second = handler.handle(doc_id, {line_id: D(2)})
        assert second.status == "partially_issued"

        final = handler.handle(doc_id)
        assert final.status == "issued"
        assert repo.get_by_id(doc_id).lines[0].qty_issued == D(8)
        assert ledger.get_stock_level(KEY).qty_reserved == D(0)

    def test_cannot_issue_more_than_reserved(self):
        _, consumption, repo, doc_id = _approved()
        line_id = repo.get_by_id(doc_id).lines[0].line_id

        with pytest.raises(ValidationError, match="only 8 reserved"):
            IssueDocumentHandler(repo, consumption).handle(doc_id, {line_id: D(9)})

    def test_unknown_line_rejected(self):
        _, consumption, repo, doc_id = _approved()
        with pytest.raises(ValidationError, match="not found"):
            IssueDocumentHandler(repo, consumption).handle(doc_id, {"nope": D(1)})

    def test_stock_transfer_cannot_be_partially_issued(self):
        ledger, consumption, repo, doc_id = _approved(document_type="stock_transfer")
        line_id = repo.get_by_id(doc_id).lines[0].line_id

        with pytest.raises(InvalidTransitionError, match="partially_issued"):
            IssueDocumentHandler(repo, consumption).handle(doc_id, {line_id: D(3)})
        assert ledger.get_stock_level(KEY).qty_on_hand == D(10)
        assert repo.get_by_id(doc_id).status == DocumentStatus.APPROVED


class TestShortIssue:
    """Lots drained by another caller after approval, PARTIAL engine."""

    def _drain(self, consumption, qty: str = "4") -> None:
        consumption.consume("MED", "WH1", qty, "other-line")

    def test_mirv_records_what_was_issued(self):
        ledger, consumption, repo, doc_id = _approved(qty="10", shortfall_policy=ShortfallPolicy.PARTIAL)
        self._drain(consumption)

        outcome = IssueDocumentHandler(repo, consumption).handle(doc_id)

        assert outcome.status == "partially_issued"
        assert outcome.lines[0].qty_issued == "6"
        assert outcome.lines[0].shortfall == "4"
        doc = repo.get_by_id(doc_id)
        assert doc.status == DocumentStatus.PARTIALLY_ISSUED
        assert doc.lines[0].qty_issued == D(6)
        assert ledger.get_stock_level(KEY).qty_on_hand == D(0)

    def test_stock_transfer_moves_nothing(self):
        ledger, consumption, repo, doc_id = _approved(
            "stock_transfer", qty="10", shortfall_policy=ShortfallPolicy.PARTIAL
        )
        self._drain(consumption)
        line_id = repo.get_by_id(doc_id).lines[0].line_id

        with pytest.raises(InsufficientStockError):
            IssueDocumentHandler(repo, consumption).handle(doc_id)

        assert ledger.get_stock_level(KEY).qty_on_hand == D(6)
        assert ledger.list_consumptions(line_id) == []
        doc = repo.get_by_id(doc_id)
        assert doc.status == DocumentStatus.APPROVED
        assert doc.lines[0].qty_reserved == D(10)
        assert doc.lines[0].qty_issued == D(0)
