"""Application service: Issue (physically hand out) an approved document.

Issues against the reservation claims made at approval: lots are
depleted in FEFO/FIFO order, the claim is retired and each line records
the actual cost. Without explicit quantities every claim is issued in
full; with them only the given lines and amounts are.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from wms.application.dto import IssuedLineDTO, IssueOutcomeDTO, money_text, qty_text
from wms.domain.exceptions import NotFoundError, ValidationError
from wms.domain.model.document import Document
from wms.domain.model.document_status import DocumentStatus
from wms.domain.model.value_objects import ZERO
from wms.domain.repository.document_repository import DocumentRepository
from wms.domain.service.consumption_service import ConsumptionRequest, ConsumptionService
from wms.domain.service.document_state_machine import assert_transition, can_transition

logger = logging.getLogger(__name__)


class IssueDocumentHandler:

    def __init__(
        self,
        document_repo: DocumentRepository,
        consumption_service: ConsumptionService,
    ) -> None:
        self._document_repo = document_repo
        self._consumption_service = consumption_service

    def handle(
        self,
        document_id: int,
        quantities: dict[str, Decimal] | None = None,
    ) -> IssueOutcomeDTO:
        """Issue a document, fully or partially.

        Args:
            document_id: The document to issue.
            quantities: Optional mapping of line_id -> quantity to issue.
                Each quantity must fit within that line's claim. If None,
                every line issues its whole claim.
        """
        document = self._document_repo.get_by_id(document_id)
        if document is None:
            raise NotFoundError(f"Document #{document_id} not found")

        # Only documents that can still end up issued may move stock
        assert_transition(document.document_type, document.status, DocumentStatus.ISSUED)
        to_issue = self._plan(document, quantities)

        # Check the resulting status is reachable before any stock moves
        expected = self._status_after(document, to_issue)
        if expected != document.status:
            assert_transition(document.document_type, document.status, expected)

        # A flow without partially_issued has no way to record a short issue
        shortfall_allowed = document.status == DocumentStatus.PARTIALLY_ISSUED or can_transition(
            document.document_type, document.status, DocumentStatus.PARTIALLY_ISSUED
        )

        results = self._consumption_service.consume_lines(
            [
                ConsumptionRequest(
                    item_id=document.find_line(line_id).item_id,
                    warehouse_id=document.warehouse_id,
                    qty=qty,
                    consuming_line_id=line_id,
                )
                for line_id, qty in to_issue.items()
            ],
            require_full=not shortfall_allowed,
        )

        issued: list[IssuedLineDTO] = []
        for result in results:
            line = document.find_line(result.consuming_line_id)
            if result.qty_consumed > ZERO:
                line.record_issue(result.qty_consumed, result.total_cost)
            issued.append(
                IssuedLineDTO(
                    line_id=line.line_id,
                    item_id=line.item_id,
                    qty_issued=qty_text(result.qty_consumed),
                    unit_cost=money_text(result.unit_cost_applied),
                    total_cost=money_text(result.total_cost),
                    shortfall=qty_text(result.shortfall),
                )
            )
            if result.shortfall > ZERO:
                logger.warning(
                    "Line %s of %s #%s issued %s of %s requested",
                    line.line_id, document.document_type, document.id,
                    result.qty_consumed, result.qty_requested,
                )

        target = DocumentStatus.ISSUED if document.is_fully_issued else DocumentStatus.PARTIALLY_ISSUED
        if target != document.status:
            document.transition_to(target)
        document.refresh_reservation_status()
        self._document_repo.save(document)

        logger.info(
            "Issued %s #%s (%s), cost so far %s",
            document.document_type, document.id, document.status.value, document.total_issued_cost,
        )
        return IssueOutcomeDTO(
            document_id=document.id,  # type: ignore[arg-type]
            status=document.status.value,
            lines=issued,
        )

    # --- Helpers --------------------------------------------------------------

    @staticmethod
    def _plan(document: Document, quantities: dict[str, Decimal] | None) -> dict[str, Decimal]:
        if quantities is None:
            plan = {line.line_id: line.qty_reserved for line in document.lines if line.qty_reserved > ZERO}
        else:
            plan = {}
            for line_id, qty in quantities.items():
                line = document.find_line(line_id)
                if qty <= ZERO:
                    raise ValidationError(f"Issue quantity for line {line_id} must be positive")
                if qty > line.qty_reserved:
                    raise ValidationError(
                        f"Cannot issue {qty} on line {line_id}: only {line.qty_reserved} reserved"
                    )
                plan[line_id] = qty
        if not plan:
            raise ValidationError(f"Document #{document.id} has no reserved stock to issue")
        return plan

    @staticmethod
    def _status_after(document: Document, plan: dict[str, Decimal]) -> DocumentStatus:
        done = all(
            line.remaining_quantity - plan.get(line.line_id, ZERO) <= ZERO
            for line in document.lines
        )
        return DocumentStatus.ISSUED if done else DocumentStatus.PARTIALLY_ISSUED
