"""Application service: Approve or Reject a pending document.

Approval is the point where stock is claimed. Under ALL_OR_NOTHING a
single short line blocks the approval and the document stays pending
with nothing reserved. Under BEST_EFFORT the document is approved with
whatever could be claimed, as long as at least one line got stock.
"""

from __future__ import annotations

import logging

from wms.application.dto import ApprovalOutcomeDTO, DocumentDTO, to_document_dto
from wms.domain.exceptions import InsufficientStockError, NotFoundError
from wms.domain.model.document import Document
from wms.domain.model.document_status import DocumentStatus
from wms.domain.model.policies import ReservationPolicy
from wms.domain.model.value_objects import ZERO
from wms.domain.repository.document_repository import DocumentRepository
from wms.domain.service.document_state_machine import assert_transition
from wms.domain.service.inventory_reservation_service import (
    InventoryReservationService,
    ReservationRequest,
)

logger = logging.getLogger(__name__)


class ApproveDocumentHandler:

    def __init__(
        self,
        document_repo: DocumentRepository,
        reservation_service: InventoryReservationService,
        policy: ReservationPolicy = ReservationPolicy.ALL_OR_NOTHING,
    ) -> None:
        self._document_repo = document_repo
        self._reservation_service = reservation_service
        self._policy = policy

    def approve(self, document_id: int) -> ApprovalOutcomeDTO:
        document = self._load(document_id)
        assert_transition(document.document_type, document.status, DocumentStatus.APPROVED)

        requests = [
            ReservationRequest(
                line_id=line.line_id,
                item_id=line.item_id,
                warehouse_id=document.warehouse_id,
                qty=line.remaining_quantity - line.qty_reserved,
            )
            for line in document.lines
            if line.remaining_quantity - line.qty_reserved > ZERO
        ]
        result = self._reservation_service.reserve_lines(requests, self._policy)

        if not result.claims and result.failed_line_ids:
            short = ", ".join(self._describe(document, line_id) for line_id in result.failed_line_ids)
            logger.warning("Approval of %s #%s blocked: no stock for %s", document.document_type, document.id, short)
            raise InsufficientStockError(
                f"Cannot approve document #{document.id}: insufficient stock for {short}"
            )

        for line_id, qty in result.claims.items():
            document.find_line(line_id).record_reservation(qty)
        document.transition_to(DocumentStatus.APPROVED)
        document.refresh_reservation_status()
        self._document_repo.save(document)

        if result.failed_line_ids:
            logger.warning(
                "Approved %s #%s with partial reservation; unreserved line(s): %s",
                document.document_type, document.id, ", ".join(result.failed_line_ids),
            )
        else:
            logger.info("Approved %s #%s; stock reserved", document.document_type, document.id)

        return ApprovalOutcomeDTO(
            document_id=document.id,  # type: ignore[arg-type]
            status=document.status.value,
            reservation_status=document.reservation_status.value,
            reserved_line_ids=list(result.claims),
            failed_line_ids=list(result.failed_line_ids),
        )

    def reject(self, document_id: int, reason: str | None = None) -> DocumentDTO:
        document = self._load(document_id)
        document.reject(reason)
        self._document_repo.save(document)
        logger.info("Rejected %s #%s: %s", document.document_type, document.id, document.rejection_reason)
        return to_document_dto(document)

    # --- Helpers --------------------------------------------------------------

    def _load(self, document_id: int) -> Document:
        document = self._document_repo.get_by_id(document_id)
        if document is None:
            raise NotFoundError(f"Document #{document_id} not found")
        return document

    @staticmethod
    def _describe(document: Document, line_id: str) -> str:
        line = document.find_line(line_id)
        return f"{line.item_id} (line {line_id})"
