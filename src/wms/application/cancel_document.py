"""Application service: Cancel Document use case.

Releases whatever the document still holds against the ledger, then
cancels it. Issued quantities stay issued; only unconsumed claims are
given back.
"""

from __future__ import annotations

import logging

from wms.application.dto import DocumentDTO, to_document_dto
from wms.domain.exceptions import NotFoundError
from wms.domain.model.document_status import DocumentStatus, ReservationStatus
from wms.domain.model.value_objects import ZERO
from wms.domain.repository.document_repository import DocumentRepository
from wms.domain.service.document_state_machine import assert_transition
from wms.domain.service.inventory_reservation_service import (
    InventoryReservationService,
    ReservationRequest,
)

logger = logging.getLogger(__name__)


class CancelDocumentHandler:

    def __init__(
        self,
        document_repo: DocumentRepository,
        reservation_service: InventoryReservationService,
    ) -> None:
        self._document_repo = document_repo
        self._reservation_service = reservation_service

    def handle(self, document_id: int) -> DocumentDTO:
        document = self._document_repo.get_by_id(document_id)
        if document is None:
            raise NotFoundError(f"Document #{document_id} not found")

        assert_transition(document.document_type, document.status, DocumentStatus.CANCELLED)

        claims = [
            ReservationRequest(
                line_id=line.line_id,
                item_id=line.item_id,
                warehouse_id=document.warehouse_id,
                qty=line.qty_reserved,
            )
            for line in document.lines
            if line.qty_reserved > ZERO
        ]
        released = self._reservation_service.release_lines(claims)

        for line in document.lines:
            line.clear_claim()
        document.transition_to(DocumentStatus.CANCELLED)
        document.reservation_status = ReservationStatus.RELEASED
        self._document_repo.save(document)

        logger.info(
            "Cancelled %s #%s; released %d claim(s)",
            document.document_type, document.id, len(released),
        )
        return to_document_dto(document)
