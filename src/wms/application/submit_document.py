"""Application service: Submit Document for approval.

Routes the document to an approver by its amount and stamps the SLA
deadline. No stock is touched until the document is approved.
"""

from __future__ import annotations

import logging

from wms.application.dto import DocumentDTO, to_document_dto
from wms.domain.clock import Clock
from wms.domain.exceptions import NotFoundError
from wms.domain.model.document_status import DocumentStatus
from wms.domain.repository.document_repository import DocumentRepository
from wms.domain.service.approval_router import ApprovalRouter, compute_sla_due_at
from wms.domain.service.document_state_machine import assert_transition

logger = logging.getLogger(__name__)


class SubmitDocumentHandler:

    def __init__(
        self,
        document_repo: DocumentRepository,
        approval_router: ApprovalRouter,
        clock: Clock,
    ) -> None:
        self._document_repo = document_repo
        self._approval_router = approval_router
        self._clock = clock

    def handle(self, document_id: int) -> DocumentDTO:
        document = self._document_repo.get_by_id(document_id)
        if document is None:
            raise NotFoundError(f"Document #{document_id} not found")

        assert_transition(document.document_type, document.status, DocumentStatus.PENDING_APPROVAL)
        route = self._approval_router.resolve(document.document_type, document.amount)

        now = self._clock.now()
        document.submit(route.approver_role, compute_sla_due_at(now, route.sla_hours))
        self._document_repo.save(document)

        logger.info(
            "Submitted %s #%s (amount %s) to %s, due %s",
            document.document_type, document.id, document.amount,
            route.approver_role, document.sla_due_at.isoformat(),  # type: ignore[union-attr]
        )
        return to_document_dto(document, now)
