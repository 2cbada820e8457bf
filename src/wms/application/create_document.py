"""Application service: Create Document use case."""

from __future__ import annotations

import logging

from wms.application.dto import DocumentDTO, DocumentLineSpec, to_document_dto
from wms.domain.clock import Clock
from wms.domain.model.document import Document
from wms.domain.repository.document_repository import DocumentRepository

logger = logging.getLogger(__name__)


class CreateDocumentHandler:

    def __init__(self, document_repo: DocumentRepository, clock: Clock) -> None:
        self._document_repo = document_repo
        self._clock = clock

    def handle(
        self,
        document_type: str,
        warehouse_id: str,
        line_specs: list[DocumentLineSpec],
    ) -> DocumentDTO:
        document = Document.create(
            document_type=document_type,
            warehouse_id=warehouse_id,
            lines=[(s.item_id, s.quantity, s.estimated_unit_cost) for s in line_specs],
            created_at=self._clock.now(),
        )
        self._document_repo.save(document)
        logger.info(
            "Created %s #%s in %s with %d line(s)",
            document.document_type, document.id, document.warehouse_id, len(document.lines),
        )
        return to_document_dto(document)
