"""Application service: Show Document use case (query)."""

from __future__ import annotations

from wms.application.dto import DocumentDTO, to_document_dto
from wms.domain.clock import Clock
from wms.domain.exceptions import NotFoundError
from wms.domain.repository.document_repository import DocumentRepository


class ShowDocumentHandler:

    def __init__(self, document_repo: DocumentRepository, clock: Clock) -> None:
        self._document_repo = document_repo
        self._clock = clock

    def handle(self, document_id: int) -> DocumentDTO:
        document = self._document_repo.get_by_id(document_id)
        if document is None:
            raise NotFoundError(f"Document #{document_id} not found")
        return to_document_dto(document, self._clock.now())
