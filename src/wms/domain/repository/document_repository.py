"""Abstract repository for the Document aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from wms.domain.model.document import Document


class DocumentRepository(ABC):

    @abstractmethod
    def next_id(self) -> int:
        """Generate the next unique document ID."""

    @abstractmethod
    def get_by_id(self, document_id: int) -> Document | None:
        """Return a document by its ID, or None if not found."""

    @abstractmethod
    def save(self, document: Document) -> None:
        """Persist a new or updated document."""
