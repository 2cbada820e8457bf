"""JSON-file-backed implementation of DocumentRepository."""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from wms.domain.model.document import Document, DocumentLine
from wms.domain.model.document_status import DocumentStatus, ReservationStatus
from wms.domain.repository.document_repository import DocumentRepository


class JsonDocumentRepository(DocumentRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._ensure_file()

    # --- DocumentRepository interface -----------------------------------------

    def next_id(self) -> int:
        documents = self._load_raw()
        if not documents:
            return 1
        return max(d["id"] for d in documents) + 1

    def get_by_id(self, document_id: int) -> Document | None:
        for raw in self._load_raw():
            if raw["id"] == document_id:
                return self._to_domain(raw)
        return None

    def save(self, document: Document) -> None:
        documents = self._load_raw()

        if document.id is None:
            document.id = self.next_id()

        # Upsert
        for i, raw in enumerate(documents):
            if raw["id"] == document.id:
                documents[i] = self._to_raw(document)
                break
        else:
            documents.append(self._to_raw(document))

        self._persist_raw(documents)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(document: Document) -> dict:
        return {
            "id": document.id,
            "document_type": document.document_type,
            "warehouse_id": document.warehouse_id,
            "status": document.status.value,
            "reservation_status": document.reservation_status.value,
            "approver_role": document.approver_role,
            "sla_due_at": document.sla_due_at.isoformat() if document.sla_due_at else None,
            "rejection_reason": document.rejection_reason,
            "created_at": document.created_at.isoformat(),
            "lines": [
                {
                    "line_id": line.line_id,
                    "item_id": line.item_id,
                    "qty_requested": str(line.qty_requested),
                    "estimated_unit_cost": str(line.estimated_unit_cost),
                    "qty_reserved": str(line.qty_reserved),
                    "qty_issued": str(line.qty_issued),
                    "issued_cost": str(line.issued_cost),
                }
                for line in document.lines
            ],
        }

    @staticmethod
    def _to_domain(raw: dict) -> Document:
        lines = [
            DocumentLine(
                line_id=ln["line_id"],
                item_id=ln["item_id"],
                qty_requested=Decimal(ln["qty_requested"]),
                estimated_unit_cost=Decimal(ln["estimated_unit_cost"]),
                qty_reserved=Decimal(ln.get("qty_reserved", "0")),
                qty_issued=Decimal(ln.get("qty_issued", "0")),
                issued_cost=Decimal(ln.get("issued_cost", "0")),
            )
            for ln in raw["lines"]
        ]
        return Document(
            id=raw["id"],
            document_type=raw["document_type"],
            warehouse_id=raw["warehouse_id"],
            lines=lines,
            status=DocumentStatus(raw["status"]),
            reservation_status=ReservationStatus(raw.get("reservation_status", "none")),
            approver_role=raw.get("approver_role"),
            sla_due_at=datetime.fromisoformat(raw["sla_due_at"]) if raw.get("sla_due_at") else None,
            rejection_reason=raw.get("rejection_reason"),
            created_at=datetime.fromisoformat(raw["created_at"]),
        )

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, documents: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(documents, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")
