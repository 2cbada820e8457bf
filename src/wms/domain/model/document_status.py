"""Statuses shared by every document type that uses the engine."""

from enum import Enum


class DocumentStatus(Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    PARTIALLY_ISSUED = "partially_issued"
    ISSUED = "issued"
    CANCELLED = "cancelled"


class ReservationStatus(Enum):
    NONE = "none"
    PARTIAL = "partial"
    RESERVED = "reserved"
    RELEASED = "released"
