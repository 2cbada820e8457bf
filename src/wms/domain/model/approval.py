"""Approval threshold brackets and the route they resolve to."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from wms.domain.exceptions import ConfigurationError
from wms.domain.model.value_objects import ZERO


@dataclass(frozen=True)
class ApprovalThreshold:
    """One amount bracket for a document type.

    Both bounds are inclusive; ``max_amount=None`` means unbounded.
    """

    document_type: str
    min_amount: Decimal
    max_amount: Decimal | None
    approver_role: str
    sla_hours: int

    def __post_init__(self) -> None:
        if self.min_amount < ZERO:
            raise ConfigurationError(
                f"Bracket for '{self.document_type}' has negative min_amount"
            )
        if self.max_amount is not None and self.max_amount < self.min_amount:
            raise ConfigurationError(
                f"Bracket for '{self.document_type}' has max_amount "
                f"{self.max_amount} below min_amount {self.min_amount}"
            )
        if self.sla_hours <= 0:
            raise ConfigurationError(
                f"Bracket for '{self.document_type}' must have positive sla_hours"
            )
        if not self.approver_role:
            raise ConfigurationError(
                f"Bracket for '{self.document_type}' has no approver_role"
            )

    def matches(self, amount: Decimal) -> bool:
        if amount < self.min_amount:
            return False
        return self.max_amount is None or amount <= self.max_amount


@dataclass(frozen=True)
class ApprovalRoute:
    approver_role: str
    sla_hours: int
