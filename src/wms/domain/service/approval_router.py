"""Domain service: Approval Threshold Router.

Read-only over a static bracket table. Given a document type and its
monetary amount it names the approver role and the SLA window.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from wms.domain.exceptions import ConfigurationError, NoApprovalRuleError, ValidationError
from wms.domain.model.approval import ApprovalRoute, ApprovalThreshold
from wms.domain.model.value_objects import ZERO


class ApprovalRouter:

    def __init__(self, thresholds: Iterable[ApprovalThreshold]) -> None:
        by_type: dict[str, list[ApprovalThreshold]] = defaultdict(list)
        for threshold in thresholds:
            by_type[threshold.document_type].append(threshold)
        for document_type, brackets in by_type.items():
            brackets.sort(key=lambda t: t.min_amount)
            _check_coverage(document_type, brackets)
        self._brackets = dict(by_type)

    @property
    def document_types(self) -> list[str]:
        return sorted(self._brackets)

    def brackets_for(self, document_type: str) -> list[ApprovalThreshold]:
        return list(self._brackets.get(document_type, []))

    def resolve(self, document_type: str, amount: Decimal) -> ApprovalRoute:
        """Pick the bracket with the largest ``min_amount`` that still matches.

        Overlapping brackets therefore resolve to the most specific rule,
        and a boundary amount belongs to the higher bracket.
        """
        if amount < ZERO:
            raise ValidationError(f"Approval amount cannot be negative, got {amount}")

        matching = [t for t in self._brackets.get(document_type, []) if t.matches(amount)]
        if not matching:
            raise NoApprovalRuleError(
                f"No approval workflow configured for {document_type} with amount {amount}"
            )
        chosen = max(matching, key=lambda t: t.min_amount)
        return ApprovalRoute(approver_role=chosen.approver_role, sla_hours=chosen.sla_hours)


def compute_sla_due_at(now: datetime, sla_hours: int) -> datetime:
    return now + timedelta(hours=sla_hours)


def _check_coverage(document_type: str, brackets: list[ApprovalThreshold]) -> None:
    """Brackets sorted by min_amount must cover [0, inf) without holes."""
    if brackets[0].min_amount != ZERO:
        raise ConfigurationError(
            f"Approval brackets for '{document_type}' start at "
            f"{brackets[0].min_amount}, not 0"
        )
    reach = brackets[0].max_amount
    for bracket in brackets[1:]:
        if reach is None:
            return
        if bracket.min_amount > reach:
            raise ConfigurationError(
                f"Approval brackets for '{document_type}' leave a gap "
                f"between {reach} and {bracket.min_amount}"
            )
        if bracket.max_amount is None or bracket.max_amount > reach:
            reach = bracket.max_amount
    if reach is not None:
        raise ConfigurationError(
            f"Approval brackets for '{document_type}' stop at {reach}; "
            f"the top bracket must be unbounded"
        )
