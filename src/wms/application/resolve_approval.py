"""Application service: Resolve Approval route (query)."""

from __future__ import annotations

from decimal import Decimal

from wms.application.dto import ApprovalRouteDTO, money_text, time_text
from wms.domain.clock import Clock
from wms.domain.service.approval_router import ApprovalRouter, compute_sla_due_at


class ResolveApprovalHandler:

    def __init__(self, approval_router: ApprovalRouter, clock: Clock) -> None:
        self._approval_router = approval_router
        self._clock = clock

    def handle(self, document_type: str, amount: Decimal) -> ApprovalRouteDTO:
        route = self._approval_router.resolve(document_type, amount)
        due = compute_sla_due_at(self._clock.now(), route.sla_hours)
        return ApprovalRouteDTO(
            document_type=document_type,
            amount=money_text(amount),
            approver_role=route.approver_role,
            sla_hours=route.sla_hours,
            sla_due_at=time_text(due),  # type: ignore[arg-type]
        )
