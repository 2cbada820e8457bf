"""Generic document state machine.

Pure validation: nothing here touches the ledger. Callers assert the
transition first and only then reserve, consume or release stock.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from wms.domain.exceptions import InvalidTransitionError
from wms.domain.model.document_status import DocumentStatus

_S = DocumentStatus

_ISSUE_FLOW: Mapping[DocumentStatus, frozenset[DocumentStatus]] = MappingProxyType({
    _S.DRAFT: frozenset({_S.PENDING_APPROVAL}),
    _S.PENDING_APPROVAL: frozenset({_S.APPROVED, _S.REJECTED}),
    _S.APPROVED: frozenset({_S.ISSUED, _S.PARTIALLY_ISSUED, _S.CANCELLED}),
    _S.PARTIALLY_ISSUED: frozenset({_S.ISSUED, _S.CANCELLED}),
    _S.ISSUED: frozenset(),
    _S.REJECTED: frozenset(),
    _S.CANCELLED: frozenset(),
})

# Moves the whole document in one go; there is no partially_issued state.
_SINGLE_SHOT_FLOW: Mapping[DocumentStatus, frozenset[DocumentStatus]] = MappingProxyType({
    _S.DRAFT: frozenset({_S.PENDING_APPROVAL}),
    _S.PENDING_APPROVAL: frozenset({_S.APPROVED, _S.REJECTED}),
    _S.APPROVED: frozenset({_S.ISSUED, _S.CANCELLED}),
    _S.ISSUED: frozenset(),
    _S.REJECTED: frozenset(),
    _S.CANCELLED: frozenset(),
})

TRANSITIONS: Mapping[str, Mapping[DocumentStatus, frozenset[DocumentStatus]]] = MappingProxyType({
    "mirv": _ISSUE_FLOW,
    "mi": _ISSUE_FLOW,
    "stock_transfer": _SINGLE_SHOT_FLOW,
})


def _coerce(status: DocumentStatus | str) -> DocumentStatus | None:
    if isinstance(status, DocumentStatus):
        return status
    try:
        return DocumentStatus(status)
    except ValueError:
        return None


def next_statuses(
    document_type: str, current: DocumentStatus | str
) -> frozenset[DocumentStatus]:
    """Statuses reachable in one step; empty for unknown types or states."""
    flow = TRANSITIONS.get(document_type)
    state = _coerce(current)
    if flow is None or state is None:
        return frozenset()
    return flow.get(state, frozenset())


def can_transition(
    document_type: str,
    current: DocumentStatus | str,
    target: DocumentStatus | str,
) -> bool:
    state = _coerce(target)
    return state is not None and state in next_statuses(document_type, current)


def is_terminal(document_type: str, status: DocumentStatus | str) -> bool:
    return not next_statuses(document_type, status)


def assert_transition(
    document_type: str,
    current: DocumentStatus | str,
    target: DocumentStatus | str,
) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    if can_transition(document_type, current, target):
        return
    allowed = sorted(s.value for s in next_statuses(document_type, current))
    current_label = current.value if isinstance(current, DocumentStatus) else current
    target_label = target.value if isinstance(target, DocumentStatus) else target
    raise InvalidTransitionError(
        f"Invalid status transition for {document_type}: "
        f"'{current_label}' -> '{target_label}'. Allowed transitions: "
        f"{', '.join(allowed) if allowed else 'none (terminal state)'}"
    )
