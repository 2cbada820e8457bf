"""Approval threshold table: built-in defaults or a JSON file.

File format: a list of objects with ``document_type``, ``min_amount``,
``max_amount`` (null for unbounded), ``approver_role`` and ``sla_hours``.
Amounts may be numbers or strings.
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from wms.domain.exceptions import ConfigurationError
from wms.domain.model.approval import ApprovalThreshold

# (min, max, approver_role, sla_hours)
_MIRV_BRACKETS = [
    ("0", "10000", "warehouse_staff", 4),
    ("10000", "50000", "logistics_coordinator", 8),
    ("50000", "100000", "manager", 24),
    ("100000", "500000", "manager", 48),
    ("500000", None, "admin", 72),
]

_JO_BRACKETS = [
    ("0", "5000", "logistics_coordinator", 4),
    ("5000", "20000", "manager", 8),
    ("20000", "100000", "manager", 24),
    ("100000", None, "admin", 48),
]

_STOCK_TRANSFER_BRACKETS = [
    ("0", None, "logistics_coordinator", 24),
]


def _brackets(document_type: str, rows: list[tuple]) -> list[ApprovalThreshold]:
    return [
        ApprovalThreshold(
            document_type=document_type,
            min_amount=Decimal(low),
            max_amount=Decimal(high) if high is not None else None,
            approver_role=role,
            sla_hours=sla,
        )
        for low, high, role, sla in rows
    ]


DEFAULT_THRESHOLDS: list[ApprovalThreshold] = [
    *_brackets("mirv", _MIRV_BRACKETS),
    *_brackets("mi", _MIRV_BRACKETS),
    *_brackets("jo", _JO_BRACKETS),
    *_brackets("stock_transfer", _STOCK_TRANSFER_BRACKETS),
]


def load_thresholds(file_path: Path | None) -> list[ApprovalThreshold]:
    """Read brackets from ``file_path``; the defaults when it is None."""
    if file_path is None:
        return list(DEFAULT_THRESHOLDS)
    try:
        raw = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read approval thresholds from {file_path}: {exc}") from exc
    if not isinstance(raw, list) or not raw:
        raise ConfigurationError(f"{file_path} must contain a non-empty JSON list of brackets")
    return [_to_threshold(entry) for entry in raw]


def _to_threshold(entry: dict) -> ApprovalThreshold:
    try:
        max_amount = entry.get("max_amount")
        return ApprovalThreshold(
            document_type=entry["document_type"],
            min_amount=Decimal(str(entry["min_amount"])),
            max_amount=Decimal(str(max_amount)) if max_amount is not None else None,
            approver_role=entry["approver_role"],
            sla_hours=int(entry["sla_hours"]),
        )
    except (AttributeError, KeyError, TypeError, ArithmeticError, ValueError) as exc:
        raise ConfigurationError(f"Invalid approval bracket {entry!r}: {exc}") from exc
