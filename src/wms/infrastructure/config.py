"""Runtime settings read from the environment (and a ``.env`` file)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from wms.domain.model.policies import ReservationPolicy, ShortfallPolicy

# Resolve data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
_DEFAULT_DATA_DIR = Path(__file__).resolve().parents[3] / "data"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    database_url: str | None
    lock_timeout_seconds: float
    reservation_policy: ReservationPolicy
    shortfall_policy: ShortfallPolicy
    approval_thresholds_file: Path | None
    log_level: str


def load_settings() -> Settings:
    load_dotenv()

    data_dir = Path(os.getenv("WMS_DATA_DIR") or _DEFAULT_DATA_DIR)
    database_url = os.getenv("WMS_DATABASE_URL") or None

    raw_timeout = os.getenv("WMS_LOCK_TIMEOUT_SECONDS", "5")
    try:
        lock_timeout = float(raw_timeout)
    except ValueError as exc:
        raise ValueError(f"WMS_LOCK_TIMEOUT_SECONDS must be a number, got {raw_timeout!r}") from exc
    if lock_timeout <= 0:
        raise ValueError("WMS_LOCK_TIMEOUT_SECONDS must be positive")

    raw_policy = os.getenv("WMS_RESERVATION_POLICY", ReservationPolicy.ALL_OR_NOTHING.value)
    if raw_policy not in {p.value for p in ReservationPolicy}:
        raise ValueError("WMS_RESERVATION_POLICY must be all_or_nothing | best_effort")

    raw_shortfall = os.getenv("WMS_SHORTFALL_POLICY", ShortfallPolicy.FAIL_FAST.value)
    if raw_shortfall not in {p.value for p in ShortfallPolicy}:
        raise ValueError("WMS_SHORTFALL_POLICY must be fail_fast | partial")

    thresholds_file = os.getenv("WMS_APPROVAL_THRESHOLDS_FILE") or None

    log_level = os.getenv("WMS_LOG_LEVEL", "INFO").upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"WMS_LOG_LEVEL must be one of {' | '.join(sorted(_LOG_LEVELS))}")

    return Settings(
        data_dir=data_dir,
        database_url=database_url,
        lock_timeout_seconds=lock_timeout,
        reservation_policy=ReservationPolicy(raw_policy),
        shortfall_policy=ShortfallPolicy(raw_shortfall),
        approval_thresholds_file=Path(thresholds_file) if thresholds_file else None,
        log_level=log_level,
    )
