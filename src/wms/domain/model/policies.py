"""Caller-visible policy switches for multi-line reservation and shortfalls."""

from enum import Enum


class ReservationPolicy(Enum):
    """How a multi-line document claims stock.

    ALL_OR_NOTHING checks every line under one set of key locks before
    committing any claim. BEST_EFFORT claims each line independently and
    reports the lines that could not be reserved.
    """

    ALL_OR_NOTHING = "all_or_nothing"
    BEST_EFFORT = "best_effort"


class ShortfallPolicy(Enum):
    """What consumption does when the lots cannot cover the request.

    Fixed per engine instance so every call site behaves the same way.
    """

    FAIL_FAST = "fail_fast"
    PARTIAL = "partial"
