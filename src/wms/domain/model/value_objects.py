"""Value Objects shared across the domain.

Quantities and money are both carried as ``Decimal`` inside the engine.
These wrappers exist at the boundaries: they coerce raw input (CLI
strings, JSON numbers, ints) and reject values that may never enter the
ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from wms.domain.exceptions import ValidationError

ZERO = Decimal("0")

# Every store keeps quantities and costs to this many decimal places.
MAX_SCALE = 4


def to_decimal(value: str | float | int | Decimal, label: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {label}: {value!r}")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid {label}: {value!r}") from exc
    if not result.is_finite():
        raise ValidationError(f"Invalid {label}: {value!r}")
    check_scale(result, label)
    return result


def check_scale(value: Decimal, label: str) -> None:
    if value.normalize().as_tuple().exponent < -MAX_SCALE:
        raise ValidationError(
            f"Invalid {label}: {value} has more than {MAX_SCALE} decimal places"
        )


@dataclass(frozen=True)
class Quantity:
    """A strictly positive stock quantity.

    Fractional values are allowed (metres of cable, kilograms of cement).
    """

    value: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.value, Decimal):
            raise ValidationError(
                f"Quantity must be a Decimal, got {type(self.value).__name__}"
            )
        if self.value <= ZERO:
            raise ValidationError("Quantity must be positive")

    def __str__(self) -> str:
        return str(self.value)

    @staticmethod
    def of(value: str | float | int | Decimal) -> Quantity:
        return Quantity(to_decimal(value, "quantity"))


@dataclass(frozen=True)
class Money:
    """Non-negative monetary amount (unit costs, document values).

    Single-currency by construction; multi-currency costing is handled by
    whatever sits on top of the engine.
    """

    amount: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if self.amount < ZERO:
            raise ValidationError(
                f"Money amount cannot be negative, got {self.amount}"
            )

    def __add__(self, other: Money) -> Money:
        return Money(self.amount + other.amount)

    def __mul__(self, factor: Decimal | int) -> Money:
        if isinstance(factor, bool) or not isinstance(factor, (Decimal, int)):
            raise TypeError(
                f"Can only multiply Money by Decimal or int, got {type(factor).__name__}"
            )
        return Money(self.amount * factor)

    def __str__(self) -> str:
        return f"{self.amount:.2f}"

    @staticmethod
    def of(amount: str | float | int | Decimal) -> Money:
        """Convenient factory that coerces to Decimal safely."""
        return Money(to_decimal(amount, "money amount"))
