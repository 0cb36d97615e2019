"""Parent/child consistency rules.

A parent limit is raised whenever its children's limits add up to more than
it, and lowered only when it was in lock-step with the exact previous sum.
A parent carrying a buffer above its children keeps it.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from ..policy import DEFAULT_PARENT_SEED_FACTOR
from .errors import InvalidAmountError

__all__ = [
    "should_auto_increase",
    "should_auto_decrease",
    "seed_parent_limit",
    "coerce_amount",
]


def should_auto_increase(child_sum: Decimal, parent_limit: Decimal) -> bool:
    # Equality is not a trigger.
    return child_sum > parent_limit


def should_auto_decrease(old_child_sum: Decimal, new_child_sum: Decimal, parent_limit: Decimal) -> bool:
    return old_child_sum == parent_limit and new_child_sum < parent_limit


def seed_parent_limit(child_limit: Decimal, factor: Decimal = DEFAULT_PARENT_SEED_FACTOR) -> Decimal:
    """Placeholder limit for a parent budget created by its first child budget."""

    return child_limit * factor


def coerce_amount(value: Any) -> Decimal:
    """Convert a user supplied limit into a strictly positive ``Decimal``.

    Raises:
      InvalidAmountError: For booleans, non-numeric text, NaN, infinities and
        values that are zero or negative.
    """

    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(f"Budget amount must be a number, got {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmountError(f"Budget amount must be a number, got {value!r}") from exc
    if not amount.is_finite():
        raise InvalidAmountError(f"Budget amount must be finite, got {value!r}")
    if amount <= 0:
        raise InvalidAmountError("Budget amount must be greater than zero")
    return amount
