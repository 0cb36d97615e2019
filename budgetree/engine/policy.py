"""Configurable policy constants for the budget consistency engine.

The defaults reproduce the observed behaviour: a parent budget seeded for a
child's first budget is twice the child's limit, and a budget counts as a
warning once 90% of it is spent. Both can be overridden from a YAML file so
that the rules can change without touching the consistency logic.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Final

import yaml

__all__ = [
    "DEFAULT_PARENT_SEED_FACTOR",
    "DEFAULT_WARNING_THRESHOLD",
    "POLICY_ENV_VAR",
    "BudgetPolicy",
    "PolicyError",
    "load_policy",
]

DEFAULT_PARENT_SEED_FACTOR: Final[Decimal] = Decimal(2)
DEFAULT_WARNING_THRESHOLD: Final[Decimal] = Decimal(90)
POLICY_ENV_VAR: Final[str] = "BUDGETREE_POLICY_PATH"


class PolicyError(ValueError):
    """Raised when a policy file holds invalid values.

    Attributes:
      errors: Every problem found, so one run reports them all.
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


@dataclass(frozen=True, slots=True)
class BudgetPolicy:
    """Policy knobs read by the workflows and the monthly summary.

    Attributes:
      parent_seed_factor: Multiplier applied to a child's limit when a parent
        budget has to be synthesized for the month.
      warning_threshold: Percentage used (0-100) at which a budget that is not
        over its limit is reported as a warning.
    """

    parent_seed_factor: Decimal = DEFAULT_PARENT_SEED_FACTOR
    warning_threshold: Decimal = DEFAULT_WARNING_THRESHOLD


def _as_decimal(value: Any, *, path: str, errors: list[str]) -> Decimal | None:
    if isinstance(value, bool) or not isinstance(value, int | float | str | Decimal):
        errors.append(f"{path} must be a number")
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        errors.append(f"{path} must be a number")
        return None
    if not number.is_finite():
        errors.append(f"{path} must be finite")
        return None
    return number


def _policy_from_mapping(payload: Any) -> BudgetPolicy:
    if payload is None:
        return BudgetPolicy()
    if not isinstance(payload, dict):
        raise PolicyError(["policy file must contain a mapping"])

    errors: list[str] = []
    section = payload.get("budgets", payload)
    if not isinstance(section, dict):
        raise PolicyError(["budgets must be a mapping"])

    factor = DEFAULT_PARENT_SEED_FACTOR
    if "parent_seed_factor" in section:
        parsed = _as_decimal(section["parent_seed_factor"], path="budgets.parent_seed_factor", errors=errors)
        if parsed is not None and parsed < 1:
            errors.append("budgets.parent_seed_factor must be >= 1")
        elif parsed is not None:
            factor = parsed

    threshold = DEFAULT_WARNING_THRESHOLD
    if "warning_threshold" in section:
        parsed = _as_decimal(section["warning_threshold"], path="budgets.warning_threshold", errors=errors)
        if parsed is not None and not (0 < parsed <= 100):
            errors.append("budgets.warning_threshold must be in (0, 100]")
        elif parsed is not None:
            threshold = parsed

    if errors:
        raise PolicyError(errors)
    return BudgetPolicy(parent_seed_factor=factor, warning_threshold=threshold)


def load_policy(path: Path | str | None = None) -> BudgetPolicy:
    """Load the budget policy from YAML.

    Args:
      path: Policy file. When omitted, ``BUDGETREE_POLICY_PATH`` is consulted;
        with neither set the defaults are returned.

    Returns:
      The validated :class:`BudgetPolicy`.

    Raises:
      PolicyError: If the file holds invalid values.
      FileNotFoundError: If an explicit path does not exist.
    """

    candidate = path if path is not None else os.environ.get(POLICY_ENV_VAR)
    if not candidate:
        return BudgetPolicy()
    with Path(candidate).open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle)
    return _policy_from_mapping(payload)
