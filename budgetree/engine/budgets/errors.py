"""Error taxonomy of the budget engine.

Every error is recoverable and user facing. Workflows raise these internally
and hand them back as :class:`~budgetree.engine.budgets.records.BudgetFailure`
results, so none of them escape a workflow call.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar

__all__ = [
    "ErrorKind",
    "BudgetError",
    "DuplicateBudgetError",
    "ParentBelowChildrenError",
    "InvalidAmountError",
    "NotFoundError",
    "NothingToCopyError",
    "ChildExceedsParentError",
    "error_for_kind",
]


class ErrorKind(str, Enum):
    DUPLICATE_BUDGET = "duplicate_budget"
    PARENT_BELOW_CHILDREN = "parent_below_children"
    INVALID_AMOUNT = "invalid_amount"
    NOT_FOUND = "not_found"
    NOTHING_TO_COPY = "nothing_to_copy"
    CHILD_EXCEEDS_PARENT = "child_exceeds_parent"


class BudgetError(RuntimeError):
    """Base class for engine validation failures."""

    kind: ClassVar[ErrorKind]


class DuplicateBudgetError(BudgetError):
    """A budget already exists for the category and month."""

    kind = ErrorKind.DUPLICATE_BUDGET


class ParentBelowChildrenError(BudgetError):
    """A parent limit would drop below the sum of its children's limits."""

    kind = ErrorKind.PARENT_BELOW_CHILDREN


class InvalidAmountError(BudgetError):
    """A limit is non-numeric or not strictly positive."""

    kind = ErrorKind.INVALID_AMOUNT


class NotFoundError(BudgetError):
    """A category or budget id does not resolve."""

    kind = ErrorKind.NOT_FOUND


class NothingToCopyError(BudgetError):
    """The source month of a copy holds no budgets."""

    kind = ErrorKind.NOTHING_TO_COPY


class ChildExceedsParentError(BudgetError):
    """Children would exceed their parent while auto-adjust is disabled."""

    kind = ErrorKind.CHILD_EXCEEDS_PARENT


def error_for_kind(kind: ErrorKind | str) -> type[BudgetError]:
    resolved = ErrorKind(kind)
    for cls in BudgetError.__subclasses__():
        if cls.kind is resolved:
            return cls
    raise ValueError(f"Unknown error kind {kind!r}")  # pragma: no cover - enum is exhaustive
