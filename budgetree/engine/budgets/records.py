"""Immutable records exchanged between the store and the budget engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, TypeAlias

from ..categories import CategoryId
from .errors import BudgetError, ErrorKind, error_for_kind

__all__ = [
    "BudgetId",
    "Budget",
    "BudgetRequest",
    "Expense",
    "BudgetStatus",
    "UserPreferences",
    "AdjustmentReason",
    "ParentAdjustment",
    "BudgetSuccess",
    "CopySuccess",
    "BudgetFailure",
    "BudgetResult",
]

BudgetId: TypeAlias = int | str


@dataclass(frozen=True, slots=True)
class Budget:
    """Monthly spending limit for one category.

    ``id`` is ``None`` for rows the engine asks the caller to insert.
    """

    id: BudgetId | None
    category_id: CategoryId
    limit_amount: Decimal
    month: date
    user_id: Any = None


@dataclass(frozen=True, slots=True)
class BudgetRequest:
    """Payload of a create-budget request."""

    category_id: CategoryId
    limit_amount: Any
    month: date
    user_id: Any = None


@dataclass(frozen=True, slots=True)
class Expense:
    category_id: CategoryId
    amount: Decimal
    date: date
    id: Any = None


@dataclass(frozen=True, slots=True)
class BudgetStatus:
    """Derived view of a budget; computed on demand and never stored.

    Attributes:
      spent: Spending attributed to the budget (rolled up for parents).
      remaining: ``limit - spent``; negative when over budget.
      percentage: Share of the limit used, capped at 100.
      is_over_budget: ``spent > limit``, independent of the cap.
    """

    spent: Decimal
    remaining: Decimal
    percentage: Decimal
    is_over_budget: bool


@dataclass(frozen=True, slots=True)
class UserPreferences:
    auto_adjust_parent_budgets: bool = True


class AdjustmentReason(str, Enum):
    CREATED = "created"
    INCREASED = "increased"
    DECREASED = "decreased"


@dataclass(frozen=True, slots=True)
class ParentAdjustment:
    """Notice telling the user that a parent limit moved automatically."""

    category_id: CategoryId
    old_amount: Decimal
    new_amount: Decimal
    reason: AdjustmentReason


@dataclass(frozen=True, slots=True)
class BudgetSuccess:
    """Successful create, update or delete.

    Attributes:
      budget: The row to insert, the updated row, or the deleted row.
      parent_budget: New state of the parent row to persist alongside
        ``budget`` (inserted when ``id`` is ``None``, updated otherwise).
      parent_adjustment: Notice describing the parent change, if any.
    """

    budget: Budget
    parent_budget: Budget | None = None
    parent_adjustment: ParentAdjustment | None = None

    success: ClassVar[bool] = True


@dataclass(frozen=True, slots=True)
class CopySuccess:
    budgets: tuple[Budget, ...] = field(default_factory=tuple)

    success: ClassVar[bool] = True


@dataclass(frozen=True, slots=True)
class BudgetFailure:
    """Typed failure returned instead of raising."""

    error_kind: ErrorKind
    message: str

    success: ClassVar[bool] = False

    @classmethod
    def from_error(cls, error: BudgetError) -> BudgetFailure:
        return cls(error_kind=error.kind, message=str(error))

    def to_exception(self) -> BudgetError:
        """Rebuild the exception for callers that prefer raising."""

        return error_for_kind(self.error_kind)(self.message)


BudgetResult: TypeAlias = BudgetSuccess | CopySuccess | BudgetFailure
