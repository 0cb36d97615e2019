"""Budget roll-up and parent/child consistency engine."""

from __future__ import annotations

from .errors import (
    BudgetError,
    ChildExceedsParentError,
    DuplicateBudgetError,
    ErrorKind,
    InvalidAmountError,
    NotFoundError,
    NothingToCopyError,
    ParentBelowChildrenError,
)
from .records import (
    AdjustmentReason,
    Budget,
    BudgetFailure,
    BudgetRequest,
    BudgetResult,
    BudgetStatus,
    BudgetSuccess,
    CopySuccess,
    Expense,
    ParentAdjustment,
    UserPreferences,
)
from .rollup import child_budget_sum, spending_for, status_for, statuses_for_month
from .rules import coerce_amount, seed_parent_limit, should_auto_decrease, should_auto_increase
from .summary import BudgetGroup, BudgetLine, MonthSummary, budget_hierarchy, summarize_month
from .workflows import (
    copy_previous_month,
    create_budget,
    delete_budget,
    preflight_child_limit,
    update_budget,
)

__all__ = [
    # Records
    "AdjustmentReason",
    "Budget",
    "BudgetFailure",
    "BudgetRequest",
    "BudgetResult",
    "BudgetStatus",
    "BudgetSuccess",
    "CopySuccess",
    "Expense",
    "ParentAdjustment",
    "UserPreferences",
    # Errors
    "BudgetError",
    "ChildExceedsParentError",
    "DuplicateBudgetError",
    "ErrorKind",
    "InvalidAmountError",
    "NotFoundError",
    "NothingToCopyError",
    "ParentBelowChildrenError",
    # Roll-up
    "child_budget_sum",
    "spending_for",
    "status_for",
    "statuses_for_month",
    # Rules
    "coerce_amount",
    "seed_parent_limit",
    "should_auto_decrease",
    "should_auto_increase",
    # Views
    "BudgetGroup",
    "BudgetLine",
    "MonthSummary",
    "budget_hierarchy",
    "summarize_month",
    # Workflows
    "copy_previous_month",
    "create_budget",
    "delete_budget",
    "preflight_child_limit",
    "update_budget",
]
