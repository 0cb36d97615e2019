"""Month-level views: totals for the summary card and the parent/child hierarchy."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from ..categories import Category, CategoryNode, group_by_parent, iter_categories, sort_by_order
from ..policy import BudgetPolicy
from .records import Budget, BudgetStatus, Expense
from .rollup import HUNDRED, ZERO, status_for

__all__ = ["MonthSummary", "BudgetLine", "BudgetGroup", "summarize_month", "budget_hierarchy"]


@dataclass(frozen=True, slots=True)
class MonthSummary:
    """Totals and status counts for one month.

    Attributes:
      total_budget: Sum of the top-level limits (see :func:`summarize_month`).
      total_spent: Spending covered by those limits.
      overall_percentage: ``total_spent / total_budget * 100``, not capped.
      over_budget: Budgets whose spending exceeds their limit.
      warning: Budgets at or above the warning threshold but not over.
      on_track: All remaining budgets.
      overspend: ``max(0, total_spent - total_budget)``.
    """

    total_budget: Decimal
    total_spent: Decimal
    overall_percentage: Decimal
    over_budget: int
    warning: int
    on_track: int
    overspend: Decimal


@dataclass(frozen=True, slots=True)
class BudgetLine:
    category: Category
    budget: Budget
    status: BudgetStatus


@dataclass(frozen=True, slots=True)
class BudgetGroup:
    """A parent category with its (optional) budget and its children's budgets."""

    category: Category
    parent: BudgetLine | None
    children: tuple[BudgetLine, ...] = field(default_factory=tuple)


def _top_level(budgets: list[Budget], categories: list[Category]) -> list[Budget]:
    """Budgets that are not already covered by a budgeted parent."""

    parent_by_id = {c.id: c.parent_id for c in categories}
    budgeted = {b.category_id for b in budgets}
    return [b for b in budgets if parent_by_id.get(b.category_id) not in budgeted]


def summarize_month(
    budgets: Iterable[Budget],
    tree: Iterable[Category | CategoryNode],
    expenses: Iterable[Expense],
    policy: BudgetPolicy | None = None,
) -> MonthSummary:
    """Summarise a month of budgets.

    Totals count a child budget only when its parent has no budget in the
    month, because the parent limit and roll-up already include it. Status
    counts cover every budget.
    """

    policy = policy or BudgetPolicy()
    budgets = list(budgets)
    categories = list(iter_categories(tree))
    expenses = list(expenses)
    statuses = {id(b): status_for(b, categories, expenses) for b in budgets}

    over = warning = on_track = 0
    for budget in budgets:
        status = statuses[id(budget)]
        if status.is_over_budget:
            over += 1
        elif status.percentage >= policy.warning_threshold:
            warning += 1
        else:
            on_track += 1

    top = _top_level(budgets, categories)
    total_budget = sum((Decimal(b.limit_amount) for b in top), ZERO)
    total_spent = sum((statuses[id(b)].spent for b in top), ZERO)
    overall = total_spent / total_budget * HUNDRED if total_budget > 0 else ZERO
    return MonthSummary(
        total_budget=total_budget,
        total_spent=total_spent,
        overall_percentage=overall,
        over_budget=over,
        warning=warning,
        on_track=on_track,
        overspend=max(ZERO, total_spent - total_budget),
    )


def budget_hierarchy(
    budgets: Iterable[Budget],
    tree: Iterable[Category | CategoryNode],
    expenses: Iterable[Expense],
) -> list[BudgetGroup]:
    """Group a month's budgets under their parent categories.

    Parents appear when they or one of their children hold a budget, ordered
    by ``sort_order``; children likewise. The parent line's status is the
    roll-up of its own and its children's spending.
    """

    budgets = list(budgets)
    expenses = list(expenses)
    nodes = group_by_parent(tree)
    categories = list(iter_categories(nodes))
    by_category = {b.category_id: b for b in budgets}

    groups: list[BudgetGroup] = []
    for node in nodes:
        parent_budget = by_category.get(node.id)
        lines = tuple(
            BudgetLine(child, by_category[child.id], status_for(by_category[child.id], categories, expenses))
            for child in sort_by_order(node.children)
            if child.id in by_category
        )
        if parent_budget is None and not lines:
            continue
        parent_line = (
            BudgetLine(node.category, parent_budget, status_for(parent_budget, categories, expenses))
            if parent_budget is not None
            else None
        )
        groups.append(BudgetGroup(category=node.category, parent=parent_line, children=lines))
    return sorted(groups, key=lambda g: g.category.sort_order)
