"""Spending roll-up and budget status.

Parent budgets cover their own spending plus every child's spending; child
budgets cover only their own. All amounts are :class:`~decimal.Decimal`.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from ..categories import Category, CategoryId, CategoryNode, find_by_id, is_parent, iter_categories
from .records import Budget, BudgetId, BudgetStatus, Expense

__all__ = [
    "ZERO",
    "HUNDRED",
    "spending_for",
    "status_for",
    "child_budget_sum",
    "statuses_for_month",
]

ZERO = Decimal(0)
HUNDRED = Decimal(100)

CategorySource = Iterable[Category | CategoryNode]


def _direct_spending(category_id: CategoryId, expenses: Iterable[Expense]) -> Decimal:
    return sum((Decimal(e.amount) for e in expenses if e.category_id == category_id), ZERO)


def spending_for(
    category_id: CategoryId,
    expenses: Iterable[Expense],
    include_children: bool = False,
    tree: CategorySource = (),
) -> Decimal:
    """Sum the expenses booked against ``category_id``.

    Args:
      category_id: Category to total.
      expenses: Expenses of the month.
      include_children: Add the spending of every child of ``category_id``.
        Children are looked up in ``tree``.
      tree: Categories, flat or grouped; only read when ``include_children``.

    Returns:
      The total, ``Decimal(0)`` when nothing matches.
    """

    expenses = list(expenses)
    total = _direct_spending(category_id, expenses)
    if include_children:
        for child in iter_categories(tree):
            if child.parent_id == category_id:
                total += _direct_spending(child.id, expenses)
    return total


def _percentage(spent: Decimal, limit: Decimal) -> Decimal:
    if limit == 0:
        return ZERO
    return min(HUNDRED, spent / limit * HUNDRED)


def status_for(budget: Budget, tree: CategorySource, expenses: Iterable[Expense]) -> BudgetStatus:
    """Compute spent, remaining, capped percentage and over-budget flag.

    A budget whose category is unknown to ``tree`` is treated as a leaf.
    """

    categories = list(iter_categories(tree))
    category = find_by_id(categories, budget.category_id)
    rolls_up = category is not None and is_parent(category)
    spent = spending_for(budget.category_id, expenses, include_children=rolls_up, tree=categories)
    limit = Decimal(budget.limit_amount)
    return BudgetStatus(
        spent=spent,
        remaining=limit - spent,
        percentage=_percentage(spent, limit),
        is_over_budget=spent > limit,
    )


def child_budget_sum(
    budgets: Iterable[Budget],
    parent_category_id: CategoryId,
    categories: CategorySource,
    exclude_budget_id: BudgetId | None = None,
) -> Decimal:
    """Sum the limits of budgets whose category is a child of ``parent_category_id``.

    Args:
      budgets: Budgets to consider, normally those of a single month.
      parent_category_id: The parent category.
      categories: Categories, flat or grouped, used to resolve parents.
      exclude_budget_id: Leave this budget out of the sum, e.g. the one
        being edited.
    """

    parent_by_category = {c.id: c.parent_id for c in iter_categories(categories)}
    return sum(
        (
            Decimal(b.limit_amount)
            for b in budgets
            if parent_by_category.get(b.category_id) == parent_category_id
            and parent_by_category.get(b.category_id) is not None
            and (exclude_budget_id is None or b.id != exclude_budget_id)
        ),
        ZERO,
    )


def statuses_for_month(
    budgets: Iterable[Budget],
    tree: CategorySource,
    expenses: Iterable[Expense],
) -> list[tuple[Budget, BudgetStatus]]:
    categories = list(iter_categories(tree))
    expenses = list(expenses)
    return [(budget, status_for(budget, categories, expenses)) for budget in budgets]
