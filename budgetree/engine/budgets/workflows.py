"""Create, update, delete and copy workflows.

Each workflow takes a request plus snapshots of the month's data and returns
a result describing the rows the caller must persist. Nothing is mutated
here: the caller writes ``budget`` and, when present, ``parent_budget`` as one
logical unit. Validation problems come back as
:class:`~budgetree.engine.budgets.records.BudgetFailure`.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any

from ..categories import Category, CategoryId, CategoryNode, find_by_id, is_parent, iter_categories
from ..months import month_label, month_start, previous_month
from ..policy import BudgetPolicy
from .errors import (
    BudgetError,
    ChildExceedsParentError,
    DuplicateBudgetError,
    NotFoundError,
    NothingToCopyError,
    ParentBelowChildrenError,
)
from .records import (
    AdjustmentReason,
    Budget,
    BudgetFailure,
    BudgetId,
    BudgetRequest,
    BudgetSuccess,
    CopySuccess,
    ParentAdjustment,
    UserPreferences,
)
from .rollup import ZERO, child_budget_sum
from .rules import coerce_amount, seed_parent_limit, should_auto_decrease, should_auto_increase

__all__ = [
    "create_budget",
    "update_budget",
    "delete_budget",
    "copy_previous_month",
    "preflight_child_limit",
]

CategorySource = Iterable[Category | CategoryNode]


def _category(categories: list[Category], category_id: CategoryId) -> Category:
    category = find_by_id(categories, category_id)
    if category is None:
        raise NotFoundError(f"Category {category_id!r} not found")
    return category


def _parent(categories: list[Category], child: Category) -> Category:
    parent = find_by_id(categories, child.parent_id)  # type: ignore[arg-type]
    if parent is None:
        raise NotFoundError(f"Parent category {child.parent_id!r} of {child.name or child.id!r} not found")
    return parent


def _in_month(budgets: Iterable[Budget], month: date) -> list[Budget]:
    return [b for b in budgets if month_start(b.month) == month]


def _budget_for(budgets: Iterable[Budget], category_id: CategoryId) -> Budget | None:
    return next((b for b in budgets if b.category_id == category_id), None)


def _adjust(parent_budget: Budget, new_limit: Decimal, reason: AdjustmentReason) -> tuple[Budget, ParentAdjustment]:
    notice = ParentAdjustment(
        category_id=parent_budget.category_id,
        old_amount=Decimal(parent_budget.limit_amount),
        new_amount=new_limit,
        reason=reason,
    )
    return replace(parent_budget, limit_amount=new_limit), notice


def _create(
    request: BudgetRequest,
    categories: list[Category],
    existing: Iterable[Budget],
    preferences: UserPreferences,
    policy: BudgetPolicy,
) -> BudgetSuccess:
    amount = coerce_amount(request.limit_amount)
    month = month_start(request.month)
    category = _category(categories, request.category_id)
    month_budgets = _in_month(existing, month)

    if _budget_for(month_budgets, category.id) is not None:
        raise DuplicateBudgetError(
            f"You already have a {category.name or category.id} budget for {month_label(month)}. "
            "Edit or delete the existing one instead."
        )

    budget = Budget(id=None, category_id=category.id, limit_amount=amount, month=month, user_id=request.user_id)
    if is_parent(category):
        return BudgetSuccess(budget)

    parent = _parent(categories, category)
    parent_budget = _budget_for(month_budgets, parent.id)
    if parent_budget is None:
        seeded = Budget(
            id=None,
            category_id=parent.id,
            limit_amount=seed_parent_limit(amount, policy.parent_seed_factor),
            month=month,
            user_id=request.user_id,
        )
        notice = ParentAdjustment(parent.id, ZERO, seeded.limit_amount, AdjustmentReason.CREATED)
        return BudgetSuccess(budget, parent_budget=seeded, parent_adjustment=notice)

    if preferences.auto_adjust_parent_budgets:
        child_sum = child_budget_sum(month_budgets, parent.id, categories) + amount
        if should_auto_increase(child_sum, Decimal(parent_budget.limit_amount)):
            raised, notice = _adjust(parent_budget, child_sum, AdjustmentReason.INCREASED)
            return BudgetSuccess(budget, parent_budget=raised, parent_adjustment=notice)

    return BudgetSuccess(budget)


def create_budget(
    request: BudgetRequest,
    tree: CategorySource,
    existing_budgets: Iterable[Budget],
    preferences: UserPreferences | None = None,
    policy: BudgetPolicy | None = None,
) -> BudgetSuccess | BudgetFailure:
    """Validate a new budget and work out its effect on the parent budget.

    Args:
      request: Category, limit and month of the new budget.
      tree: Categories, flat or grouped.
      existing_budgets: Budgets already stored; other months are ignored.
      preferences: User preferences, defaulting to auto-adjust enabled.
      policy: Policy constants, defaulting to :class:`BudgetPolicy`.

    Returns:
      A success holding the row to insert, plus the parent row to insert or
      update when a child budget seeds or raises its parent; otherwise a
      failure of kind ``duplicate_budget``, ``invalid_amount`` or
      ``not_found``.
    """

    try:
        return _create(
            request,
            list(iter_categories(tree)),
            list(existing_budgets),
            preferences or UserPreferences(),
            policy or BudgetPolicy(),
        )
    except BudgetError as exc:
        return BudgetFailure.from_error(exc)


def _update(
    budget_id: BudgetId,
    new_limit: Any,
    categories: list[Category],
    existing: list[Budget],
    preferences: UserPreferences,
) -> BudgetSuccess:
    amount = coerce_amount(new_limit)
    budget = next((b for b in existing if b.id == budget_id), None)
    if budget is None:
        raise NotFoundError(f"Budget {budget_id!r} not found")
    category = _category(categories, budget.category_id)
    month_budgets = _in_month(existing, month_start(budget.month))
    updated = replace(budget, limit_amount=amount)

    if is_parent(category):
        required = child_budget_sum(month_budgets, category.id, categories)
        if amount < required:
            raise ParentBelowChildrenError(
                f"The {category.name or category.id} budget must be at least {required:.2f} "
                "to cover its subcategory budgets"
            )
        return BudgetSuccess(updated)

    if not preferences.auto_adjust_parent_budgets:
        return BudgetSuccess(updated)
    parent = _parent(categories, category)
    parent_budget = _budget_for(month_budgets, parent.id)
    if parent_budget is None:
        return BudgetSuccess(updated)

    parent_limit = Decimal(parent_budget.limit_amount)
    sibling_sum = child_budget_sum(month_budgets, parent.id, categories, exclude_budget_id=budget.id)
    new_sum = sibling_sum + amount
    old_sum = sibling_sum + Decimal(budget.limit_amount)
    if should_auto_increase(new_sum, parent_limit):
        adjusted, notice = _adjust(parent_budget, new_sum, AdjustmentReason.INCREASED)
    elif should_auto_decrease(old_sum, new_sum, parent_limit):
        adjusted, notice = _adjust(parent_budget, new_sum, AdjustmentReason.DECREASED)
    else:
        return BudgetSuccess(updated)
    return BudgetSuccess(updated, parent_budget=adjusted, parent_adjustment=notice)


def update_budget(
    budget_id: BudgetId,
    new_limit: Any,
    tree: CategorySource,
    existing_budgets: Iterable[Budget],
    preferences: UserPreferences | None = None,
) -> BudgetSuccess | BudgetFailure:
    """Change a budget's limit, keeping its parent consistent.

    Editing a child may raise or lower the parent when auto-adjust is on.
    Editing a parent below the sum of its children fails with
    ``parent_below_children`` and changes nothing.
    """

    try:
        return _update(
            budget_id,
            new_limit,
            list(iter_categories(tree)),
            list(existing_budgets),
            preferences or UserPreferences(),
        )
    except BudgetError as exc:
        return BudgetFailure.from_error(exc)


def delete_budget(budget_id: BudgetId, existing_budgets: Iterable[Budget]) -> BudgetSuccess | BudgetFailure:
    """Delete unconditionally.

    The parent of a deleted child budget keeps its limit even when it was in
    lock-step with the children before the delete.
    """

    budget = next((b for b in existing_budgets if b.id == budget_id), None)
    if budget is None:
        return BudgetFailure.from_error(NotFoundError(f"Budget {budget_id!r} not found"))
    return BudgetSuccess(budget)


def copy_previous_month(
    target_month: date | str,
    previous_budgets: Iterable[Budget],
    target_budgets: Iterable[Budget] = (),
    tree: CategorySource = (),
) -> CopySuccess | BudgetFailure:
    """Copy every budget of the month before ``target_month`` into it.

    Rows are copied as-is, without re-running the auto-adjust rules. The copy
    is all-or-nothing: an empty source month fails with ``nothing_to_copy``
    and any category already budgeted in the target month fails with
    ``duplicate_budget``.
    """

    target = month_start(target_month)
    source = previous_month(target)
    rows = _in_month(previous_budgets, source)
    if not rows:
        return BudgetFailure.from_error(NothingToCopyError(f"No budgets to copy from {month_label(source)}"))

    taken = {b.category_id for b in _in_month(target_budgets, target)}
    clashes = [b.category_id for b in rows if b.category_id in taken]
    if clashes:
        categories = list(iter_categories(tree))
        names = ", ".join(
            (found.name if (found := find_by_id(categories, cid)) is not None and found.name else str(cid))
            for cid in clashes
        )
        return BudgetFailure.from_error(
            DuplicateBudgetError(f"{month_label(target)} already has budgets for: {names}")
        )

    return CopySuccess(
        tuple(
            Budget(id=None, category_id=b.category_id, limit_amount=b.limit_amount, month=target, user_id=b.user_id)
            for b in rows
        )
    )


def preflight_child_limit(
    category_id: CategoryId,
    month: date | str,
    limit_amount: Any,
    tree: CategorySource,
    budgets: Iterable[Budget],
    preferences: UserPreferences | None = None,
    *,
    exclude_budget_id: BudgetId | None = None,
) -> BudgetFailure | None:
    """Form-level check run before submitting a child budget.

    Returns ``None`` when the request may proceed. When auto-adjust is
    disabled and the child limits would exceed the parent's budget, returns a
    ``child_exceeds_parent`` failure so the form can block the submission.
    Pass ``exclude_budget_id`` when checking an edit.
    """

    preferences = preferences or UserPreferences()
    try:
        amount = coerce_amount(limit_amount)
        categories = list(iter_categories(tree))
        category = _category(categories, category_id)
        if is_parent(category) or preferences.auto_adjust_parent_budgets:
            return None
        parent = _parent(categories, category)
        month_budgets = _in_month(budgets, month_start(month))
        parent_budget = _budget_for(month_budgets, parent.id)
        if parent_budget is None:
            return None
        child_sum = child_budget_sum(month_budgets, parent.id, categories, exclude_budget_id=exclude_budget_id)
        child_sum += amount
        parent_limit = Decimal(parent_budget.limit_amount)
        if should_auto_increase(child_sum, parent_limit):
            raise ChildExceedsParentError(
                f"Subcategory budgets of {parent.name or parent.id} would total {child_sum:.2f}, "
                f"above its {parent_limit:.2f} budget. Raise the parent budget first or enable "
                "automatic parent adjustment."
            )
    except BudgetError as exc:
        return BudgetFailure.from_error(exc)
    return None
