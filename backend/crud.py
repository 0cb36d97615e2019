"""CRUD helpers and engine glue for the budgeting backend.

Budget writes never decide anything themselves: they load the month's
snapshot, ask :mod:`budgetree.engine.budgets` for a result and persist the
rows it names. The budget row and its parent row are flushed in the same
session, so the request's transaction commits both or neither.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from budgetree.engine import budgets as engine_budgets
from budgetree.engine import categories as engine_categories
from budgetree.engine.logging import audit_fields, setup_logger
from budgetree.engine.months import month_bounds, month_label, month_start, previous_month
from budgetree.engine.policy import BudgetPolicy

from . import models, schemas

logger = setup_logger("budgetree.backend.crud")

CENT = Decimal("0.01")
MonthLike = Union[date, str]


class EntityNotFoundError(RuntimeError):
    """Raised when an entity cannot be located in the database."""


class EntityConflictError(RuntimeError):
    """Raised when a write would break a uniqueness or hierarchy rule."""


class BudgetRuleError(RuntimeError):
    """Raised when the budget engine rejects an operation."""

    def __init__(self, failure: engine_budgets.BudgetFailure) -> None:
        super().__init__(failure.message)
        self.failure = failure


def _to_engine_category(row: models.Category) -> engine_categories.Category:
    return engine_categories.Category(
        id=row.id,
        parent_id=row.parent_id,
        name=row.name,
        color=row.color,
        sort_order=row.sort_order,
        is_active=row.is_active,
    )


def _to_engine_budget(row: models.Budget) -> engine_budgets.Budget:
    return engine_budgets.Budget(
        id=row.id,
        category_id=row.category_id,
        limit_amount=Decimal(row.limit_amount),
        month=row.month,
    )


def _to_engine_expense(row: models.Expense) -> engine_budgets.Expense:
    return engine_budgets.Expense(
        id=row.id,
        category_id=row.category_id,
        amount=Decimal(row.amount),
        date=row.incurred_on,
    )


# Categories


def list_categories(session: Session, include_inactive: bool = False) -> List[models.Category]:
    stmt = select(models.Category).order_by(models.Category.sort_order, models.Category.name)
    if not include_inactive:
        stmt = stmt.where(models.Category.is_active.is_(True))
    return list(session.scalars(stmt))


def get_category(session: Session, category_id: int) -> models.Category:
    category = session.get(models.Category, category_id)
    if category is None:
        raise EntityNotFoundError(f"Category {category_id} not found")
    return category


def create_category(session: Session, category_in: schemas.CategoryCreate) -> models.Category:
    if category_in.parent_id is not None:
        parent = get_category(session, category_in.parent_id)
        if parent.parent_id is not None or not parent.is_active:
            raise EntityConflictError("Subcategories can only be created under an active top-level category")
    category = models.Category(**category_in.model_dump())
    session.add(category)
    session.flush()
    session.refresh(category)
    return category


def update_category(session: Session, category_id: int, update_in: schemas.CategoryUpdate) -> models.Category:
    category = get_category(session, category_id)
    for field, value in update_in.model_dump(exclude_unset=True).items():
        setattr(category, field, value)
    session.flush()
    session.refresh(category)
    return category


def delete_category(session: Session, category_id: int) -> None:
    """Soft-delete a category; a parent takes its children with it."""
    category = get_category(session, category_id)
    category.is_active = False
    children = session.scalars(select(models.Category).where(models.Category.parent_id == category.id))
    for child in children:
        child.is_active = False
    session.flush()


def category_tree(session: Session, include_inactive: bool = False) -> List[engine_categories.CategoryNode]:
    rows = list_categories(session, include_inactive=include_inactive)
    return engine_categories.build_tree(
        (_to_engine_category(row) for row in rows), include_inactive=include_inactive
    )


def category_tree_read(session: Session) -> List[schemas.CategoryNodeRead]:
    rows = {row.id: row for row in list_categories(session)}
    return [
        schemas.CategoryNodeRead(
            **schemas.CategoryRead.model_validate(rows[node.id]).model_dump(),
            children=[schemas.CategoryRead.model_validate(rows[child.id]) for child in node.children],
        )
        for node in category_tree(session)
    ]


def reorder_categories(session: Session, ordered_ids: Iterable[int]) -> List[models.Category]:
    """Persist a drag-and-drop order for a set of sibling categories."""
    rows = [get_category(session, category_id) for category_id in ordered_ids]
    if len({row.parent_id for row in rows}) > 1:
        raise EntityConflictError("Only sibling categories can be reordered together")
    renumbered = engine_categories.renumber([_to_engine_category(row) for row in rows])
    for row, category in zip(rows, renumbered):
        row.sort_order = category.sort_order
    session.flush()
    return engine_categories.sort_by_order(rows)


# Expenses


def list_expenses(session: Session, month: Optional[MonthLike] = None) -> List[models.Expense]:
    stmt = select(models.Expense).order_by(models.Expense.incurred_on.desc())
    if month is not None:
        start, end = month_bounds(month)
        stmt = stmt.where(models.Expense.incurred_on >= start, models.Expense.incurred_on < end)
    return list(session.scalars(stmt))


def get_expense(session: Session, expense_id: int) -> models.Expense:
    expense = session.get(models.Expense, expense_id)
    if expense is None:
        raise EntityNotFoundError(f"Expense {expense_id} not found")
    return expense


def create_expense(session: Session, expense_in: schemas.ExpenseCreate) -> models.Expense:
    data = expense_in.model_dump(exclude_unset=True)
    if data.get("category_id") is not None:
        get_category(session, data["category_id"])
    expense = models.Expense(**data)
    session.add(expense)
    session.flush()
    session.refresh(expense)
    return expense


def update_expense(session: Session, expense_id: int, update_in: schemas.ExpenseUpdate) -> models.Expense:
    expense = get_expense(session, expense_id)
    for field, value in update_in.model_dump(exclude_unset=True).items():
        setattr(expense, field, value)
    session.flush()
    session.refresh(expense)
    return expense


def delete_expense(session: Session, expense_id: int) -> None:
    expense = get_expense(session, expense_id)
    session.delete(expense)
    session.flush()


# Preferences


def get_preferences(session: Session) -> models.UserPreference:
    preference = session.scalars(select(models.UserPreference).limit(1)).first()
    if preference is None:
        preference = models.UserPreference(auto_adjust_parent_budgets=True)
        session.add(preference)
        session.flush()
    return preference


def update_preferences(session: Session, update_in: schemas.PreferencesUpdate) -> models.UserPreference:
    preference = get_preferences(session)
    preference.auto_adjust_parent_budgets = update_in.auto_adjust_parent_budgets
    session.flush()
    session.refresh(preference)
    return preference


def _engine_preferences(session: Session) -> engine_budgets.UserPreferences:
    return engine_budgets.UserPreferences(
        auto_adjust_parent_budgets=bool(get_preferences(session).auto_adjust_parent_budgets)
    )


# Budgets


def list_budgets(session: Session, month: Optional[MonthLike] = None) -> List[models.Budget]:
    stmt = select(models.Budget).order_by(models.Budget.month, models.Budget.category_id)
    if month is not None:
        stmt = stmt.where(models.Budget.month == month_start(month))
    return list(session.scalars(stmt))


def get_budget(session: Session, budget_id: int) -> models.Budget:
    budget = session.get(models.Budget, budget_id)
    if budget is None:
        raise EntityNotFoundError(f"Budget {budget_id} not found")
    return budget


def month_snapshot(
    session: Session, month: MonthLike
) -> Tuple[List[engine_categories.Category], List[engine_budgets.Budget], List[engine_budgets.Expense]]:
    """Load the categories, budgets and categorised expenses the engine needs."""
    categories = [_to_engine_category(row) for row in list_categories(session, include_inactive=True)]
    budgets = [_to_engine_budget(row) for row in list_budgets(session, month)]
    expenses = [_to_engine_expense(row) for row in list_expenses(session, month) if row.category_id is not None]
    return categories, budgets, expenses


def _persist(session: Session, budget: engine_budgets.Budget) -> models.Budget:
    if budget.id is None:
        row = models.Budget(category_id=budget.category_id, limit_amount=budget.limit_amount, month=budget.month)
        session.add(row)
        return row
    row = get_budget(session, int(budget.id))
    row.limit_amount = budget.limit_amount
    return row


def _adjustment_read(notice: engine_budgets.ParentAdjustment) -> schemas.ParentAdjustmentRead:
    return schemas.ParentAdjustmentRead(
        category_id=int(notice.category_id),
        old_amount=notice.old_amount,
        new_amount=notice.new_amount,
        reason=notice.reason.value,
    )


def _apply(session: Session, result: engine_budgets.BudgetSuccess) -> schemas.BudgetWriteRead:
    parent_row = _persist(session, result.parent_budget) if result.parent_budget is not None else None
    row = _persist(session, result.budget)
    try:
        session.flush()
    except IntegrityError as exc:
        raise EntityConflictError("A budget for this category already exists for this month") from exc
    session.refresh(row)
    if parent_row is not None:
        session.refresh(parent_row)

    notice = result.parent_adjustment
    if notice is not None:
        logger.info(
            "Parent budget for category %s %s from %s to %s",
            notice.category_id,
            notice.reason.value,
            notice.old_amount,
            notice.new_amount,
            extra=audit_fields(notice.category_id, row.month, notice.reason),
        )
    return schemas.BudgetWriteRead(
        budget=schemas.BudgetRead.model_validate(row),
        parent_budget=schemas.BudgetRead.model_validate(parent_row) if parent_row is not None else None,
        parent_adjustment=_adjustment_read(notice) if notice is not None else None,
    )


def _raise_on_failure(result):
    if not result.success:
        logger.info("Budget operation rejected (%s): %s", result.error_kind.value, result.message)
        raise BudgetRuleError(result)
    return result


def create_budget(
    session: Session, budget_in: schemas.BudgetCreate, policy: Optional[BudgetPolicy] = None
) -> schemas.BudgetWriteRead:
    month = month_start(budget_in.month)
    target = session.get(models.Category, budget_in.category_id)
    if target is not None and not target.is_active:
        # Soft-deleted categories keep their budgets but cannot receive new ones.
        raise BudgetRuleError(
            engine_budgets.BudgetFailure(
                error_kind=engine_budgets.ErrorKind.NOT_FOUND,
                message=f"Category {target.name} has been deleted",
            )
        )
    categories, existing, _ = month_snapshot(session, month)
    request = engine_budgets.BudgetRequest(
        category_id=budget_in.category_id, limit_amount=budget_in.limit_amount, month=month
    )
    result = _raise_on_failure(
        engine_budgets.create_budget(request, categories, existing, _engine_preferences(session), policy)
    )
    logger.info(
        "Creating budget for category %s in %s",
        budget_in.category_id,
        month_label(month),
        extra=audit_fields(budget_in.category_id, month),
    )
    return _apply(session, result)


def update_budget(session: Session, budget_id: int, update_in: schemas.BudgetUpdate) -> schemas.BudgetWriteRead:
    row = get_budget(session, budget_id)
    categories, existing, _ = month_snapshot(session, row.month)
    result = _raise_on_failure(
        engine_budgets.update_budget(
            budget_id, update_in.limit_amount, categories, existing, _engine_preferences(session)
        )
    )
    logger.info(
        "Updating budget %s to %s",
        budget_id,
        update_in.limit_amount,
        extra=audit_fields(row.category_id, row.month),
    )
    return _apply(session, result)


def delete_budget(session: Session, budget_id: int) -> None:
    row = get_budget(session, budget_id)
    deleted = _raise_on_failure(engine_budgets.delete_budget(budget_id, [_to_engine_budget(row)])).budget
    session.delete(row)
    session.flush()
    logger.info(
        "Deleted budget %s", budget_id, extra=audit_fields(deleted.category_id, deleted.month)
    )


def copy_budgets(session: Session, month: MonthLike) -> List[models.Budget]:
    """Copy the previous month's budgets into ``month``."""
    target = month_start(month)
    categories = [_to_engine_category(row) for row in list_categories(session, include_inactive=True)]
    previous = [_to_engine_budget(row) for row in list_budgets(session, previous_month(target))]
    current = [_to_engine_budget(row) for row in list_budgets(session, target)]
    result = _raise_on_failure(engine_budgets.copy_previous_month(target, previous, current, categories))
    rows = [_persist(session, budget) for budget in result.budgets]
    try:
        session.flush()
    except IntegrityError as exc:
        raise EntityConflictError("Some budgets already exist for this month") from exc
    logger.info("Copied %d budgets into %s", len(rows), month_label(target), extra=audit_fields(month=target))
    return rows


def preflight(session: Session, request: schemas.PreflightRequest) -> schemas.PreflightRead:
    month = month_start(request.month)
    categories, budgets, _ = month_snapshot(session, month)
    failure = engine_budgets.preflight_child_limit(
        request.category_id,
        month,
        request.limit_amount,
        categories,
        budgets,
        _engine_preferences(session),
        exclude_budget_id=request.budget_id,
    )
    if failure is None:
        return schemas.PreflightRead(ok=True)
    return schemas.PreflightRead(ok=False, error_kind=failure.error_kind.value, message=failure.message)


def _status_read(status: engine_budgets.BudgetStatus) -> schemas.BudgetStatusRead:
    return schemas.BudgetStatusRead(
        spent=status.spent,
        remaining=status.remaining,
        percentage=status.percentage.quantize(CENT),
        is_over_budget=status.is_over_budget,
    )


def budget_statuses(session: Session, month: MonthLike) -> List[schemas.BudgetWithStatusRead]:
    categories, budgets, expenses = month_snapshot(session, month)
    labels = engine_categories.build_lookup_map(categories)
    rows = {row.id: row for row in list_budgets(session, month)}
    reads = []
    for budget, status in engine_budgets.statuses_for_month(budgets, categories, expenses):
        label = labels.get(budget.category_id)
        reads.append(
            schemas.BudgetWithStatusRead(
                budget=schemas.BudgetRead.model_validate(rows[budget.id]),
                category_name=label.name if label else None,
                parent_name=label.parent_name if label else None,
                status=_status_read(status),
            )
        )
    return reads


def budget_hierarchy(session: Session, month: MonthLike) -> List[schemas.BudgetGroupRead]:
    categories, budgets, expenses = month_snapshot(session, month)
    category_rows = {row.id: row for row in list_categories(session, include_inactive=True)}
    budget_rows = {row.id: row for row in list_budgets(session, month)}

    def line(item: engine_budgets.BudgetLine, parent_name: Optional[str]) -> schemas.BudgetWithStatusRead:
        return schemas.BudgetWithStatusRead(
            budget=schemas.BudgetRead.model_validate(budget_rows[item.budget.id]),
            category_name=item.category.name,
            parent_name=parent_name,
            status=_status_read(item.status),
        )

    return [
        schemas.BudgetGroupRead(
            category=schemas.CategoryRead.model_validate(category_rows[group.category.id]),
            parent=line(group.parent, None) if group.parent is not None else None,
            children=[line(child, group.category.name) for child in group.children],
        )
        for group in engine_budgets.budget_hierarchy(budgets, categories, expenses)
    ]


def month_summary(
    session: Session, month: MonthLike, policy: Optional[BudgetPolicy] = None
) -> schemas.MonthSummaryRead:
    categories, budgets, expenses = month_snapshot(session, month)
    summary = engine_budgets.summarize_month(budgets, categories, expenses, policy)
    start = month_start(month)
    return schemas.MonthSummaryRead(
        month=start,
        label=month_label(start),
        total_budget=summary.total_budget,
        total_spent=summary.total_spent,
        overall_percentage=summary.overall_percentage.quantize(CENT),
        over_budget=summary.over_budget,
        warning=summary.warning,
        on_track=summary.on_track,
        overspend=summary.overspend,
    )
