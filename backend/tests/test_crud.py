from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from backend import crud, schemas
from budgetree.engine.budgets import ErrorKind


def _budget(session, category_id: int, amount: str, month: str = "2026-01") -> schemas.BudgetWriteRead:
    return crud.create_budget(
        session, schemas.BudgetCreate(category_id=category_id, limit_amount=Decimal(amount), month=month)
    )


def _limits(session, month: str = "2026-01") -> dict[int, Decimal]:
    return {row.category_id: Decimal(row.limit_amount) for row in crud.list_budgets(session, month)}


def test_create_and_list_categories(db_session):
    created = crud.create_category(db_session, schemas.CategoryCreate(name="Food", description="Meals"))
    assert created.id is not None
    assert created.is_active is True

    categories = crud.list_categories(db_session)
    assert [category.name for category in categories] == ["Food"]


def test_subcategory_of_subcategory_is_rejected(db_session, housing):
    _, rent, _ = housing
    with pytest.raises(crud.EntityConflictError):
        crud.create_category(db_session, schemas.CategoryCreate(name="Deposit", parent_id=rent.id))


def test_soft_delete_parent_deactivates_children(db_session, housing):
    parent, rent, utilities = housing
    crud.delete_category(db_session, parent.id)

    assert crud.list_categories(db_session) == []
    inactive = crud.list_categories(db_session, include_inactive=True)
    assert {category.id for category in inactive} == {parent.id, rent.id, utilities.id}


def test_category_tree_groups_children(db_session, housing):
    parent, rent, utilities = housing
    crud.create_category(db_session, schemas.CategoryCreate(name="Food", sort_order=0))

    tree = crud.category_tree_read(db_session)

    assert [node.name for node in tree] == ["Food", "Housing"]
    assert [child.id for child in tree[1].children] == [rent.id, utilities.id]


def test_reorder_siblings_renumbers(db_session, housing):
    _, rent, utilities = housing
    ordered = crud.reorder_categories(db_session, [utilities.id, rent.id])

    assert [category.id for category in ordered] == [utilities.id, rent.id]
    assert (utilities.sort_order, rent.sort_order) == (1, 2)


def test_reorder_rejects_mixed_levels(db_session, housing):
    parent, rent, _ = housing
    with pytest.raises(crud.EntityConflictError):
        crud.reorder_categories(db_session, [parent.id, rent.id])


def test_list_expenses_filters_by_month(db_session, housing, add_expense):
    _, rent, _ = housing
    add_expense(rent.id, "1200.00", date(2026, 1, 1))
    add_expense(rent.id, "1100.00", date(2025, 12, 31))

    january = crud.list_expenses(db_session, "2026-01")
    assert [Decimal(expense.amount) for expense in january] == [Decimal("1200.00")]


def test_first_child_budget_seeds_parent(db_session, housing):
    parent, rent, _ = housing
    result = _budget(db_session, rent.id, "1500")

    assert result.parent_budget is not None
    assert result.parent_budget.category_id == parent.id
    assert result.parent_adjustment.reason == "created"
    assert result.parent_adjustment.old_amount == Decimal(0)
    assert _limits(db_session) == {parent.id: Decimal("3000"), rent.id: Decimal("1500")}


def test_housing_scenario(db_session, housing):
    parent, rent, utilities = housing
    _budget(db_session, parent.id, "2000")
    assert _budget(db_session, rent.id, "1500").parent_adjustment is None
    assert _budget(db_session, utilities.id, "300").parent_adjustment is None

    utilities_id = crud.list_budgets(db_session, "2026-01")[-1].id
    raised = crud.update_budget(db_session, utilities_id, schemas.BudgetUpdate(limit_amount=Decimal("700")))
    assert raised.parent_adjustment.reason == "increased"
    assert _limits(db_session)[parent.id] == Decimal("2200")

    parent_id = raised.parent_budget.id
    with pytest.raises(crud.BudgetRuleError) as excinfo:
        crud.update_budget(db_session, parent_id, schemas.BudgetUpdate(limit_amount=Decimal("2100")))
    assert excinfo.value.failure.error_kind is ErrorKind.PARENT_BELOW_CHILDREN
    assert _limits(db_session)[parent.id] == Decimal("2200")

    lowered = crud.update_budget(db_session, utilities_id, schemas.BudgetUpdate(limit_amount=Decimal("300")))
    assert lowered.parent_adjustment.reason == "decreased"
    assert _limits(db_session)[parent.id] == Decimal("1800")


def test_duplicate_budget_is_rejected(db_session, housing):
    parent, _, _ = housing
    _budget(db_session, parent.id, "500")

    with pytest.raises(crud.BudgetRuleError) as excinfo:
        _budget(db_session, parent.id, "600")
    assert excinfo.value.failure.error_kind is ErrorKind.DUPLICATE_BUDGET
    assert "Housing" in str(excinfo.value)
    assert "January 2026" in str(excinfo.value)


def test_invalid_amount_is_rejected(db_session, housing):
    parent, _, _ = housing
    with pytest.raises(crud.BudgetRuleError) as excinfo:
        _budget(db_session, parent.id, "0")
    assert excinfo.value.failure.error_kind is ErrorKind.INVALID_AMOUNT
    assert crud.list_budgets(db_session) == []


def test_auto_adjust_disabled_leaves_parent(db_session, housing):
    parent, rent, _ = housing
    crud.update_preferences(db_session, schemas.PreferencesUpdate(auto_adjust_parent_budgets=False))
    _budget(db_session, parent.id, "1000")

    result = _budget(db_session, rent.id, "1500")

    assert result.parent_adjustment is None
    assert _limits(db_session)[parent.id] == Decimal("1000")


def test_preflight_blocks_child_when_auto_adjust_disabled(db_session, housing):
    parent, rent, _ = housing
    crud.update_preferences(db_session, schemas.PreferencesUpdate(auto_adjust_parent_budgets=False))
    _budget(db_session, parent.id, "1000")

    blocked = crud.preflight(
        db_session,
        schemas.PreflightRequest(category_id=rent.id, limit_amount=Decimal("1500"), month="2026-01"),
    )
    allowed = crud.preflight(
        db_session,
        schemas.PreflightRequest(category_id=rent.id, limit_amount=Decimal("900"), month="2026-01"),
    )

    assert blocked.ok is False
    assert blocked.error_kind == "child_exceeds_parent"
    assert allowed.ok is True


def test_delete_child_keeps_parent_limit(db_session, housing):
    parent, rent, utilities = housing
    _budget(db_session, parent.id, "1800")
    _budget(db_session, rent.id, "1500")
    utilities_budget = _budget(db_session, utilities.id, "300").budget

    crud.delete_budget(db_session, utilities_budget.id)

    assert _limits(db_session) == {parent.id: Decimal("1800"), rent.id: Decimal("1500")}


def test_delete_missing_budget(db_session):
    with pytest.raises(crud.EntityNotFoundError):
        crud.delete_budget(db_session, 999)


def test_copy_previous_month(db_session, housing):
    parent, rent, _ = housing
    _budget(db_session, parent.id, "2000", month="2025-12")
    _budget(db_session, rent.id, "1500", month="2025-12")

    rows = crud.copy_budgets(db_session, "2026-01")

    assert len(rows) == 2
    assert all(row.month == date(2026, 1, 1) for row in rows)
    assert _limits(db_session) == {parent.id: Decimal("2000"), rent.id: Decimal("1500")}


def test_copy_is_all_or_nothing(db_session, housing):
    parent, rent, _ = housing
    _budget(db_session, parent.id, "2000", month="2025-12")
    _budget(db_session, rent.id, "1500", month="2025-12")
    _budget(db_session, parent.id, "2500")

    with pytest.raises(crud.BudgetRuleError) as excinfo:
        crud.copy_budgets(db_session, "2026-01")
    assert excinfo.value.failure.error_kind is ErrorKind.DUPLICATE_BUDGET
    assert _limits(db_session) == {parent.id: Decimal("2500")}


def test_copy_from_empty_month(db_session):
    with pytest.raises(crud.BudgetRuleError) as excinfo:
        crud.copy_budgets(db_session, "2026-01")
    assert excinfo.value.failure.error_kind is ErrorKind.NOTHING_TO_COPY


def test_statuses_roll_up_child_spending(db_session, housing, add_expense):
    parent, rent, utilities = housing
    _budget(db_session, parent.id, "2000")
    _budget(db_session, rent.id, "1500")
    add_expense(rent.id, "1200")
    add_expense(utilities.id, "150")
    add_expense(parent.id, "50")
    add_expense(rent.id, "999", date(2026, 2, 1))

    statuses = {item.category_name: item for item in crud.budget_statuses(db_session, "2026-01")}

    assert statuses["Housing"].status.spent == Decimal("1400")
    assert statuses["Housing"].status.percentage == Decimal("70.00")
    assert statuses["Rent"].status.spent == Decimal("1200")
    assert statuses["Rent"].parent_name == "Housing"
    assert statuses["Rent"].status.percentage == Decimal("80.00")


def test_hierarchy_and_summary(db_session, housing, add_expense):
    parent, rent, utilities = housing
    food = crud.create_category(db_session, schemas.CategoryCreate(name="Food", sort_order=2))
    _budget(db_session, parent.id, "2000")
    _budget(db_session, rent.id, "1500")
    _budget(db_session, food.id, "100")
    add_expense(rent.id, "1200")
    add_expense(food.id, "120")

    groups = crud.budget_hierarchy(db_session, "2026-01")
    assert [group.category.name for group in groups] == ["Housing", "Food"]
    assert [line.category_name for line in groups[0].children] == ["Rent"]
    assert groups[1].children == []

    summary = crud.month_summary(db_session, "2026-01")
    assert summary.label == "January 2026"
    assert summary.total_budget == Decimal("2100")
    assert summary.total_spent == Decimal("1320")
    assert summary.over_budget == 1
    assert summary.on_track == 2
    assert summary.overspend == Decimal(0)


def test_preferences_default_to_auto_adjust(db_session):
    assert crud.get_preferences(db_session).auto_adjust_parent_budgets is True
    updated = crud.update_preferences(db_session, schemas.PreferencesUpdate(auto_adjust_parent_budgets=False))
    assert updated.auto_adjust_parent_budgets is False
    assert crud.get_preferences(db_session).auto_adjust_parent_budgets is False


def test_soft_deleted_child_budget_still_counts_toward_parent(db_session, housing):
    parent, rent, utilities = housing
    parent_budget = _budget(db_session, parent.id, "1000").budget
    _budget(db_session, rent.id, "600")
    _budget(db_session, utilities.id, "300")
    crud.delete_category(db_session, utilities.id)
    internet = crud.create_category(db_session, schemas.CategoryCreate(name="Internet", parent_id=parent.id))

    result = _budget(db_session, internet.id, "300")

    assert result.parent_adjustment.reason == "increased"
    assert _limits(db_session)[parent.id] == Decimal("1200")
    resaved = crud.update_budget(db_session, parent_budget.id, schemas.BudgetUpdate(limit_amount=Decimal("1200")))
    assert resaved.budget.limit_amount == Decimal("1200")


def test_soft_deleted_category_cannot_receive_budget(db_session, housing):
    _, _, utilities = housing
    crud.delete_category(db_session, utilities.id)

    with pytest.raises(crud.BudgetRuleError) as excinfo:
        _budget(db_session, utilities.id, "100")
    assert excinfo.value.failure.error_kind is ErrorKind.NOT_FOUND
    assert crud.list_budgets(db_session) == []
