from __future__ import annotations

from decimal import Decimal

from budgetree.engine.budgets import budget_hierarchy, summarize_month
from budgetree.engine.categories import Category, build_tree
from budgetree.engine.policy import BudgetPolicy


def test_totals_do_not_double_count_children(categories, make_budget, make_expense) -> None:
    budgets = [make_budget(1, "1000"), make_budget(11, "600"), make_budget(21, "200")]
    expenses = [make_expense(11, "550"), make_expense(12, "100"), make_expense(21, "250")]

    summary = summarize_month(budgets, categories, expenses)

    # Housing covers Rent; Groceries has no budgeted parent and counts on its own.
    assert summary.total_budget == Decimal("1200")
    assert summary.total_spent == Decimal("900")
    assert summary.overall_percentage == Decimal(75)
    assert (summary.over_budget, summary.warning, summary.on_track) == (1, 1, 1)
    assert summary.overspend == Decimal(0)


def test_overspend_and_uncapped_overall(categories, make_budget, make_expense) -> None:
    summary = summarize_month([make_budget(2, "100")], categories, [make_expense(21, "150")])

    assert summary.overall_percentage == Decimal(150)
    assert summary.overspend == Decimal("50")


def test_warning_threshold_is_configurable(categories, make_budget, make_expense) -> None:
    budgets = [make_budget(2, "100")]
    expenses = [make_expense(2, "80")]

    assert summarize_month(budgets, categories, expenses).on_track == 1
    assert summarize_month(budgets, categories, expenses, BudgetPolicy(warning_threshold=Decimal(75))).warning == 1


def test_empty_month() -> None:
    summary = summarize_month([], [], [])

    assert summary.total_budget == Decimal(0)
    assert summary.overall_percentage == Decimal(0)


def test_hierarchy_groups_children_under_parents(categories, make_budget, make_expense) -> None:
    budgets = [make_budget(12, "300"), make_budget(1, "2000"), make_budget(11, "1500"), make_budget(21, "50")]
    groups = budget_hierarchy(budgets, build_tree(categories), [make_expense(11, "100")])

    assert [group.category.name for group in groups] == ["Housing", "Food"]
    housing, food = groups
    assert housing.parent.status.spent == Decimal("100")
    assert [line.category.name for line in housing.children] == ["Rent", "Utilities"]
    assert food.parent is None
    assert [line.budget.category_id for line in food.children] == [21]


def test_hierarchy_skips_parents_without_budgets(categories, make_budget) -> None:
    groups = budget_hierarchy([make_budget(1, "100")], categories, [])

    assert [group.category.id for group in groups] == [1]
    assert groups[0].children == ()


def test_hierarchy_tolerates_stray_children(categories, make_budget) -> None:
    stray = Category(id=50, parent_id=99, name="Stray")
    groups = budget_hierarchy([make_budget(1, "100"), make_budget(50, "10")], [*categories, stray], [])

    assert [group.category.id for group in groups] == [1]
