"""Shared pytest configuration for the budgetree engine tests."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest


def _insert_repo_root() -> None:
    """Make sure the repository root is importable."""

    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_insert_repo_root()

from budgetree.engine.budgets import Budget, Expense  # noqa: E402
from budgetree.engine.categories import Category  # noqa: E402

JANUARY = date(2026, 1, 1)


def pytest_report_header(config: pytest.Config) -> Iterable[str]:  # pragma: no cover - pytest hook
    """Show diagnostic context for the test run."""

    root = Path.cwd()
    log_level = os.environ.get("BUDGETREE_LOG_LEVEL", "INFO")
    return [f"budgetree repo: {root}", f"BUDGETREE_LOG_LEVEL={log_level}"]


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pin the log level and keep a developer's policy file out of the tests."""

    monkeypatch.setenv("BUDGETREE_LOG_LEVEL", "INFO")
    monkeypatch.delenv("BUDGETREE_POLICY_PATH", raising=False)
    monkeypatch.delenv("BUDGETREE_JSON_LOGS", raising=False)


@pytest.fixture()
def categories() -> list[Category]:
    """Housing (Rent, Utilities) and Food (Groceries), deliberately out of order."""

    return [
        Category(id=12, parent_id=1, name="Utilities", sort_order=2),
        Category(id=2, name="Food", sort_order=2),
        Category(id=1, name="Housing", sort_order=1),
        Category(id=11, parent_id=1, name="Rent", sort_order=1),
        Category(id=21, parent_id=2, name="Groceries", sort_order=1),
    ]


@pytest.fixture()
def make_budget():
    counter = iter(range(100, 10_000))

    def _make(category_id: int, amount: str, month: date = JANUARY) -> Budget:
        return Budget(id=next(counter), category_id=category_id, limit_amount=Decimal(amount), month=month)

    return _make


@pytest.fixture()
def make_expense():
    def _make(category_id: int, amount: str, day: date = date(2026, 1, 10)) -> Expense:
        return Expense(category_id=category_id, amount=Decimal(amount), date=day)

    return _make
