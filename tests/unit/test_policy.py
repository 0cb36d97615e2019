from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from budgetree.engine.policy import POLICY_ENV_VAR, BudgetPolicy, PolicyError, load_policy


def test_defaults_without_file() -> None:
    policy = load_policy()

    assert policy == BudgetPolicy()
    assert policy.parent_seed_factor == Decimal(2)
    assert policy.warning_threshold == Decimal(90)


def test_load_from_budgets_section(tmp_path: Path) -> None:
    path = tmp_path / "policy.yml"
    path.write_text("budgets:\n  parent_seed_factor: 1.5\n  warning_threshold: 80\n", encoding="utf-8")

    policy = load_policy(path)

    assert policy.parent_seed_factor == Decimal("1.5")
    assert policy.warning_threshold == Decimal(80)


def test_environment_variable_is_used(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "policy.yml"
    path.write_text("warning_threshold: 95\n", encoding="utf-8")
    monkeypatch.setenv(POLICY_ENV_VAR, str(path))

    policy = load_policy()

    assert policy.warning_threshold == Decimal(95)
    assert policy.parent_seed_factor == Decimal(2)


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "policy.yml"
    path.write_text("", encoding="utf-8")

    assert load_policy(path) == BudgetPolicy()


def test_invalid_values_are_all_reported(tmp_path: Path) -> None:
    path = tmp_path / "policy.yml"
    path.write_text("budgets:\n  parent_seed_factor: 0.5\n  warning_threshold: lots\n", encoding="utf-8")

    with pytest.raises(PolicyError) as excinfo:
        load_policy(path)

    assert len(excinfo.value.errors) == 2
    assert "parent_seed_factor" in str(excinfo.value)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_policy(tmp_path / "absent.yml")
