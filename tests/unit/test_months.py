from __future__ import annotations

from datetime import date, datetime

import pytest

from budgetree.engine.months import (
    month_bounds,
    month_key,
    month_label,
    month_options,
    month_start,
    next_month,
    previous_month,
)


@pytest.mark.parametrize(
    "value",
    [date(2026, 3, 17), datetime(2026, 3, 31, 23, 59), "2026-03", "2026-03-09", " 2026-03 "],
)
def test_month_start_normalises(value) -> None:
    assert month_start(value) == date(2026, 3, 1)


@pytest.mark.parametrize("value", ["03/2026", "2026-13", "", 202603])
def test_month_start_rejects_garbage(value) -> None:
    with pytest.raises(ValueError):
        month_start(value)


def test_previous_and_next_cross_years() -> None:
    assert previous_month("2026-01") == date(2025, 12, 1)
    assert next_month(date(2025, 12, 5)) == date(2026, 1, 1)


def test_bounds_and_labels() -> None:
    assert month_bounds("2024-02") == (date(2024, 2, 1), date(2024, 3, 1))
    assert month_label("2026-01-20") == "January 2026"
    assert month_key(date(2026, 9, 30)) == "2026-09"


def test_month_options_window() -> None:
    options = month_options(back=2, forward=3, today=date(2026, 1, 15))

    assert [key for key, _ in options] == ["2025-11", "2025-12", "2026-01", "2026-02", "2026-03"]
    assert options[2] == ("2026-01", "January 2026")
