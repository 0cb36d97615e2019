"""Main namespace of the budgetree engine."""

from __future__ import annotations

from . import budgets, categories, months, policy

__all__ = [
    "budgets",
    "categories",
    "months",
    "policy",
]
