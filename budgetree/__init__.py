"""Top-level package for the budgetree budgeting engine.

Exposes the package version for runtime checks and API banners.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.3.0"
