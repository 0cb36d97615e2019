"""Backend package providing the REST API that persists budgetree results."""

__all__ = [
    "database",
    "models",
    "schemas",
    "crud",
    "server",
]
