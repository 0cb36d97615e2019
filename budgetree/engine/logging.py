"""Structured logging helpers shared by the engine's callers."""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Final

CONSOLE_FORMAT: Final[str] = "[%(levelname)s] %(name)s: %(message)s"
DEFAULT_LEVEL: Final[str] = "INFO"
AUDIT_DIR: Final[Path] = Path(os.environ.get("BUDGETREE_LOG_DIR", "logs"))
LOG_PATH: Final[Path] = AUDIT_DIR / "budgetree.log"
JSON_ENV_FLAG: Final[str] = "BUDGETREE_JSON_LOGS"
LEVEL_ENV_FLAG: Final[str] = "BUDGETREE_LOG_LEVEL"


class JsonAuditFormatter(logging.Formatter):
    """Format log records as single-line JSON payloads."""

    def format(self, record: logging.LogRecord) -> str:
        """Convert a record into a JSON string with budget audit fields."""

        timestamp = datetime.fromtimestamp(record.created, tz=UTC).isoformat()
        payload = {
            "timestamp": timestamp,
            "level": record.levelname,
            "source": record.name,
            "message": record.getMessage(),
            "category_id": _coerce_text(getattr(record, "category_id", None)),
            "month": _coerce_text(getattr(record, "month", None)),
            "adjustment": _coerce_text(getattr(record, "adjustment", None)),
        }
        return json.dumps(payload, ensure_ascii=False)


def _coerce_text(value: object) -> str | None:
    """Render arbitrary extra fields as text, keeping ``None`` as-is."""

    if value is None:
        return None
    return str(value)


def audit_fields(
    category_id: object = None,
    month: date | str | None = None,
    adjustment: object = None,
) -> dict[str, object]:
    """Build the ``extra`` mapping read by :class:`JsonAuditFormatter`.

    Args:
      category_id: Category the record is about.
      month: A date (rendered as ``YYYY-MM``) or an already formatted month.
      adjustment: Parent adjustment reason; enum members are stored by value.

    Returns:
      Only the fields that were given, so absent ones log as ``null``.
    """

    fields: dict[str, object] = {}
    if category_id is not None:
        fields["category_id"] = category_id
    if month is not None:
        fields["month"] = month.strftime("%Y-%m") if isinstance(month, date) else month
    if adjustment is not None:
        fields["adjustment"] = getattr(adjustment, "value", adjustment)
    return fields


def _ensure_audit_dir() -> None:
    """Create the audit directory on first use, so importing stays side-effect free."""

    AUDIT_DIR.mkdir(parents=True, exist_ok=True)


def _resolve_level(level: str | int | None) -> int:
    """Pick the log level from the environment, the argument or the default."""

    env_level = os.environ.get(LEVEL_ENV_FLAG)
    if env_level:
        candidate = env_level.strip().upper()
    elif isinstance(level, str):
        candidate = level.strip().upper()
    elif isinstance(level, int):
        return int(level)
    else:
        candidate = DEFAULT_LEVEL
    resolved = logging.getLevelName(candidate)
    return int(resolved) if isinstance(resolved, int) else logging.INFO


def _json_logging_enabled(explicit: bool) -> bool:
    """Return ``True`` when JSON logs are requested by flag or environment."""

    if explicit:
        return True
    value = os.environ.get(JSON_ENV_FLAG)
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _ensure_console_handler(logger: logging.Logger, level: int) -> None:
    """Attach a console handler unless the logger already carries one."""

    for handler in logger.handlers:
        if getattr(handler, "_budgetree_console", False):
            handler.setLevel(level)
            return
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    stream_handler._budgetree_console = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)


def _ensure_json_handler(logger: logging.Logger, level: int) -> None:
    """Attach the JSON audit file handler, reusing an existing one."""

    for handler in logger.handlers:
        if getattr(handler, "_budgetree_json", False):
            handler.setLevel(level)
            return
    _ensure_audit_dir()
    json_handler = logging.FileHandler(LOG_PATH, encoding="utf-8")
    json_handler.setLevel(level)
    json_handler.setFormatter(JsonAuditFormatter())
    json_handler._budgetree_json = True  # type: ignore[attr-defined]
    logger.addHandler(json_handler)


def setup_logger(
    name: str,
    json_format: bool = False,
    level: str | int | None = None,
) -> logging.Logger:
    """Configure and return a logger with the budgetree handlers attached.

    Calling it again for the same name reuses the existing handlers and only
    refreshes their level.
    """

    resolved_level = _resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(resolved_level)
    # Keep propagating so capture handlers (pytest ``caplog``) see the records.
    logger.propagate = True
    _ensure_console_handler(logger, resolved_level)
    if _json_logging_enabled(json_format):
        _ensure_json_handler(logger, resolved_level)
    return logger


__all__ = ["JsonAuditFormatter", "audit_fields", "setup_logger"]
