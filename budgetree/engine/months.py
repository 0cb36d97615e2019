"""Month arithmetic for budgets, which are always keyed by first-of-month dates."""

from __future__ import annotations

from datetime import date, datetime

__all__ = [
    "month_start",
    "previous_month",
    "next_month",
    "month_bounds",
    "month_label",
    "month_key",
    "month_options",
]

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def month_start(value: date | datetime | str) -> date:
    """Return the first day of the month containing ``value``.

    Args:
      value: A :class:`date`, a :class:`datetime` or a string formatted as
        ``YYYY-MM`` or ``YYYY-MM-DD``.

    Returns:
      The first-of-month :class:`date`.

    Raises:
      ValueError: If ``value`` cannot be interpreted as a month.
    """

    if isinstance(value, datetime):
        return date(value.year, value.month, 1)
    if isinstance(value, date):
        return date(value.year, value.month, 1)
    if isinstance(value, str):
        text = value.strip()
        for fmt in ("%Y-%m", "%Y-%m-%d"):
            try:
                parsed = datetime.strptime(text, fmt)
            except ValueError:
                continue
            return date(parsed.year, parsed.month, 1)
        raise ValueError(f"Expected YYYY-MM or YYYY-MM-DD, got {value!r}")
    raise ValueError(f"Unsupported month value: {value!r}")


def _shift(month: date, offset: int) -> date:
    index = month.year * 12 + (month.month - 1) + offset
    return date(index // 12, index % 12 + 1, 1)


def previous_month(month: date | datetime | str) -> date:
    return _shift(month_start(month), -1)


def next_month(month: date | datetime | str) -> date:
    return _shift(month_start(month), 1)


def month_bounds(month: date | datetime | str) -> tuple[date, date]:
    """Return the half-open ``[start, end)`` date range covering ``month``."""

    start = month_start(month)
    return start, _shift(start, 1)


def month_label(month: date | datetime | str) -> str:
    """Human readable label such as ``"January 2026"``."""

    start = month_start(month)
    return f"{MONTH_NAMES[start.month - 1]} {start.year}"


def month_key(month: date | datetime | str) -> str:
    """Compact ``YYYY-MM`` key used in query strings and form values."""

    start = month_start(month)
    return f"{start.year:04d}-{start.month:02d}"


def month_options(
    back: int = 3,
    forward: int = 12,
    today: date | None = None,
) -> list[tuple[str, str]]:
    """List ``(key, label)`` pairs around the current month.

    The list holds ``back`` months before the current one, the current month
    and ``forward - 1`` months after it, in chronological order.
    """

    current = month_start(today or date.today())
    offsets = list(range(-back, 0)) + list(range(0, max(forward, 0)))
    return [(month_key(_shift(current, i)), month_label(_shift(current, i))) for i in offsets]
