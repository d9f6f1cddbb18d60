"""
Date helpers shared by the rule engines.

Stored records carry dates as ``DD/MM/YYYY`` strings (legacy spreadsheet
imports) or ISO ``YYYY-MM-DD``. Everything here is pure except ``today()``,
which is only meant to be called at the HTTP boundary.
"""

import calendar
from datetime import date, datetime


def today() -> date:
    return date.today()


def reference_date(value=None) -> date:
    """The "today" an evaluation runs against: the caller's date when given, else the server clock."""
    return parse_date(value) or today()


def parse_date(value, default: date | None = None) -> date | None:
    """Parse ``DD/MM/YYYY`` or ISO dates. Blank or malformed input returns ``default``."""
    if value is None:
        return default
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return default
    try:
        if "/" in text:
            d, m, y = text.split("/")
            return date(int(y), int(m), int(d))
        # drop any time component ("2024-01-15T08:00:00")
        return date.fromisoformat(text[:10])
    except ValueError:
        return default


def add_months(d: date, months: int) -> date:
    """Calendar-month addition, clamping the day to the end of the target month.

    Results outside the representable range saturate at ``date.min``/``date.max``.
    """
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    if year > date.max.year:
        return date.max
    if year < date.min.year:
        return date.min
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last_day))


def month_diff(start: date, end: date) -> int:
    """Whole calendar months from ``start`` to ``end``; day-of-month is ignored."""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    return max(0, months)


def format_date(value) -> str:
    parsed = parse_date(value)
    if parsed is None:
        return "-"
    return parsed.strftime("%d/%m/%Y")
