# shop_accountant/utils/dates.py
"""
Calendar-date helpers.

All values are local calendar dates rendered as ``YYYY-MM-DD``. Date-only
strings coming from the backend are never shifted through UTC: a stored
``2025-02-05`` stays ``2025-02-05`` whatever the local offset is.
"""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional

_YMD_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Formats tried when a value is neither ISO nor "YYYY-MM-DD ..."
_FALLBACK_FORMATS = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d %b %Y",
    "%b %d %Y",
    "%a %b %d %Y",
)


def get_local_date(d: Optional[date] = None) -> str:
    """Return the local calendar date of `d` (default: today) as YYYY-MM-DD."""
    d = d or datetime.now()
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def get_first_of_month_local(d: Optional[date] = None) -> str:
    """First day of the month of `d` (default: today) as YYYY-MM-DD."""
    d = d or datetime.now()
    return f"{d.year:04d}-{d.month:02d}-01"


def _parse_loose(value: str) -> Optional[datetime]:
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        dt = None
    if dt is None:
        for fmt in _FALLBACK_FORMATS:
            try:
                dt = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue
    if dt is not None and dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt


def extract_yyyymmdd(value: Any) -> str:
    """
    Reduce a date-ish value to YYYY-MM-DD without timezone shifting.

    - datetime/date objects are formatted as-is
    - "2025-02-05T23:30:00Z" -> "2025-02-05" (truncate at "T")
    - "2025-02-05 10:00"     -> "2025-02-05" (truncate at the first space)
    - other strings are parsed and rendered with local fields
    - empty or unparseable input -> ""
    """
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return get_local_date(value)

    s = str(value).strip()
    if not s:
        return ""
    for sep in ("T", " "):
        head = s.split(sep, 1)[0]
        if head != s and _YMD_RE.match(head):
            s = head
            break
    if _YMD_RE.match(s):
        return s

    dt = _parse_loose(s)
    return get_local_date(dt) if dt else ""


def format_long_date(value: Any) -> str:
    """'2025-02-05' -> 'Wednesday 05/02/2025'; 'N/A' when missing or invalid."""
    ymd = extract_yyyymmdd(value)
    if not ymd:
        return "N/A"
    try:
        d = datetime.strptime(ymd, "%Y-%m-%d")
    except ValueError:
        return "N/A"
    return f"{d.strftime('%A')} {d.day:02d}/{d.month:02d}/{d.year:04d}"


def in_date_range(value: Any, start: str, end: str) -> bool:
    """Inclusive YYYY-MM-DD range check; records without a date are excluded."""
    ymd = extract_yyyymmdd(value)
    if not ymd:
        return False
    return (not start or ymd >= start) and (not end or ymd <= end)
