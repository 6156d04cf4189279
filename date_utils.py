"""
Date helpers for daily records.

Daily records are keyed by a canonical "YYYY-MM-DD" string on the local
calendar. Anything that does not round-trip through that format is treated
as unparseable.
"""
import re
from datetime import date, timedelta
from typing import List, Optional

DATE_ID_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def format_date_id(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def parse_date(s) -> Optional[date]:
    """Parse a canonical date id, returning None for anything else."""
    if not s or not isinstance(s, str) or not DATE_ID_RE.match(s):
        return None
    try:
        parsed = date(int(s[:4]), int(s[5:7]), int(s[8:]))
    except ValueError:
        return None
    if format_date_id(parsed) != s:
        return None
    return parsed


def last_n_days(n: int, today: Optional[date] = None) -> List[date]:
    today = today or date.today()
    return [today - timedelta(days=i) for i in range(n - 1, -1, -1)]


def current_month_days(today: Optional[date] = None) -> List[date]:
    today = today or date.today()
    d = today.replace(day=1)
    days = []
    while d.month == today.month:
        days.append(d)
        d += timedelta(days=1)
    return days
