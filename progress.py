"""
Progress aggregation over a user's habits and daily records.

Everything here is a pure function of (habits, records, today). Habits are
dicts with at least "id"; records are dicts with "date" (a date id) and
"completed" (habit id -> bool). Bad or missing data degrades to zero/empty
output instead of raising.
"""
import logging
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional

from date_utils import current_month_days, format_date_id, last_n_days, parse_date

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Other"
DEFAULT_PRIORITY = "-"
PRIORITIES = {"low": "Low", "medium": "Medium", "moderate": "Medium", "high": "High"}


# ------- Helpers -------

def category_of(habit: dict) -> str:
    cat = habit.get("category")
    if isinstance(cat, str) and cat:
        return cat
    return DEFAULT_CATEGORY


def priority_of(habit: dict) -> str:
    prio = habit.get("priority")
    if not isinstance(prio, str):
        return DEFAULT_PRIORITY
    return PRIORITIES.get(prio.strip().lower(), DEFAULT_PRIORITY)


def completed_map(record: Optional[dict]) -> dict:
    if not record:
        return {}
    completed = record.get("completed")
    return completed if isinstance(completed, dict) else {}


def index_by_date(records: List[dict]) -> Dict[str, dict]:
    # first record wins for a duplicated date
    index: Dict[str, dict] = {}
    for r in records:
        key = r.get("date")
        if isinstance(key, str) and key not in index:
            index[key] = r
    return index


def count_true(completed: dict) -> int:
    return sum(1 for v in completed.values() if v is True)


def percent(part: int, whole: int) -> int:
    """Rounded percentage, halves rounded up, 0 for an empty whole."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


# ------- Views -------

def weekly_series(records: List[dict], today: date) -> List[dict]:
    by_date = index_by_date(records)
    series = []
    for d in last_n_days(7, today):
        day_id = format_date_id(d)
        series.append({
            "date": day_id[5:],
            "completed": count_true(completed_map(by_date.get(day_id))),
        })
    return series


def heatmap_level(completed: int, total: int) -> str:
    ratio = 0 if total == 0 else completed / total
    if ratio == 0:
        return "empty"
    if ratio < 0.34:
        return "low"
    if ratio < 0.67:
        return "medium"
    return "high"


def monthly_heatmap(records: List[dict], today: date) -> List[dict]:
    by_date = index_by_date(records)
    cells = []
    for d in current_month_days(today):
        day_id = format_date_id(d)
        completed = completed_map(by_date.get(day_id))
        total = len(completed)
        done = count_true(completed)
        cells.append({
            "dateId": day_id,
            "day": d.day,
            "total": total,
            "completed": done,
            "level": heatmap_level(done, total),
        })
    return cells


def category_distribution(habits: List[dict], records: List[dict]) -> List[dict]:
    if not habits or not records:
        return []
    habit_map = {h.get("id"): h for h in habits}
    counts: Dict[str, int] = {}
    for r in records:
        for habit_id, val in completed_map(r).items():
            if val is not True:
                continue
            habit = habit_map.get(habit_id)
            if habit is None:
                continue
            cat = category_of(habit)
            counts[cat] = counts.get(cat, 0) + 1
    return [{"name": cat, "value": n} for cat, n in counts.items()]


def current_streak(habit_id: str, by_date: Dict[str, dict], today: date,
                   start: Optional[date] = None) -> int:
    # an absent record, a missing key and an explicit False all end the streak
    streak = 0
    day = today
    while True:
        if start and day < start:
            break
        if completed_map(by_date.get(format_date_id(day))).get(habit_id) is not True:
            break
        streak += 1
        day -= timedelta(days=1)
    return streak


def summarize_habit(habit: dict, records: List[dict], by_date: Dict[str, dict], today: date) -> dict:
    habit_id = habit.get("id")
    start = parse_date(habit.get("start_date"))
    end = parse_date(habit.get("end_date"))

    total_days = 0
    completed_days = 0
    for r in records:
        d = parse_date(r.get("date"))
        if d is None:
            continue
        if start and d < start:
            continue
        if end and d > end:
            continue
        val = completed_map(r).get(habit_id)
        if isinstance(val, bool):
            total_days += 1
            if val:
                completed_days += 1

    return {
        "id": habit_id,
        "name": habit.get("name"),
        "category": category_of(habit),
        "priority": priority_of(habit),
        "totalDays": total_days,
        "completedDays": completed_days,
        "missedDays": total_days - completed_days,
        "completionPercent": percent(completed_days, total_days),
        "currentStreak": current_streak(habit_id, by_date, today, start),
    }


def habit_summary(habits: List[dict], records: List[dict], today: date) -> List[dict]:
    if not habits or not records:
        return []
    by_date = index_by_date(records)
    return [summarize_habit(h, records, by_date, today) for h in habits]


def compute_progress(habits: List[dict], records: List[dict], today: date) -> dict:
    return {
        "weekly": weekly_series(records, today),
        "heatmap": monthly_heatmap(records, today),
        "categories": category_distribution(habits, records),
        "habits": habit_summary(habits, records, today),
    }


def today_summary(habits: List[dict], record: Optional[dict], today: date) -> dict:
    """Completed/total header for the day view."""
    completed = completed_map(record)
    done = sum(1 for h in habits if completed.get(h.get("id")))
    return {
        "date": format_date_id(today),
        "completed": done,
        "total": len(habits),
        "percent": percent(done, len(habits)),
    }


# ------- Snapshot holder -------

class ProgressView:
    """Current snapshot of both collections plus the views derived from it.

    Each replace_* call swaps a whole collection; the four views are
    recomputed together and subscribers are told about the new result.
    After close() late fetch results are dropped.
    """

    def __init__(self, today: date):
        self.today = today
        self.habits: Optional[List[dict]] = None
        self.records: Optional[List[dict]] = None
        self.views: Optional[dict] = None
        self.closed = False
        self._listeners: List[Callable[[dict], None]] = []

    def subscribe(self, callback: Callable[[dict], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def replace_habits(self, habits: List[dict]) -> bool:
        if self.closed:
            logger.debug("Discarding habits snapshot for closed view")
            return False
        self.habits = list(habits)
        self._refresh()
        return True

    def replace_records(self, records: List[dict]) -> bool:
        if self.closed:
            logger.debug("Discarding daily records snapshot for closed view")
            return False
        self.records = list(records)
        self._refresh()
        return True

    def close(self):
        self.closed = True
        self._listeners.clear()

    def _refresh(self):
        if self.habits is None or self.records is None:
            return
        self.views = compute_progress(self.habits, self.records, self.today)
        for callback in list(self._listeners):
            callback(self.views)
