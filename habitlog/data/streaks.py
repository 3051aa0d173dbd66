"""Streak and completion statistics derived from daily entries.

Everything here is pure: no I/O, no exceptions. Missing data yields zeros.
``today`` defaults to the current day in the configured timezone; tests pin
it explicitly.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from habitlog.core.config import settings
from habitlog.data.dates import local_now, local_today, parse_date
from habitlog.data.schemas import DailyEntry, Habit, HabitStats

logger = logging.getLogger(__name__)


def _completed(entries: Iterable[DailyEntry], habit_id: str) -> list[DailyEntry]:
    return [e for e in entries if e["habit_id"] == habit_id and e["completed"]]


def _as_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


def _as_instant(value: date) -> datetime:
    """Naive local datetime; a bare date stands for the last instant of that day."""
    if not isinstance(value, datetime):
        return datetime.combine(value, time.max)
    if value.tzinfo is not None:
        return value.astimezone(ZoneInfo(settings.timezone)).replace(tzinfo=None)
    return value


def current_streak(
    entries: Iterable[DailyEntry],
    habit_id: str,
    today: date | None = None,
) -> int:
    """Count consecutive completed days ending today.

    The k-th most recent completed entry must fall on ``today - k``. The first
    mismatch stops the walk, so a habit not yet completed today has streak 0
    even if yesterday and the day before were completed.
    """
    reference = _as_date(today or local_today())
    completed = sorted(_completed(entries, habit_id), key=lambda e: e["date"], reverse=True)

    streak = 0
    for k, entry in enumerate(completed):
        expected = reference - timedelta(days=k)
        if parse_date(entry["date"]).date() != expected:
            break
        streak += 1
    return streak


def longest_streak(entries: Iterable[DailyEntry], habit_id: str) -> int:
    """Return the longest run of consecutive completed days, anywhere in history."""
    days = sorted(parse_date(e["date"]).date() for e in _completed(entries, habit_id))
    if not days:
        return 0

    longest = 0
    run = 1
    for prev, cur in zip(days, days[1:]):
        if (cur - prev).days == 1:
            run += 1
        else:
            longest = max(longest, run)
            run = 1
    return max(longest, run)


def total_completions(entries: Iterable[DailyEntry], habit_id: str) -> int:
    return len(_completed(entries, habit_id))


def last_completed_date(entries: Iterable[DailyEntry], habit_id: str) -> str | None:
    dates = [e["date"] for e in _completed(entries, habit_id)]
    return max(dates) if dates else None


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def completion_rate(
    entries: Iterable[DailyEntry],
    habit: Habit,
    today: date | None = None,
) -> int:
    """Percentage of elapsed days since creation (inclusive) with a completed entry.

    The denominator is whole 24-hour periods between creation and ``today``,
    plus one. Not clamped: more completed entries than elapsed days gives
    more than 100.
    """
    reference = _as_instant(today or local_now())
    created = _as_instant(habit["created_date"])
    elapsed = (reference - created).total_seconds()
    days_since_created = math.floor(elapsed / 86400) + 1
    if days_since_created <= 0:
        # Created after the reference instant; nothing elapsed to rate against.
        logger.debug("Habit %s created after %s", habit["id"], reference)
        return 0

    count = total_completions(entries, habit["id"])
    return _round_half_up(count * 100 / days_since_created)


def compute_habit_stats(
    habit: Habit,
    entries: Iterable[DailyEntry],
    today: date | None = None,
) -> HabitStats:
    """Assemble all statistics for one habit."""
    entry_list = list(entries)
    habit_id = habit["id"]

    stats = HabitStats(
        habit_id=habit_id,
        current_streak=current_streak(entry_list, habit_id, today=today),
        longest_streak=longest_streak(entry_list, habit_id),
        total_completions=total_completions(entry_list, habit_id),
        completion_rate=completion_rate(entry_list, habit, today=today),
    )
    last = last_completed_date(entry_list, habit_id)
    if last is not None:
        stats["last_completed_date"] = last
    return stats


def compute_all_stats(
    habits: Iterable[Habit],
    entries: Iterable[DailyEntry],
    today: date | None = None,
) -> dict[str, HabitStats]:
    entry_list = list(entries)
    return {h["id"]: compute_habit_stats(h, entry_list, today=today) for h in habits}
