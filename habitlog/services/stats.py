"""Load a user's habits and entries from the store and compute their statistics."""

from __future__ import annotations

import logging
from datetime import date

from habitlog.data.schemas import DailyEntry, HabitStats
from habitlog.data.store import RecordStore
from habitlog.data.streaks import compute_all_stats, compute_habit_stats
from habitlog.data.validation import is_valid_date_format
from habitlog.services.entries import EntryService
from habitlog.services.habits import HabitService

logger = logging.getLogger(__name__)


def _dated_entries(entries: list[DailyEntry]) -> list[DailyEntry]:
    """Drop stored entries whose date cannot be parsed; the streak math requires valid days."""
    valid: list[DailyEntry] = []
    for entry in entries:
        if is_valid_date_format(entry["date"]):
            valid.append(entry)
        else:
            logger.warning("Skipping entry %s with malformed date %r", entry["id"], entry["date"])
    return valid


async def get_habit_stats(
    store: RecordStore,
    user_id: str,
    habit_id: str,
    today: date | None = None,
) -> HabitStats:
    """Statistics for one habit; raises NotFoundError if the habit does not exist."""
    habit = await HabitService(store, user_id).get_habit(habit_id)
    entries = await EntryService(store, user_id).list_entries(habit_id=habit_id)
    return compute_habit_stats(habit, _dated_entries(entries), today=today)


async def get_all_stats(
    store: RecordStore,
    user_id: str,
    today: date | None = None,
    include_inactive: bool = False,
) -> dict[str, HabitStats]:
    """Statistics for every habit of the user, keyed by habit id."""
    habits = await HabitService(store, user_id).list_habits(include_inactive=include_inactive)
    entries = _dated_entries(await EntryService(store, user_id).list_entries())
    stats = compute_all_stats(habits, entries, today=today)
    logger.info("Computed stats for %d habits from %d entries", len(stats), len(entries))
    return stats
