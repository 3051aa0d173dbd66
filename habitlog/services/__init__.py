"""Store-backed habit, entry and statistics services."""

from habitlog.services.entries import EntryService
from habitlog.services.habits import HabitService
from habitlog.services.stats import get_all_stats, get_habit_stats

__all__ = [
    "EntryService",
    "HabitService",
    "get_all_stats",
    "get_habit_stats",
]
