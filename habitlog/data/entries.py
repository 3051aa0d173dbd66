"""Lookup, keying and grouping of daily entries."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from habitlog.core.errors import ValidationError
from habitlog.data.schemas import DailyEntry

KEY_SEPARATOR = "_"

EntryKey = tuple[str, str]


def find_entry(entries: Iterable[DailyEntry], habit_id: str, date: str) -> DailyEntry | None:
    """Return the entry for (habit_id, date), or None. This is the upsert key."""
    for entry in entries:
        if entry["habit_id"] == habit_id and entry["date"] == date:
            return entry
    return None


def entry_key(habit_id: str, date: str) -> EntryKey:
    return (habit_id, date)


def index_entries(entries: Iterable[DailyEntry]) -> dict[EntryKey, DailyEntry]:
    """Map (habit_id, date) to its entry; a later duplicate replaces an earlier one."""
    return {entry_key(e["habit_id"], e["date"]): e for e in entries}


def generate_entry_key(habit_id: str, date: str) -> str:
    """Return ``habit_id + "_" + date``.

    Habit ids containing the separator would produce keys that cannot be
    parsed back, so they are rejected. Prefer ``entry_key`` for indexing.
    """
    if KEY_SEPARATOR in habit_id:
        raise ValidationError(f"Habit ID must not contain '{KEY_SEPARATOR}': {habit_id}")
    return f"{habit_id}{KEY_SEPARATOR}{date}"


def parse_entry_key(key: str) -> EntryKey | None:
    """Inverse of generate_entry_key; None unless the key has exactly two parts."""
    parts = key.split(KEY_SEPARATOR)
    if len(parts) != 2:
        return None
    return parts[0], parts[1]


def group_entries_by_date(entries: Iterable[DailyEntry]) -> dict[str, list[DailyEntry]]:
    grouped: defaultdict[str, list[DailyEntry]] = defaultdict(list)
    for entry in entries:
        grouped[entry["date"]].append(entry)
    return dict(grouped)


def group_entries_by_habit(entries: Iterable[DailyEntry]) -> dict[str, list[DailyEntry]]:
    grouped: defaultdict[str, list[DailyEntry]] = defaultdict(list)
    for entry in entries:
        grouped[entry["habit_id"]].append(entry)
    return dict(grouped)


def sort_entries_by_date(entries: Iterable[DailyEntry], ascending: bool = False) -> list[DailyEntry]:
    """Most recent first unless ascending. YYYY-MM-DD sorts lexicographically."""
    return sorted(entries, key=lambda e: e["date"], reverse=not ascending)
