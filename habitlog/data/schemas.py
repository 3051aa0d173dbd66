"""Record shapes for habits, daily entries, and derived statistics."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, NotRequired, TypedDict

from habitlog.data.dates import local_now

HABIT_NAME_MAX_LENGTH = 100
REFLECTION_MAX_LENGTH = 500


class Habit(TypedDict):
    """A user-defined recurring activity with display order and archive state."""

    id: str
    name: str  # trimmed, 1..100 chars
    created_date: datetime
    is_active: bool
    order: int  # dense 0..n-1 after reconciliation


class DailyEntry(TypedDict):
    """Completion and reflection for one habit on one calendar day."""

    id: str
    habit_id: str
    date: str  # YYYY-MM-DD
    completed: bool
    reflection: str  # trimmed, 0..500 chars
    timestamp: datetime  # last write


class HabitStats(TypedDict):
    """Analytics derived from the entries of a single habit. Never persisted."""

    habit_id: str
    current_streak: int
    longest_streak: int
    total_completions: int
    completion_rate: int  # integer percentage, not clamped
    last_completed_date: NotRequired[str]


def make_habit(
    habit_id: str,
    name: str,
    order: int,
    created_date: datetime | None = None,
    is_active: bool = True,
) -> Habit:
    """Create a habit record with a trimmed name."""
    return Habit(
        id=habit_id,
        name=name.strip(),
        created_date=created_date or local_now(),
        is_active=is_active,
        order=order,
    )


def make_daily_entry(
    entry_id: str,
    habit_id: str,
    date: str,
    completed: bool,
    reflection: str = "",
    timestamp: datetime | None = None,
) -> DailyEntry:
    """Create a daily entry with a trimmed reflection and auto-timestamp."""
    return DailyEntry(
        id=entry_id,
        habit_id=habit_id,
        date=date,
        completed=completed,
        reflection=reflection.strip(),
        timestamp=timestamp or datetime.now(),
    )


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return datetime.now()


def habit_to_document(habit: Habit) -> dict[str, Any]:
    """Serialize a habit for storage; the id is the document key, not a field."""
    return {
        "name": habit["name"],
        "created_date": habit["created_date"].isoformat(),
        "is_active": habit["is_active"],
        "order": habit["order"],
    }


def habit_from_document(doc_id: str, doc: dict[str, Any]) -> Habit:
    """Build a habit from a stored document, filling defaults for missing fields."""
    return Habit(
        id=doc_id,
        name=str(doc.get("name", "")),
        created_date=_parse_datetime(doc.get("created_date")),
        is_active=bool(doc.get("is_active", True)),
        order=int(doc.get("order", 0)),
    )


def entry_to_document(entry: DailyEntry) -> dict[str, Any]:
    """Serialize a daily entry for storage."""
    return {
        "habit_id": entry["habit_id"],
        "date": entry["date"],
        "completed": entry["completed"],
        "reflection": entry["reflection"],
        "timestamp": entry["timestamp"].isoformat(),
    }


def entry_from_document(doc_id: str, doc: dict[str, Any]) -> DailyEntry:
    """Build a daily entry from a stored document."""
    return DailyEntry(
        id=doc_id,
        habit_id=str(doc.get("habit_id", "")),
        date=str(doc.get("date", "")),
        completed=bool(doc.get("completed", False)),
        reflection=str(doc.get("reflection", "")),
        timestamp=_parse_datetime(doc.get("timestamp")),
    )
