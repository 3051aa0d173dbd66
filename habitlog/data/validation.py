"""Field validation for habits and daily entries."""

from __future__ import annotations

import re
from datetime import datetime

from habitlog.core.errors import ValidationError
from habitlog.data.schemas import HABIT_NAME_MAX_LENGTH, REFLECTION_MAX_LENGTH

_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_WHITESPACE_RE = re.compile(r"\s+")


def validate_habit_name(name: str) -> str:
    """Return the trimmed name or raise ValidationError."""
    trimmed = name.strip()
    if not trimmed:
        raise ValidationError("Habit name is required")
    if len(trimmed) > HABIT_NAME_MAX_LENGTH:
        raise ValidationError(f"Habit name must be {HABIT_NAME_MAX_LENGTH} characters or less")
    return trimmed


def validate_reflection(reflection: str) -> None:
    """Reflections are stored trimmed, so surrounding whitespace does not count."""
    if len(reflection.strip()) > REFLECTION_MAX_LENGTH:
        raise ValidationError(f"Reflection must be {REFLECTION_MAX_LENGTH} characters or less")


def is_valid_date_format(value: str) -> bool:
    """True for YYYY-MM-DD strings naming a real calendar day (rejects 2024-02-30)."""
    if not _DATE_RE.fullmatch(value):
        return False
    year, month, day = (int(part) for part in value.split("-"))
    try:
        datetime(year, month, day)
    except ValueError:
        return False
    return True


def validate_daily_entry(habit_id: str, date: str, reflection: str | None = None) -> None:
    """Raise ValidationError if the entry fields cannot be persisted."""
    if not habit_id:
        raise ValidationError("Habit ID is required")
    if not date or not is_valid_date_format(date):
        raise ValidationError("Valid date (YYYY-MM-DD) is required")
    if reflection:
        validate_reflection(reflection)


def sanitize_input(value: str) -> str:
    """Trim and collapse internal runs of whitespace to one space."""
    return _WHITESPACE_RE.sub(" ", value.strip())
