"""Display-order reconciliation for a user's habit list."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from habitlog.core.errors import ValidationError
from habitlog.data.schemas import Habit

logger = logging.getLogger(__name__)


def next_order(habits: Iterable[Habit]) -> int:
    """Order for a habit appended to the list: max + 1, or 0 if empty."""
    orders = [h["order"] for h in habits]
    return max(orders) + 1 if orders else 0


def sort_habits_by_order(habits: Iterable[Habit]) -> list[Habit]:
    """Stable ascending sort on ``order``; ties keep their input order."""
    return sorted(habits, key=lambda h: h["order"])


def reorder_habits(habits: Iterable[Habit]) -> list[Habit]:
    """Close gaps: return copies whose order is their position in the sorted list."""
    return [Habit(**{**h, "order": index}) for index, h in enumerate(sort_habits_by_order(habits))]


def apply_explicit_order(habits: Iterable[Habit], habit_ids: Sequence[str]) -> dict[str, int]:
    """Return the id -> order plan for a caller-supplied sequence of habit ids.

    Every id must belong to ``habits``; unknown ids raise ValidationError and
    nothing is planned.
    """
    known = {h["id"] for h in habits}
    invalid = [habit_id for habit_id in habit_ids if habit_id not in known]
    if invalid:
        raise ValidationError(f"Invalid habit IDs: {', '.join(invalid)}")
    return {habit_id: index for index, habit_id in enumerate(habit_ids)}


def order_changes(before: Iterable[Habit], plan: dict[str, int]) -> dict[str, int]:
    """Narrow a plan to the habits whose order actually changes."""
    current = {h["id"]: h["order"] for h in before}
    changes = {habit_id: order for habit_id, order in plan.items() if current.get(habit_id) != order}
    logger.debug("Order plan: %d of %d habits change", len(changes), len(plan))
    return changes
