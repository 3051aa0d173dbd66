"""Habit CRUD over a record store, with name validation and order reconciliation.

Single writer assumed: two devices reordering or deleting at once race on
``order`` and the store keeps whichever write lands last.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

from habitlog.core.errors import NotFoundError, retry_async
from habitlog.data.ordering import (
    apply_explicit_order,
    next_order,
    order_changes,
    reorder_habits,
    sort_habits_by_order,
)
from habitlog.data.schemas import Habit, habit_from_document, habit_to_document, make_habit
from habitlog.data.store import HABITS, RecordStore
from habitlog.data.validation import validate_habit_name

logger = logging.getLogger(__name__)

T = TypeVar("T")


class HabitService:
    """Habit operations for one user, bound to an explicit store handle."""

    def __init__(self, store: RecordStore, user_id: str) -> None:
        self._store = store
        self._user_id = user_id

    async def _with_retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        cfg = self._store.config
        return await retry_async(operation, cfg.retry_max_attempts, cfg.retry_base_delay)

    async def list_habits(self, include_inactive: bool = True) -> list[Habit]:
        """Return the user's habits ascending by order."""
        docs = await self._store.query(self._user_id, HABITS)
        habits = [habit_from_document(doc_id, doc) for doc_id, doc in docs.items()]
        if not include_inactive:
            habits = [h for h in habits if h["is_active"]]
        return sort_habits_by_order(habits)

    async def get_habit(self, habit_id: str) -> Habit:
        doc = await self._store.get(self._user_id, HABITS, habit_id)
        if doc is None:
            raise NotFoundError(f"Habit {habit_id} not found", code="not-found")
        return habit_from_document(habit_id, doc)

    async def add_habit(self, name: str, created_date: datetime | None = None) -> str:
        """Validate and append a habit at the end of the list. Returns its id."""
        trimmed = validate_habit_name(name)
        order = next_order(await self.list_habits())
        habit = make_habit("", trimmed, order, created_date=created_date)
        habit_id = await self._with_retry(lambda: self._store.add(self._user_id, HABITS, habit_to_document(habit)))
        logger.info("Added habit %s at order %d", habit_id, order)
        return habit_id

    async def update_habit(
        self,
        habit_id: str,
        name: str | None = None,
        is_active: bool | None = None,
        order: int | None = None,
    ) -> Habit:
        """Apply the given field changes; omitted fields are left untouched."""
        changes: dict[str, Any] = {"is_active": is_active, "order": order}
        if name is not None:
            changes["name"] = validate_habit_name(name)
        doc = await self._with_retry(lambda: self._store.update(self._user_id, HABITS, habit_id, changes))
        return habit_from_document(habit_id, doc)

    async def archive_habit(self, habit_id: str) -> Habit:
        return await self.update_habit(habit_id, is_active=False)

    async def reactivate_habit(self, habit_id: str) -> Habit:
        return await self.update_habit(habit_id, is_active=True)

    async def _apply_plan(self, habits: list[Habit], plan: dict[str, int]) -> dict[str, int]:
        changes = order_changes(habits, plan)
        for changed_id, new_order in changes.items():
            await self._with_retry(
                lambda hid=changed_id, o=new_order: self._store.update(self._user_id, HABITS, hid, {"order": o})
            )
        return changes

    async def delete_habit(self, habit_id: str) -> dict[str, int]:
        """Delete a habit permanently and close the gap in the remaining order.

        The habit's daily entries are left in place. Returns the order
        changes written to the remaining habits.
        """
        await self._with_retry(lambda: self._store.delete(self._user_id, HABITS, habit_id))
        remaining = await self.list_habits()
        plan = {h["id"]: h["order"] for h in reorder_habits(remaining)}
        changes = await self._apply_plan(remaining, plan)
        logger.info("Deleted habit %s; reordered %d remaining", habit_id, len(changes))
        return changes

    async def reorder(self, habit_ids: list[str]) -> dict[str, int]:
        """Set each listed habit's order to its position in habit_ids.

        Raises ValidationError before writing anything if an id is unknown.
        """
        habits = await self.list_habits()
        plan = apply_explicit_order(habits, habit_ids)
        changes = await self._apply_plan(habits, plan)
        logger.info("Reordered %d habits (%d changed)", len(plan), len(changes))
        return plan
