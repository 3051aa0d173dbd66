"""Daily entry writes with upsert-by-(habit, date) and reflection handling.

The one-entry-per-habit-per-day rule is enforced here by looking the pair
up before writing; the store has no unique constraint. Concurrent writers
from two devices can still both insert, and the last write wins.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

from habitlog.core.errors import NotFoundError, ValidationError, retry_async
from habitlog.data.entries import find_entry, sort_entries_by_date
from habitlog.data.schemas import DailyEntry, entry_from_document, entry_to_document, make_daily_entry
from habitlog.data.store import ENTRIES, RecordStore
from habitlog.data.validation import validate_daily_entry, validate_reflection

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntryService:
    """Daily entry operations for one user, bound to an explicit store handle."""

    def __init__(self, store: RecordStore, user_id: str) -> None:
        self._store = store
        self._user_id = user_id

    async def _with_retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        cfg = self._store.config
        return await retry_async(operation, cfg.retry_max_attempts, cfg.retry_base_delay)

    async def list_entries(self, date: str | None = None, habit_id: str | None = None) -> list[DailyEntry]:
        """Return entries matching the optional filters, most recent write first."""
        filters: dict[str, Any] = {}
        if date is not None:
            filters["date"] = date
        if habit_id is not None:
            filters["habit_id"] = habit_id
        docs = await self._store.query(self._user_id, ENTRIES, filters=filters or None)
        entries = [entry_from_document(doc_id, doc) for doc_id, doc in docs.items()]
        return sorted(entries, key=lambda e: e["timestamp"], reverse=True)

    async def get_entry_for(self, habit_id: str, date: str) -> DailyEntry | None:
        return find_entry(await self.list_entries(date=date, habit_id=habit_id), habit_id, date)

    async def entries_by_date(self, date: str) -> list[DailyEntry]:
        return await self.list_entries(date=date)

    async def entries_by_habit(self, habit_id: str) -> list[DailyEntry]:
        """Entries for one habit, most recent day first."""
        return sort_entries_by_date(await self.list_entries(habit_id=habit_id))

    async def _insert(self, entry: DailyEntry) -> str:
        doc = entry_to_document(entry)
        return await self._with_retry(lambda: self._store.add(self._user_id, ENTRIES, doc))

    async def _patch(self, entry_id: str, changes: dict[str, Any]) -> DailyEntry:
        changes = {**changes, "timestamp": datetime.now().isoformat()}
        doc = await self._with_retry(lambda: self._store.update(self._user_id, ENTRIES, entry_id, changes))
        return entry_from_document(entry_id, doc)

    async def save_entry(self, habit_id: str, date: str, completed: bool, reflection: str = "") -> str:
        """Create or overwrite the entry for (habit_id, date). Returns the entry id."""
        validate_daily_entry(habit_id, date, reflection)
        existing = await self.get_entry_for(habit_id, date)
        if existing is not None:
            await self._patch(existing["id"], {"completed": completed, "reflection": reflection.strip()})
            return existing["id"]

        entry_id = await self._insert(make_daily_entry("", habit_id, date, completed, reflection))
        logger.info("Created entry %s for habit %s on %s", entry_id, habit_id, date)
        return entry_id

    async def update_entry(
        self,
        entry_id: str,
        completed: bool | None = None,
        reflection: str | None = None,
        date: str | None = None,
        habit_id: str | None = None,
    ) -> DailyEntry:
        """Change fields of an entry by id; moving it onto an occupied (habit, date) is rejected."""
        doc = await self._with_retry(lambda: self._store.get(self._user_id, ENTRIES, entry_id))
        if doc is None:
            raise NotFoundError(f"Entry {entry_id} not found", code="not-found")
        current = entry_from_document(entry_id, doc)

        target_habit = habit_id if habit_id is not None else current["habit_id"]
        target_date = date if date is not None else current["date"]
        validate_daily_entry(target_habit, target_date, reflection)

        if (target_habit, target_date) != (current["habit_id"], current["date"]):
            clash = await self.get_entry_for(target_habit, target_date)
            if clash is not None:
                raise ValidationError(f"An entry already exists for habit {target_habit} on {target_date}")

        return await self._patch(
            entry_id,
            {
                "completed": completed,
                "reflection": reflection.strip() if reflection is not None else None,
                "date": date,
                "habit_id": habit_id,
            },
        )

    async def delete_entry(self, entry_id: str) -> None:
        await self._with_retry(lambda: self._store.delete(self._user_id, ENTRIES, entry_id))

    async def toggle_completion(self, habit_id: str, date: str) -> DailyEntry:
        """Flip completion for (habit_id, date); a missing entry is created completed."""
        validate_daily_entry(habit_id, date)
        existing = await self.get_entry_for(habit_id, date)
        if existing is not None:
            return await self._patch(existing["id"], {"completed": not existing["completed"]})

        entry = make_daily_entry("", habit_id, date, completed=True)
        entry["id"] = await self._insert(entry)
        return entry

    async def update_reflection(self, habit_id: str, date: str, reflection: str) -> DailyEntry:
        """Write the reflection for (habit_id, date); a missing entry is created not completed."""
        validate_reflection(reflection)
        validate_daily_entry(habit_id, date)
        existing = await self.get_entry_for(habit_id, date)
        if existing is not None:
            return await self._patch(existing["id"], {"reflection": reflection.strip()})

        entry = make_daily_entry("", habit_id, date, completed=False, reflection=reflection)
        entry["id"] = await self._insert(entry)
        return entry
