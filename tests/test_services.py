"""Tests for habitlog.services — habit and entry operations over a real store."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pyrage.x25519
import pytest

from habitlog.core.config import Settings
from habitlog.core.errors import ErrorKind, NotFoundError, StoreError, ValidationError
from habitlog.data.store import RecordStore
from habitlog.services import EntryService, HabitService, get_all_stats, get_habit_stats

USER = "user1"


def _make_store(tmp_path: Path) -> RecordStore:
    identity = pyrage.x25519.Identity.generate()
    return RecordStore(
        Settings(
            age_recipient=str(identity.to_public()),
            age_identity=str(identity),
            data_store_path=tmp_path / "store",
            data_audit_path=tmp_path / "audit",
            retry_base_delay=0.0,
        )
    )


@pytest.fixture
def store(tmp_path: Path) -> RecordStore:
    return _make_store(tmp_path)


@pytest.fixture
def habits(store: RecordStore) -> HabitService:
    return HabitService(store, USER)


@pytest.fixture
def entries(store: RecordStore) -> EntryService:
    return EntryService(store, USER)


# ── HabitService ─────────────────────────────────────────────────


class TestAddHabit:
    async def test_appends_with_next_order(self, habits: HabitService) -> None:
        first = await habits.add_habit("  Read  ")
        second = await habits.add_habit("Run")

        listed = await habits.list_habits()
        assert [h["id"] for h in listed] == [first, second]
        assert [h["order"] for h in listed] == [0, 1]
        assert listed[0]["name"] == "Read"
        assert listed[0]["is_active"] is True

    async def test_invalid_name_writes_nothing(self, habits: HabitService) -> None:
        with pytest.raises(ValidationError):
            await habits.add_habit("   ")
        assert await habits.list_habits() == []


class TestUpdateHabit:
    async def test_rename(self, habits: HabitService) -> None:
        habit_id = await habits.add_habit("Read")
        updated = await habits.update_habit(habit_id, name=" Read more ")
        assert updated["name"] == "Read more"
        assert updated["order"] == 0

    async def test_rename_validated(self, habits: HabitService) -> None:
        habit_id = await habits.add_habit("Read")
        with pytest.raises(ValidationError):
            await habits.update_habit(habit_id, name="x" * 101)

    async def test_archive_and_reactivate(self, habits: HabitService) -> None:
        habit_id = await habits.add_habit("Read")
        await habits.archive_habit(habit_id)
        assert await habits.list_habits(include_inactive=False) == []
        assert (await habits.get_habit(habit_id))["is_active"] is False

        await habits.reactivate_habit(habit_id)
        assert [h["id"] for h in await habits.list_habits(include_inactive=False)] == [habit_id]

    async def test_unknown_habit(self, habits: HabitService) -> None:
        with pytest.raises(NotFoundError):
            await habits.update_habit("ghost", is_active=False)
        with pytest.raises(NotFoundError):
            await habits.get_habit("ghost")


class TestDeleteHabit:
    async def test_closes_order_gap(self, habits: HabitService) -> None:
        a = await habits.add_habit("A")
        b = await habits.add_habit("B")
        c = await habits.add_habit("C")

        changes = await habits.delete_habit(b)

        assert changes == {c: 1}
        listed = await habits.list_habits()
        assert [(h["id"], h["order"]) for h in listed] == [(a, 0), (c, 1)]

    async def test_entries_survive_habit_delete(self, habits: HabitService, entries: EntryService) -> None:
        habit_id = await habits.add_habit("Read")
        await entries.save_entry(habit_id, "2024-03-01", True)

        await habits.delete_habit(habit_id)

        orphaned = await entries.entries_by_habit(habit_id)
        assert len(orphaned) == 1

    async def test_missing_habit(self, habits: HabitService) -> None:
        with pytest.raises(NotFoundError):
            await habits.delete_habit("ghost")


class TestReorder:
    async def test_explicit_order(self, habits: HabitService) -> None:
        a = await habits.add_habit("A")
        b = await habits.add_habit("B")
        c = await habits.add_habit("C")

        plan = await habits.reorder([c, a, b])

        assert plan == {c: 0, a: 1, b: 2}
        assert [h["id"] for h in await habits.list_habits()] == [c, a, b]

    async def test_unknown_id_rejected_without_writes(self, habits: HabitService) -> None:
        a = await habits.add_habit("A")
        b = await habits.add_habit("B")

        with pytest.raises(ValidationError, match="ghost"):
            await habits.reorder([b, "ghost", a])
        assert [h["id"] for h in await habits.list_habits()] == [a, b]


async def test_writes_retry_on_network_error(habits: HabitService, store: RecordStore) -> None:
    with patch.object(store, "add", new=AsyncMock(side_effect=[ConnectionError("blip"), "new-id"])) as add:
        habit_id = await habits.add_habit("Read")
    assert habit_id == "new-id"
    assert add.await_count == 2


async def test_offline_store_refuses_writes(habits: HabitService, store: RecordStore) -> None:
    store.set_offline(True)
    with pytest.raises(StoreError) as exc_info:
        await habits.add_habit("Read")
    assert exc_info.value.kind == ErrorKind.OFFLINE


# ── EntryService ─────────────────────────────────────────────────


class TestSaveEntry:
    async def test_upsert_by_habit_and_date(self, entries: EntryService) -> None:
        first = await entries.save_entry("h1", "2024-03-01", True, "good")
        second = await entries.save_entry("h1", "2024-03-01", False, "  changed  ")

        assert first == second
        found = await entries.get_entry_for("h1", "2024-03-01")
        assert found is not None
        assert found["completed"] is False
        assert found["reflection"] == "changed"
        assert len(await entries.list_entries()) == 1

    async def test_lookup_other_date_not_found(self, entries: EntryService) -> None:
        await entries.save_entry("h1", "2024-03-01", True)
        assert await entries.get_entry_for("h1", "2024-03-02") is None

    async def test_validation(self, entries: EntryService) -> None:
        with pytest.raises(ValidationError):
            await entries.save_entry("h1", "2024-02-30", True)
        with pytest.raises(ValidationError):
            await entries.save_entry("h1", "2024-03-01", True, "r" * 501)

    async def test_padded_reflection_within_limit(self, entries: EntryService) -> None:
        entry_id = await entries.save_entry("h1", "2024-03-01", True, "   " + "r" * 495 + "   ")
        entry = await entries.update_reflection("h1", "2024-03-01", "\t" + "s" * 500 + "\n")
        assert entry["id"] == entry_id
        assert entry["reflection"] == "s" * 500


class TestToggleCompletion:
    async def test_creates_completed_then_flips(self, entries: EntryService) -> None:
        created = await entries.toggle_completion("h1", "2024-03-01")
        assert created["completed"] is True
        assert created["id"]

        flipped = await entries.toggle_completion("h1", "2024-03-01")
        assert flipped["id"] == created["id"]
        assert flipped["completed"] is False
        assert len(await entries.list_entries()) == 1


class TestUpdateReflection:
    async def test_creates_uncompleted_entry(self, entries: EntryService) -> None:
        entry = await entries.update_reflection("h1", "2024-03-01", " tired ")
        assert entry["completed"] is False
        assert entry["reflection"] == "tired"

    async def test_keeps_completion(self, entries: EntryService) -> None:
        await entries.toggle_completion("h1", "2024-03-01")
        entry = await entries.update_reflection("h1", "2024-03-01", "done early")
        assert entry["completed"] is True
        assert entry["reflection"] == "done early"

    async def test_too_long(self, entries: EntryService) -> None:
        with pytest.raises(ValidationError):
            await entries.update_reflection("h1", "2024-03-01", "r" * 501)


class TestUpdateDeleteEntry:
    async def test_update_by_id(self, entries: EntryService) -> None:
        entry_id = await entries.save_entry("h1", "2024-03-01", False)
        updated = await entries.update_entry(entry_id, completed=True, reflection=" ok ")
        assert updated["completed"] is True
        assert updated["reflection"] == "ok"

    async def test_move_onto_occupied_day_rejected(self, entries: EntryService) -> None:
        await entries.save_entry("h1", "2024-03-01", True)
        other = await entries.save_entry("h1", "2024-03-02", True)
        with pytest.raises(ValidationError, match="already exists"):
            await entries.update_entry(other, date="2024-03-01")

    async def test_update_missing(self, entries: EntryService) -> None:
        with pytest.raises(NotFoundError):
            await entries.update_entry("ghost", completed=True)

    async def test_update_lookup_retries_on_network_error(self, entries: EntryService, store: RecordStore) -> None:
        entry_id = await entries.save_entry("h1", "2024-03-01", False)
        real_get = store.get
        flaky_get = AsyncMock(side_effect=[TimeoutError("slow"), await real_get(USER, "entries", entry_id)])
        with patch.object(store, "get", new=flaky_get):
            updated = await entries.update_entry(entry_id, completed=True)
        assert updated["completed"] is True
        assert flaky_get.await_count == 2

    async def test_delete(self, entries: EntryService) -> None:
        entry_id = await entries.save_entry("h1", "2024-03-01", True)
        await entries.delete_entry(entry_id)
        assert await entries.list_entries() == []


async def test_entries_by_date_and_habit(entries: EntryService) -> None:
    await entries.save_entry("h1", "2024-03-01", True)
    await entries.save_entry("h1", "2024-03-03", True)
    await entries.save_entry("h2", "2024-03-01", False)

    assert {e["habit_id"] for e in await entries.entries_by_date("2024-03-01")} == {"h1", "h2"}
    assert [e["date"] for e in await entries.entries_by_habit("h1")] == ["2024-03-03", "2024-03-01"]


# ── stats ────────────────────────────────────────────────────────


async def test_habit_stats_from_store(habits: HabitService, entries: EntryService, store: RecordStore) -> None:
    today = date(2026, 3, 1)
    habit_id = await habits.add_habit("Read", created_date=datetime(2026, 2, 22, 8, 0))
    for n in (0, 1, 2, 5):
        await entries.save_entry(habit_id, (today - timedelta(days=n)).isoformat(), True)
    await entries.save_entry(habit_id, "2026-02-25", False, "skipped")

    stats = await get_habit_stats(store, USER, habit_id, today=today)

    assert stats["current_streak"] == 3
    assert stats["longest_streak"] == 3
    assert stats["total_completions"] == 4
    assert stats["completion_rate"] == 50
    assert stats["last_completed_date"] == "2026-03-01"


async def test_all_stats_skips_archived_by_default(habits: HabitService, store: RecordStore) -> None:
    active = await habits.add_habit("A")
    archived = await habits.add_habit("B")
    await habits.archive_habit(archived)

    assert set(await get_all_stats(store, USER)) == {active}
    assert set(await get_all_stats(store, USER, include_inactive=True)) == {active, archived}


async def test_stats_skip_entries_with_malformed_dates(habits: HabitService, store: RecordStore) -> None:
    habit_id = await habits.add_habit("Read", created_date=datetime(2026, 3, 1, 0, 0))
    await store.add(USER, "entries", {"habit_id": habit_id, "completed": True})
    await store.add(USER, "entries", {"habit_id": habit_id, "date": "2026-03-01", "completed": True})

    stats = await get_habit_stats(store, USER, habit_id, today=date(2026, 3, 1))
    assert stats["total_completions"] == 1
    assert stats["current_streak"] == 1
    assert (await get_all_stats(store, USER, today=date(2026, 3, 1)))[habit_id]["total_completions"] == 1


async def test_stats_for_unknown_habit(store: RecordStore) -> None:
    with pytest.raises(NotFoundError):
        await get_habit_stats(store, USER, "ghost")
