"""Tests for the SQLAlchemy habit store against in-memory SQLite."""

from dataclasses import replace

import pytest
from sqlalchemy import func, select

from habitflow.domain.errors import (
    HabitNotFound,
    NotAuthenticated,
    ScheduleLocked,
    StoreUnavailable,
)
from habitflow.domain.habits import Entry, EntryStatus, GoalType, HabitPatch, new_habit
from habitflow.infrastructure.repositories import SqlAlchemyHabitStore
from habitflow.infrastructure.repositories.sqlalchemy_habit_store import habit_from_row
from habitflow.models import EntryRow, HabitRow


@pytest.fixture
async def owner(make_account):
    return await make_account()


@pytest.fixture
def store(session_factory, identity, owner):
    return SqlAlchemyHabitStore(session_factory, identity(owner))


def _habit(title="Read", **kwargs):
    kwargs.setdefault("start_date", "2025-03-01")
    return new_habit(title, **kwargs)


class TestHabits:
    @pytest.mark.asyncio
    async def test_create_and_get(self, store, owner):
        created = await store.create_habit(_habit(description="20 pages"))
        assert created.owner_id == owner

        fetched = await store.get_habit(created.id)
        assert fetched.title == "Read"
        assert fetched.description == "20 pages"
        assert fetched.goal_type is GoalType.DAILY
        assert fetched.start_date == "2025-03-01"

    @pytest.mark.asyncio
    async def test_list_orders_by_creation(self, store):
        later = _habit("Later")
        earlier = _habit("Earlier")
        later = replace(later, created_at=2_000)
        earlier = replace(earlier, created_at=1_000)
        await store.create_habit(later)
        await store.create_habit(earlier)

        titles = [h.title for h in await store.list_habits()]
        assert titles == ["Earlier", "Later"]

    @pytest.mark.asyncio
    async def test_owner_isolation(self, session_factory, identity, make_account, store):
        mine = await store.create_habit(_habit())
        await store.upsert_entry(Entry(mine.id, "2025-03-02", EntryStatus.COMPLETED))

        stranger = SqlAlchemyHabitStore(session_factory, identity(await make_account()))
        assert await stranger.list_habits() == []
        assert await stranger.list_entries_for_user() == []
        with pytest.raises(HabitNotFound):
            await stranger.get_habit(mine.id)
        with pytest.raises(HabitNotFound):
            await stranger.delete_habit(mine.id)
        with pytest.raises(HabitNotFound):
            await stranger.upsert_entry(Entry(mine.id, "2025-03-03", EntryStatus.COMPLETED))

        # A foreign delete_entry is a silent no-op
        await stranger.delete_entry(mine.id, "2025-03-02")
        assert len(await store.list_entries_for_habit(mine.id)) == 1

    @pytest.mark.asyncio
    async def test_requires_identity(self, session_factory, identity):
        anonymous = SqlAlchemyHabitStore(session_factory, identity(None))
        with pytest.raises(NotAuthenticated):
            await anonymous.list_habits()
        with pytest.raises(NotAuthenticated):
            await anonymous.upsert_entry(Entry("H1", "2025-03-02", EntryStatus.COMPLETED))

    @pytest.mark.asyncio
    async def test_update_editable_fields(self, store):
        created = await store.create_habit(_habit())
        updated = await store.update_habit(
            created.id, HabitPatch(title="Read more", color="#ef4444")
        )
        assert updated.title == "Read more"
        assert updated.color == "#ef4444"
        assert updated.goal_type is created.goal_type
        assert updated.created_at == created.created_at

    @pytest.mark.asyncio
    async def test_update_schedule_is_refused(self, store):
        created = await store.create_habit(_habit())
        with pytest.raises(ScheduleLocked):
            await store.update_habit(created.id, HabitPatch.from_dict({"goal_type": "weekly"}))

    @pytest.mark.asyncio
    async def test_update_missing_habit(self, store):
        with pytest.raises(HabitNotFound):
            await store.update_habit("missing", HabitPatch(title="x"))

    @pytest.mark.asyncio
    async def test_delete_removes_entries(self, store, session_factory):
        habit = await store.create_habit(_habit())
        for day in ("2025-03-02", "2025-03-03"):
            await store.upsert_entry(Entry(habit.id, day, EntryStatus.COMPLETED))

        await store.delete_habit(habit.id)

        with pytest.raises(HabitNotFound):
            await store.get_habit(habit.id)
        async with session_factory() as session:
            count = await session.scalar(
                select(func.count()).select_from(EntryRow).where(EntryRow.habit_id == habit.id)
            )
        assert count == 0

    @pytest.mark.asyncio
    async def test_missing_start_date_falls_back_to_creation_day(self, owner):
        row = HabitRow(
            id="legacy",
            owner_id=owner,
            title="Old",
            goal_type="daily",
            created_at=1_741_608_000_000,  # 2025-03-10 12:00 UTC
            start_date=None,
        )
        habit = habit_from_row(row)
        assert habit.start_date in ("2025-03-10", "2025-03-11", "2025-03-09")
        assert habit.color == ""


class TestEntries:
    @pytest.mark.asyncio
    async def test_upsert_replaces_status(self, store):
        habit = await store.create_habit(_habit())
        await store.upsert_entry(Entry(habit.id, "2025-03-02", EntryStatus.COMPLETED))
        returned = await store.upsert_entry(Entry(habit.id, "2025-03-02", EntryStatus.SKIPPED))

        assert returned.status is EntryStatus.SKIPPED
        entries = await store.list_entries_for_habit(habit.id)
        assert entries == [Entry(habit.id, "2025-03-02", EntryStatus.SKIPPED)]

    @pytest.mark.asyncio
    async def test_delete_entry_is_idempotent(self, store):
        habit = await store.create_habit(_habit())
        await store.upsert_entry(Entry(habit.id, "2025-03-02", EntryStatus.COMPLETED))
        await store.delete_entry(habit.id, "2025-03-02")
        await store.delete_entry(habit.id, "2025-03-02")
        assert await store.list_entries_for_habit(habit.id) == []

    @pytest.mark.asyncio
    async def test_list_entries_for_user_spans_habits(self, store):
        first = await store.create_habit(_habit("A"))
        second = await store.create_habit(_habit("B"))
        await store.upsert_entry(Entry(first.id, "2025-03-02", EntryStatus.COMPLETED))
        await store.upsert_entry(Entry(second.id, "2025-03-02", EntryStatus.SKIPPED))

        entries = await store.list_entries_for_user()
        assert {e.habit_id for e in entries} == {first.id, second.id}

    @pytest.mark.asyncio
    async def test_backend_failure_is_store_unavailable(self, store, async_engine):
        async with async_engine.begin() as conn:
            await conn.exec_driver_sql("DROP TABLE entries")
        with pytest.raises(StoreUnavailable):
            await store.list_entries_for_user()
