"""Tests for HabitWorkspace and the per-user session binding, on a real store."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from habitflow.domain.errors import HabitNotFound, ScheduleLocked, StoreUnavailable, ValidationError
from habitflow.domain.habits import EntryStatus, GoalType
from habitflow.infrastructure.repositories import SqlAlchemyHabitStore
from habitflow.services.habit_workspace import HabitWorkspace
from habitflow.services.user_session import SessionRegistry, UserSession


@pytest.fixture
async def owner(make_account):
    return await make_account()


@pytest.fixture
def store(session_factory, identity, owner):
    return SqlAlchemyHabitStore(session_factory, identity(owner))


@pytest.fixture
def workspace(store, today):
    return HabitWorkspace(store, clock=lambda: today)


class TestHabitWorkspace:
    @pytest.mark.asyncio
    async def test_create_applies_defaults(self, workspace, today):
        habit = await workspace.create_habit("Read")
        assert habit.goal_type is GoalType.DAILY
        assert habit.start_date == today
        assert habit.target_time == "09:00"
        assert habit.color == "#3b82f6"
        assert [h.id for h in workspace.habits] == [habit.id]

    @pytest.mark.asyncio
    async def test_create_rejects_missing_title_without_state_change(self, workspace):
        with pytest.raises(ValidationError):
            await workspace.create_habit("")
        assert workspace.habits == []

    @pytest.mark.asyncio
    async def test_refresh_round_trip(self, workspace, store, today):
        habit = await workspace.create_habit("Walk", start_date="2025-03-01")
        await workspace.toggle(habit.id, today)

        fresh = HabitWorkspace(store, clock=lambda: today)
        assert await fresh.refresh()
        assert [h.id for h in fresh.habits] == [habit.id]
        assert fresh.index.get(habit.id, today) is EntryStatus.COMPLETED

        view = fresh.dashboard()
        assert view.progress.completed == 1
        assert view.sections["daily"][0].streak == 1

    @pytest.mark.asyncio
    async def test_refresh_failure_shows_empty_state(self, workspace, today):
        await workspace.create_habit("Walk")
        workspace._store.list_habits = AsyncMock(side_effect=StoreUnavailable("list_habits"))

        assert not await workspace.refresh()
        assert workspace.habits == []
        assert len(workspace.index) == 0
        assert workspace.load_error
        assert workspace.dashboard().empty

    @pytest.mark.asyncio
    async def test_update_editable_fields(self, workspace):
        habit = await workspace.create_habit("Walk")
        updated = await workspace.update_habit(habit.id, {"title": "Run", "description": "5k"})
        assert updated.title == "Run"
        assert workspace.get_habit(habit.id).description == "5k"

    @pytest.mark.asyncio
    async def test_update_schedule_is_locked(self, workspace):
        habit = await workspace.create_habit("Walk")
        with pytest.raises(ScheduleLocked):
            await workspace.update_habit(habit.id, {"goal_type": "weekly"})
        assert workspace.get_habit(habit.id).goal_type is GoalType.DAILY

    @pytest.mark.asyncio
    async def test_delete_drops_local_entries(self, workspace, today):
        habit = await workspace.create_habit("Walk", start_date="2025-03-01")
        await workspace.toggle(habit.id, today)
        await workspace.delete_habit(habit.id)

        assert workspace.index.for_habit(habit.id) == []
        with pytest.raises(HabitNotFound):
            workspace.get_habit(habit.id)
        assert await workspace.refresh()
        assert workspace.habits == []

    @pytest.mark.asyncio
    async def test_delete_while_toggle_in_flight_leaves_nothing_behind(
        self, workspace, store, today
    ):
        habit = await workspace.create_habit("Walk", start_date="2025-03-01")
        await workspace.toggle(habit.id, today)

        gate = asyncio.Event()
        real_upsert = store.upsert_entry

        async def slow_upsert(entry):
            await gate.wait()
            return await real_upsert(entry)

        store.upsert_entry = slow_upsert
        pending = asyncio.create_task(workspace.toggle(habit.id, today))
        for _ in range(5):
            await asyncio.sleep(0)
        assert workspace.toggles.is_pending(habit.id, today)

        await workspace.delete_habit(habit.id)
        gate.set()
        outcome = await pending

        assert not outcome.ok
        assert workspace.index.for_habit(habit.id) == []
        assert workspace.toggles.pending_keys() == []
        assert workspace.analytics(7).total_completions == 0

    @pytest.mark.asyncio
    async def test_habit_detail(self, workspace, today):
        habit = await workspace.create_habit(
            "Gym", GoalType.WEEKLY, start_date="2025-03-01", target_day_of_week=1
        )
        await workspace.toggle(habit.id, "2025-03-03")
        await workspace.toggle(habit.id, today)

        detail = workspace.habit_detail(habit.id)
        assert detail.year == 2025
        assert (detail.previous_year, detail.next_year) == (2024, 2026)
        assert detail.schedule == "Mondays at 9:00 AM"
        assert detail.completion_count == 2
        assert len(detail.calendar) == 12

    @pytest.mark.asyncio
    async def test_load_habit_not_found(self, workspace):
        with pytest.raises(HabitNotFound):
            await workspace.load_habit("missing")

    @pytest.mark.asyncio
    async def test_analytics_range_validation(self, workspace):
        assert workspace.analytics(90).range_days == 90
        with pytest.raises(ValidationError):
            workspace.analytics(14)

    @pytest.mark.asyncio
    async def test_discard_forgets_everything(self, workspace, today):
        habit = await workspace.create_habit("Walk", start_date="2025-03-01")
        await workspace.toggle(habit.id, today)
        await workspace.discard()
        assert workspace.habits == []
        assert len(workspace.index) == 0


class TestUserSession:
    def _store_factory(self, session_factory):
        return lambda identity: SqlAlchemyHabitStore(session_factory, identity)

    @pytest.mark.asyncio
    async def test_sign_in_loads_and_sign_out_discards(self, auth_provider, session_factory):
        first = UserSession(auth_provider, self._store_factory(session_factory))
        await first.sign_up("f@example.com", "pw", "F", "G")
        habit = await first.workspace.create_habit("Walk")

        second = UserSession(auth_provider, self._store_factory(session_factory))
        await second.start(None)
        assert second.workspace.habits == []
        await second.sign_in("f@example.com", "pw")
        assert [h.id for h in second.workspace.habits] == [habit.id]

        await second.sign_out()
        assert not second.authenticated
        assert second.workspace.habits == []

    @pytest.mark.asyncio
    async def test_users_do_not_see_each_other(self, auth_provider, session_factory):
        alice = UserSession(auth_provider, self._store_factory(session_factory))
        await alice.sign_up("alice@example.com", "pw", "Alice", "A")
        await alice.workspace.create_habit("Secret")

        bob = UserSession(auth_provider, self._store_factory(session_factory))
        await bob.sign_up("bob@example.com", "pw", "Bob", "B")
        assert bob.workspace.habits == []

    @pytest.mark.asyncio
    async def test_registry_resolves_tokens(self, auth_provider, session_factory):
        registry = SessionRegistry(auth_provider, self._store_factory(session_factory))

        anonymous = await registry.resolve(None)
        assert not anonymous.authenticated
        assert len(registry) == 0

        user_session = registry.new_session()
        await user_session.sign_up("g@example.com", "pw", "G", "H")
        await registry.register(user_session)
        assert await registry.resolve(user_session.token) is user_session

        # A token not yet cached is restored from the auth provider
        other = SessionRegistry(auth_provider, self._store_factory(session_factory))
        restored = await other.resolve(user_session.token)
        assert restored.authenticated
        assert restored.user.id == user_session.user.id

        await registry.sign_out(user_session)
        assert len(registry) == 0
        assert not (await registry.resolve(user_session.token)).authenticated
