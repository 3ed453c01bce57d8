"""
Habit workspace: the signed-in user's habits, the entry index built from
them, and the toggle service writing through it.

Reads replace the local caches wholesale; on a transient store failure the
workspace shows an empty state and logs the failure. Writes other than
toggles report errors to the caller and leave the caches untouched.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..core.error_messages import sanitize_error
from ..domain import dates, derivations
from ..domain.entry_index import EntryIndex
from ..domain.errors import HabitNotFound, StoreUnavailable, ValidationError
from ..domain.habits import (
    DEFAULT_COLOR,
    DEFAULT_TARGET_TIME,
    Entry,
    GoalType,
    Habit,
    HabitPatch,
    new_habit,
    validate_patch,
)
from ..domain.repositories.habit_store import HabitStore
from ..domain.schedule import MonthGrid, schedule_label, year_calendar
from .toggle_service import ToggleOutcome, ToggleService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HabitDetail:
    habit: Habit
    streak: int
    completion_count: int
    schedule: str
    year: int
    previous_year: int
    next_year: int
    calendar: List[MonthGrid]


class HabitWorkspace:
    def __init__(self, store: HabitStore, clock: Callable[[], str] = dates.today) -> None:
        self._store = store
        self._clock = clock
        self._habits: Dict[str, Habit] = {}
        self.index = EntryIndex()
        self.toggles = ToggleService(store, self.index, clock)
        self.load_error: Optional[str] = None

    @property
    def habits(self) -> List[Habit]:
        return sorted(self._habits.values(), key=lambda h: (h.created_at, h.id))

    def today(self) -> str:
        return self._clock()

    def get_habit(self, habit_id: str) -> Habit:
        habit = self._habits.get(habit_id)
        if habit is None:
            raise HabitNotFound(habit_id)
        return habit

    def _pending_statuses(self) -> Dict[tuple, Any]:
        return {key: self.index.get(*key) for key in self.toggles.pending_keys()}

    def _restore_pending(self, pending: Dict[tuple, Any]) -> None:
        # A fetch racing an in-flight toggle must not undo its optimistic state
        for (habit_id, date), status in pending.items():
            self.index.set(habit_id, date, status)

    # --- Reads ---

    async def refresh(self) -> bool:
        """Re-fetch habits and entries. Returns False when the store failed."""
        try:
            habits = await self._store.list_habits()
            entries = await self._store.list_entries_for_user()
        except StoreUnavailable as e:
            logger.error(f"Failed to load habits: {e}")
            self._habits.clear()
            self.index.rebuild([])
            self.load_error = sanitize_error(e)
            return False
        pending = self._pending_statuses()
        self._habits = {h.id: h for h in habits}
        self.index.rebuild(entries)
        self._restore_pending(pending)
        self.load_error = None
        logger.debug(f"Loaded {len(habits)} habits and {len(entries)} entries")
        return True

    async def load_habit(self, habit_id: str) -> Habit:
        """Re-fetch one habit and its entries for the detail view.

        Raises:
            HabitNotFound: The habit does not exist for this user.
            StoreUnavailable: The store failed and nothing is cached.
        """
        try:
            habit = await self._store.get_habit(habit_id)
            entries = await self._store.list_entries_for_habit(habit_id)
        except StoreUnavailable as e:
            logger.error(f"Failed to load habit {habit_id}: {e}")
            if habit_id in self._habits:
                return self._habits[habit_id]
            raise
        except HabitNotFound:
            self._habits.pop(habit_id, None)
            self.index.drop_habit(habit_id)
            raise
        pending = {k: v for k, v in self._pending_statuses().items() if k[0] == habit_id}
        self._habits[habit.id] = habit
        self.index.replace_habit(habit.id, entries)
        self._restore_pending(pending)
        return habit

    async def ensure_habit(self, habit_id: str) -> Habit:
        """Cached habit, fetching it (and its entries) on a miss."""
        if habit_id in self._habits:
            return self._habits[habit_id]
        return await self.load_habit(habit_id)

    # --- Writes ---

    async def create_habit(
        self,
        title: str,
        goal_type: GoalType = GoalType.DAILY,
        *,
        description: Optional[str] = None,
        color: Optional[str] = None,
        start_date: Optional[str] = None,
        target_time: Optional[str] = None,
        target_day_of_week: Optional[int] = None,
        target_day_of_month: Optional[int] = None,
    ) -> Habit:
        habit = new_habit(
            title,
            goal_type,
            description=description,
            color=color or DEFAULT_COLOR,
            start_date=start_date or self._clock(),
            target_time=target_time if target_time is not None else DEFAULT_TARGET_TIME,
            target_day_of_week=target_day_of_week,
            target_day_of_month=target_day_of_month,
        )
        created = await self._store.create_habit(habit)
        self._habits[created.id] = created
        return created

    async def update_habit(self, habit_id: str, changes: Dict[str, Any]) -> Habit:
        """Apply editable-field changes.

        Raises:
            ScheduleLocked: *changes* touches a schedule field.
        """
        patch = HabitPatch.from_dict(changes)
        validate_patch(patch)
        if not patch.changes():
            return self.get_habit(habit_id)
        updated = await self._store.update_habit(habit_id, patch)
        self._habits[updated.id] = updated
        return updated

    async def delete_habit(self, habit_id: str) -> None:
        await self._store.delete_habit(habit_id)
        self._habits.pop(habit_id, None)
        await self.toggles.cancel_for_habit(habit_id)
        self.index.drop_habit(habit_id)

    async def toggle(self, habit_id: str, date: str) -> ToggleOutcome:
        return await self.toggles.toggle(self.get_habit(habit_id), date)

    async def discard(self) -> None:
        """Abandon in-flight writes and forget everything loaded."""
        await self.toggles.cancel_pending()
        self._habits.clear()
        self.index.rebuild([])
        self.load_error = None

    # --- Views ---

    def dashboard(self) -> derivations.DashboardView:
        return derivations.dashboard(self.habits, self.index, self._clock())

    def analytics(self, range_days: int = 30) -> derivations.AnalyticsView:
        if range_days not in derivations.ANALYTICS_RANGES:
            raise ValidationError(
                "range", f"Range must be one of {', '.join(map(str, derivations.ANALYTICS_RANGES))}"
            )
        return derivations.analytics(self.habits, self.index, self._clock(), range_days)

    def habit_detail(self, habit_id: str, year: Optional[int] = None) -> HabitDetail:
        habit = self.get_habit(habit_id)
        today = self._clock()
        if year is None:
            year = int(today[:4])
        return HabitDetail(
            habit=habit,
            streak=derivations.streak(self.index, habit.id, today),
            completion_count=derivations.completion_count(self.index, habit.id),
            schedule=schedule_label(habit),
            year=year,
            previous_year=year - 1,
            next_year=year + 1,
            calendar=year_calendar(habit, year, self.index.statuses_for_habit(habit.id), today),
        )

    def entries_for(self, habit_id: str) -> List[Entry]:
        return self.index.for_habit(habit_id)
