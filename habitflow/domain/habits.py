"""Habit and entry value types.

These are plain immutable records. The ORM rows in ``habitflow.models`` are
mapped to and from them at the store boundary, so everything above the store
works on data that is cheap to build in tests.
"""

import time
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from . import dates
from .errors import ScheduleLocked, ValidationError

COLORS = [
    "#ef4444",  # red
    "#f97316",  # orange
    "#eab308",  # yellow
    "#22c55e",  # green
    "#06b6d4",  # cyan
    "#3b82f6",  # blue
    "#8b5cf6",  # violet
    "#d946ef",  # fuchsia
]
DEFAULT_COLOR = COLORS[5]
DEFAULT_TARGET_TIME = "09:00"


class GoalType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class EntryStatus(str, Enum):
    """Persisted outcome of a day. ``pending`` is never stored."""

    COMPLETED = "completed"
    SKIPPED = "skipped"


class CellState(str, Enum):
    """What a single (habit, date) cell shows."""

    UNSCHEDULED = "unscheduled"
    FUTURE = "future"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    PENDING = "pending"


# Only these may change once a habit exists
MUTABLE_FIELDS = frozenset({"title", "description", "color", "start_date"})
LOCKED_FIELDS = frozenset(
    {
        "id",
        "owner_id",
        "goal_type",
        "target_time",
        "target_day_of_week",
        "target_day_of_month",
        "created_at",
    }
)


def now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Habit:
    id: str
    title: str
    goal_type: GoalType
    start_date: str
    created_at: int
    description: Optional[str] = None
    color: str = DEFAULT_COLOR
    target_time: str = DEFAULT_TARGET_TIME
    target_day_of_week: Optional[int] = None
    target_day_of_month: Optional[int] = None
    owner_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "description": self.description,
            "goal_type": self.goal_type.value,
            "color": self.color,
            "start_date": self.start_date,
            "created_at": self.created_at,
            "target_time": self.target_time,
            "target_day_of_week": self.target_day_of_week,
            "target_day_of_month": self.target_day_of_month,
        }


@dataclass(frozen=True)
class Entry:
    habit_id: str
    date: str
    status: EntryStatus

    @property
    def key(self) -> Tuple[str, str]:
        return (self.habit_id, self.date)

    def to_dict(self) -> Dict[str, Any]:
        return {"habit_id": self.habit_id, "date": self.date, "status": self.status.value}


@dataclass(frozen=True)
class HabitPatch:
    """Partial update of a habit's mutable fields. ``None`` means unchanged."""

    title: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    start_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HabitPatch":
        """Build a patch, refusing any key outside the mutable set."""
        locked = set(data) & LOCKED_FIELDS
        if locked:
            raise ScheduleLocked(locked)
        unknown = set(data) - MUTABLE_FIELDS
        if unknown:
            raise ValidationError(sorted(unknown)[0], "unknown field")
        return cls(**data)

    def changes(self) -> Dict[str, Any]:
        return {
            name: value
            for name, value in (
                ("title", self.title),
                ("description", self.description),
                ("color", self.color),
                ("start_date", self.start_date),
            )
            if value is not None
        }

    def apply(self, habit: Habit) -> Habit:
        return replace(habit, **self.changes())


def new_habit(
    title: str,
    goal_type: GoalType = GoalType.DAILY,
    *,
    description: Optional[str] = None,
    color: str = DEFAULT_COLOR,
    start_date: Optional[str] = None,
    target_time: str = DEFAULT_TARGET_TIME,
    target_day_of_week: Optional[int] = None,
    target_day_of_month: Optional[int] = None,
    habit_id: Optional[str] = None,
    created_at: Optional[int] = None,
) -> Habit:
    """Mint a new habit with client-side id and creation instant.

    The day-of-week / day-of-month target is kept only for the goal type
    that uses it.
    """
    try:
        goal_type = GoalType(goal_type)
    except ValueError:
        raise ValidationError("goal_type", "Goal type must be daily, weekly or monthly")
    habit = Habit(
        id=habit_id or str(uuid.uuid4()),
        title=title.strip() if title else title,
        description=description or None,
        goal_type=goal_type,
        color=color,
        start_date=start_date if start_date is not None else dates.today(),
        created_at=created_at if created_at is not None else now_millis(),
        target_time=target_time,
        target_day_of_week=target_day_of_week if goal_type is GoalType.WEEKLY else None,
        target_day_of_month=target_day_of_month if goal_type is GoalType.MONTHLY else None,
    )
    validate_habit(habit)
    return habit


def validate_habit(habit: Habit) -> None:
    """Raise ValidationError when the habit breaks a data-model invariant."""
    if not habit.title or not habit.title.strip():
        raise ValidationError("title", "Title is required")
    if not habit.start_date:
        raise ValidationError("start_date", "Start date is required")
    if not dates.is_valid_date(habit.start_date):
        raise ValidationError("start_date", "Start date must be YYYY-MM-DD")
    if habit.target_time and not dates.format_time_12h(habit.target_time):
        raise ValidationError("target_time", "Target time must be HH:MM")

    if habit.goal_type is GoalType.WEEKLY:
        dow = habit.target_day_of_week
        if dow is None or not 0 <= dow <= 6:
            raise ValidationError("target_day_of_week", "Pick a day between 0 and 6")
    elif habit.target_day_of_week is not None:
        raise ValidationError("target_day_of_week", "Only weekly habits have a weekday")

    if habit.goal_type is GoalType.MONTHLY:
        dom = habit.target_day_of_month
        if dom is None or not 1 <= dom <= 31:
            raise ValidationError("target_day_of_month", "Pick a day between 1 and 31")
    elif habit.target_day_of_month is not None:
        raise ValidationError("target_day_of_month", "Only monthly habits have a day of month")


def validate_patch(patch: HabitPatch) -> None:
    if patch.title is not None and not patch.title.strip():
        raise ValidationError("title", "Title is required")
    if patch.start_date is not None and not dates.is_valid_date(patch.start_date):
        raise ValidationError("start_date", "Start date must be YYYY-MM-DD")
