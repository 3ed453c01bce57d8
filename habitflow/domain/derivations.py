"""
Pure derivations over (habits, entries, today).

Every dashboard, detail and analytics number is computed here from the
habit list and the entry index. No database, no clock reads: ``today`` is
always passed in.

A few rules are deliberately loose and must stay that way:

- streaks count any completed day, scheduled or not;
- window rates and missed counts treat every calendar day on or after a
  habit's start date as an active slot, not only its scheduled days.
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Collection, Dict, Iterable, Iterator, List, Optional, Sequence, Set

from . import dates
from .entry_index import EntryIndex
from .habits import Entry, EntryStatus, GoalType, Habit
from .schedule import is_scheduled, schedule_label

HEATMAP_DAYS = 365
HEATMAP_ROWS = 7
LEADERBOARD_SIZE = 5
ANALYTICS_RANGES = (7, 30, 90)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, the way percentages are displayed."""
    return int(math.floor(value + 0.5))


def percent(numerator: int, denominator: int) -> float:
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100


# ---------------------------------------------------------------------------
# Per-habit
# ---------------------------------------------------------------------------


def streak_from_dates(completed: Set[str], today: str) -> int:
    """Consecutive completed days ending today, or yesterday if today is open."""
    if not completed:
        return 0
    cursor = today if today in completed else dates.add_days(today, -1)
    count = 0
    while cursor in completed:
        count += 1
        cursor = dates.add_days(cursor, -1)
    return count


def streak(index: EntryIndex, habit_id: str, today: str) -> int:
    return streak_from_dates(index.completed_dates(habit_id), today)


def completion_count(index: EntryIndex, habit_id: str) -> int:
    return len(index.completed_dates(habit_id))


# ---------------------------------------------------------------------------
# Today
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TodayProgress:
    """Progress over the habits scheduled today.

    ``day_off`` is set when the user has habits but none is due today.
    """

    due: List[Habit]
    completed: int
    total: int
    percent: int
    day_off: bool
    remaining: List[Habit] = field(default_factory=list)


def due_today(habits: Iterable[Habit], today: str) -> List[Habit]:
    return [h for h in habits if is_scheduled(h, today)]


def today_progress(habits: Sequence[Habit], index: EntryIndex, today: str) -> TodayProgress:
    due = due_today(habits, today)
    done = [h for h in due if index.get(h.id, today) is EntryStatus.COMPLETED]
    done_ids = {h.id for h in done}
    return TodayProgress(
        due=due,
        completed=len(done),
        total=len(due),
        percent=round_half_up(percent(len(done), len(due))),
        day_off=bool(habits) and not due,
        remaining=[h for h in due if h.id not in done_ids],
    )


# ---------------------------------------------------------------------------
# Windows and trend
# ---------------------------------------------------------------------------


def window_rate(
    habits: Sequence[Habit],
    index: EntryIndex,
    today: str,
    window: int,
    offset: int = 0,
) -> float:
    """Completion rate (0-100) over the *window* days ending at ``today - offset``."""
    hits = slots = 0
    for date in dates.date_range(dates.add_days(today, -offset), window):
        for habit in habits:
            if habit.start_date <= date:
                slots += 1
                if index.get(habit.id, date) is EntryStatus.COMPLETED:
                    hits += 1
    return percent(hits, slots)


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class Trend:
    current_rate: int
    previous_rate: int
    delta: int
    direction: TrendDirection


def trend(habits: Sequence[Habit], index: EntryIndex, today: str, window: int) -> Trend:
    """Compare the current window with the one right before it.

    Direction is decided on the exact rates; the delta is the difference of
    the displayed (rounded) rates.
    """
    current = window_rate(habits, index, today, window, 0)
    previous = window_rate(habits, index, today, window, window)
    if current > previous:
        direction = TrendDirection.UP
    elif current < previous:
        direction = TrendDirection.DOWN
    else:
        direction = TrendDirection.NEUTRAL
    current_rounded = round_half_up(current)
    previous_rounded = round_half_up(previous)
    return Trend(
        current_rate=current_rounded,
        previous_rate=previous_rounded,
        delta=current_rounded - previous_rounded,
        direction=direction,
    )


@dataclass(frozen=True)
class TrendPoint:
    date: str
    percentage: int


def daily_trend(
    habits: Sequence[Habit], index: EntryIndex, today: str, days: int
) -> List[TrendPoint]:
    """Per-day completion percentage over active habits, oldest first."""
    points = []
    for date in dates.date_range(today, days):
        active = [h for h in habits if h.start_date <= date]
        done = sum(1 for h in active if index.get(h.id, date) is EntryStatus.COMPLETED)
        points.append(TrendPoint(date=date, percentage=round_half_up(percent(done, len(active)))))
    return points


# ---------------------------------------------------------------------------
# Cross-habit aggregates
# ---------------------------------------------------------------------------


def _completed(index: EntryIndex, habit_ids: Optional[Collection[str]]) -> Iterator[Entry]:
    """Completed entries, limited to *habit_ids* when given."""
    for entry in index:
        if entry.status is not EntryStatus.COMPLETED:
            continue
        if habit_ids is not None and entry.habit_id not in habit_ids:
            continue
        yield entry


def _completions_by_date(
    index: EntryIndex, habit_ids: Optional[Collection[str]] = None
) -> Counter:
    return Counter(e.date for e in _completed(index, habit_ids))


def total_completions(index: EntryIndex, habit_ids: Optional[Collection[str]] = None) -> int:
    return sum(1 for _ in _completed(index, habit_ids))


def weekday_histogram(
    index: EntryIndex, habit_ids: Optional[Collection[str]] = None
) -> List[int]:
    """Completed entries per weekday, 0 = Sunday."""
    counts = [0] * 7
    for entry in _completed(index, habit_ids):
        dow = dates.day_of_week(entry.date)
        if dow is not None:
            counts[dow] += 1
    return counts


def most_productive_day(histogram: Sequence[int]) -> Optional[int]:
    """Index of the highest count; ties go to the lowest index (Sunday first)."""
    if not histogram:
        return None
    best = 0
    for i, count in enumerate(histogram):
        if count > histogram[best]:
            best = i
    return best


@dataclass(frozen=True)
class HeatmapCell:
    date: str
    count: int
    level: int


def intensity_level(count: int, maximum: int) -> int:
    """Bucket a day's count into 0-4 relative to the busiest day."""
    if count <= 0:
        return 0
    ratio = count / max(maximum, 1)
    if ratio < 0.25:
        return 1
    if ratio < 0.5:
        return 2
    if ratio < 0.75:
        return 3
    return 4


def heatmap(
    index: EntryIndex,
    today: str,
    days: int = HEATMAP_DAYS,
    habit_ids: Optional[Collection[str]] = None,
) -> List[HeatmapCell]:
    """Completion counts for the last *days* dates, oldest first."""
    by_date = _completions_by_date(index, habit_ids)
    window = dates.date_range(today, days)
    counts = [by_date.get(date, 0) for date in window]
    maximum = max(counts + [1])
    return [
        HeatmapCell(date=date, count=count, level=intensity_level(count, maximum))
        for date, count in zip(window, counts)
    ]


def heatmap_columns(cells: Sequence[HeatmapCell], rows: int = HEATMAP_ROWS) -> List[List[HeatmapCell]]:
    """Pack cells into columns of *rows*; not aligned to weekdays."""
    return [list(cells[i : i + rows]) for i in range(0, len(cells), rows)]


def activity_streak(
    index: EntryIndex, today: str, habit_ids: Optional[Collection[str]] = None
) -> int:
    """Consecutive days on which any habit was completed, ending today or yesterday."""
    return streak_from_dates(set(_completions_by_date(index, habit_ids)), today)


@dataclass(frozen=True)
class LeaderboardRow:
    habit: Habit
    count: int
    width: float


def leaderboard(
    habits: Sequence[Habit], index: EntryIndex, limit: int = LEADERBOARD_SIZE
) -> List[LeaderboardRow]:
    """Top habits by completions; bar widths relative to the overall maximum."""
    counts = [(h, completion_count(index, h.id)) for h in habits]
    maximum = max([c for _, c in counts] + [1])
    ranked = sorted(counts, key=lambda hc: hc[1], reverse=True)[:limit]
    return [
        LeaderboardRow(habit=h, count=c, width=min(100.0, c / maximum * 100))
        for h, c in ranked
    ]


@dataclass(frozen=True)
class StatusBreakdown:
    completed: int
    skipped: int
    missed: int

    def slices(self) -> Dict[str, int]:
        """Non-empty slices only, in display order."""
        raw = {"completed": self.completed, "skipped": self.skipped, "missed": self.missed}
        return {name: value for name, value in raw.items() if value > 0}


def status_breakdown(habits: Sequence[Habit], index: EntryIndex, today: str) -> StatusBreakdown:
    """Completed / skipped / missed over each habit's life up to today.

    Missed is calendar days active minus entries of any status, floored at 0.
    """
    completed = skipped = missed = 0
    for habit in habits:
        elapsed = dates.days_between(habit.start_date, today)
        days_active = max(0, elapsed + 1) if elapsed is not None else 0
        in_range = [
            e for e in index.for_habit(habit.id) if habit.start_date <= e.date <= today
        ]
        completed += sum(1 for e in in_range if e.status is EntryStatus.COMPLETED)
        skipped += sum(1 for e in in_range if e.status is EntryStatus.SKIPPED)
        missed += max(0, days_active - len(in_range))
    return StatusBreakdown(completed=completed, skipped=skipped, missed=missed)


# ---------------------------------------------------------------------------
# View projections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HabitCard:
    habit: Habit
    today_status: Optional[EntryStatus]
    streak: int
    schedule: str
    scheduled_today: bool


@dataclass(frozen=True)
class DashboardView:
    date: str
    progress: TodayProgress
    sections: Dict[str, List[HabitCard]]
    empty: bool


def dashboard(habits: Sequence[Habit], index: EntryIndex, today: str) -> DashboardView:
    """Today's progress plus habit cards grouped daily / weekly / monthly."""
    sections: Dict[str, List[HabitCard]] = {}
    for goal_type in GoalType:
        cards = [
            HabitCard(
                habit=h,
                today_status=index.get(h.id, today),
                streak=streak(index, h.id, today),
                schedule=schedule_label(h, compact=True),
                scheduled_today=is_scheduled(h, today),
            )
            for h in habits
            if h.goal_type is goal_type
        ]
        if cards:
            sections[goal_type.value] = cards
    return DashboardView(
        date=today,
        progress=today_progress(habits, index, today),
        sections=sections,
        empty=not habits,
    )


@dataclass(frozen=True)
class AnalyticsView:
    range_days: int
    total_completions: int
    trend: Trend
    activity_streak: int
    best_day: str
    weekday_histogram: List[int]
    daily_trend: List[TrendPoint]
    heatmap: List[HeatmapCell]
    leaderboard: List[LeaderboardRow]
    status_breakdown: StatusBreakdown
    empty: bool


def analytics(
    habits: Sequence[Habit], index: EntryIndex, today: str, range_days: int = 30
) -> AnalyticsView:
    # Entries left behind by a deleted habit never count
    known = {h.id for h in habits}
    histogram = weekday_histogram(index, known)
    best = most_productive_day(histogram)
    return AnalyticsView(
        range_days=range_days,
        total_completions=total_completions(index, known),
        trend=trend(habits, index, today, range_days),
        activity_streak=activity_streak(index, today, known),
        best_day=dates.SHORT_DAYS_OF_WEEK[best] if best is not None else "N/A",
        weekday_histogram=histogram,
        daily_trend=daily_trend(habits, index, today, range_days),
        heatmap=heatmap(index, today, habit_ids=known),
        leaderboard=leaderboard(habits, index),
        status_breakdown=status_breakdown(habits, index, today),
        empty=not habits,
    )
