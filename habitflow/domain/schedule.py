"""
Schedule resolution: is a habit expected on a given date, and what does the
(habit, date) cell show.

No database, no I/O. Everything takes ``today`` explicitly so callers (and
tests) pin the clock.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from . import dates
from .habits import CellState, EntryStatus, GoalType, Habit


def is_scheduled(habit: Habit, date: str) -> bool:
    """True when *habit* is expected on *date* per its recurrence and start date.

    Monthly targets of 29-31 are simply not scheduled in months lacking that
    day; there is no rollover to the last day of the month.
    """
    if not dates.is_valid_date(date) or date < habit.start_date:
        return False
    if habit.goal_type is GoalType.DAILY:
        return True
    if habit.goal_type is GoalType.WEEKLY:
        return dates.day_of_week(date) == habit.target_day_of_week
    if habit.goal_type is GoalType.MONTHLY:
        return dates.day_of_month(date) == habit.target_day_of_month
    return False


def cell_state(
    habit: Habit, date: str, status: Optional[EntryStatus], today: str
) -> CellState:
    """Resolve what a single cell shows.

    Precedence: unscheduled, then future, then the stored status, then
    pending. A pre-marked future entry still reads as future.
    """
    if not is_scheduled(habit, date):
        return CellState.UNSCHEDULED
    if date > today:
        return CellState.FUTURE
    if status is not None:
        return CellState(status.value)
    return CellState.PENDING


def toggle_block_reason(habit: Habit, date: str, today: str) -> Optional[str]:
    """Why a toggle on (habit, date) must be refused, or None when allowed."""
    if not dates.is_valid_date(date):
        return "malformed date"
    if date > today:
        return "date is in the future"
    if date < habit.start_date:
        return "date is before the habit's start date"
    if not is_scheduled(habit, date):
        return "habit is not scheduled on this date"
    return None


def schedule_label(habit: Habit, compact: bool = False) -> str:
    """Human-readable recurrence, e.g. ``Mondays at 9:00 AM``.

    The compact form drops "of the month" for monthly habits, matching the
    dashboard card.
    """
    time = dates.format_time_12h(habit.target_time)
    at = f" at {time}" if time else ""

    if habit.goal_type is GoalType.DAILY:
        return f"Daily{at}"
    if habit.goal_type is GoalType.WEEKLY:
        dow = habit.target_day_of_week
        if dow is None or not 0 <= dow <= 6:
            return f"Weekly{at}"
        return f"{dates.DAYS_OF_WEEK[dow]}s{at}"
    if habit.goal_type is GoalType.MONTHLY:
        if not habit.target_day_of_month:
            return f"Monthly{at}"
        day = dates.ordinal_suffix(habit.target_day_of_month)
        if compact:
            return f"{day}{at}"
        return f"{day} of the month{at}"
    return "Anytime"


# ---------------------------------------------------------------------------
# Year calendar (habit detail view)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CalendarCell:
    date: str
    day: int
    state: CellState
    is_today: bool
    is_future: bool
    toggleable: bool


@dataclass(frozen=True)
class MonthGrid:
    year: int
    month: int
    name: str
    leading_blanks: int
    cells: List[CalendarCell]


def month_grid(
    habit: Habit,
    year: int,
    month: int,
    statuses: Dict[str, EntryStatus],
    today: str,
) -> MonthGrid:
    """One month of cells, Sunday-first, with leading blanks before the 1st."""
    cells = []
    for day in range(1, dates.days_in_month(year, month) + 1):
        date = f"{year:04d}-{month:02d}-{day:02d}"
        state = cell_state(habit, date, statuses.get(date), today)
        cells.append(
            CalendarCell(
                date=date,
                day=day,
                state=state,
                is_today=date == today,
                is_future=date > today,
                toggleable=toggle_block_reason(habit, date, today) is None,
            )
        )
    first = f"{year:04d}-{month:02d}-01"
    return MonthGrid(
        year=year,
        month=month,
        name=dates.month_name(month),
        leading_blanks=dates.day_of_week(first) or 0,
        cells=cells,
    )


def year_calendar(
    habit: Habit, year: int, statuses: Dict[str, EntryStatus], today: str
) -> List[MonthGrid]:
    """Twelve month grids for *year*."""
    return [month_grid(habit, year, month, statuses, today) for month in range(1, 13)]
