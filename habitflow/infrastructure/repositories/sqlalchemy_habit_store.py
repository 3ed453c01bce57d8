"""SQLAlchemy implementation of HabitStore.

Row-level authorization is enforced here: every statement is filtered by the
``owner_id`` of the signed-in user, taken from the identity source at call
time. Backend failures surface as ``StoreUnavailable``.
"""

import datetime as dt
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from habitflow.domain import dates
from habitflow.domain.errors import (
    HabitNotFound,
    NotAuthenticated,
    StoreUnavailable,
    ValidationError,
)
from habitflow.domain.habits import (
    Entry,
    EntryStatus,
    GoalType,
    Habit,
    HabitPatch,
    validate_habit,
    validate_patch,
)
from habitflow.domain.ports.identity import IdentitySource
from habitflow.models.habit import EntryRow, HabitRow

logger = logging.getLogger(__name__)


def _to_date(value: str, field: str) -> dt.date:
    parsed = dates.parse_date(value)
    if parsed is None:
        raise ValidationError(field, "Date must be YYYY-MM-DD")
    return parsed


def habit_from_row(row: HabitRow) -> Habit:
    """Map a row to the domain record, defaulting start_date to the creation day."""
    if row.start_date is not None:
        start_date = row.start_date.isoformat()
    else:
        start_date = dt.datetime.fromtimestamp(row.created_at / 1000).date().isoformat()
    return Habit(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title,
        description=row.description,
        goal_type=GoalType(row.goal_type),
        color=row.color or "",
        start_date=start_date,
        created_at=row.created_at,
        target_time=row.target_time or "",
        target_day_of_week=row.target_day_of_week,
        target_day_of_month=row.target_day_of_month,
    )


def entry_from_row(row: EntryRow) -> Entry:
    return Entry(habit_id=row.habit_id, date=row.date.isoformat(), status=EntryStatus(row.status))


class SqlAlchemyHabitStore:
    """Concrete HabitStore backed by SQLAlchemy async sessions."""

    def __init__(
        self, session_factory: async_sessionmaker, identity: IdentitySource
    ) -> None:
        self._session_factory = session_factory
        self._identity = identity

    # --- Plumbing ---

    def _owner(self) -> str:
        user_id = self._identity.current_user_id()
        if not user_id:
            raise NotAuthenticated()
        return user_id

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        """Open a session that commits on success and maps backend errors."""
        try:
            async with self._session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except BaseException:
                    await session.rollback()
                    raise
        except SQLAlchemyError as e:
            logger.error(f"Store operation {operation} failed: {e}")
            raise StoreUnavailable(operation, e) from e
        except OSError as e:
            logger.error(f"Store operation {operation} failed: {e}")
            raise StoreUnavailable(operation, e) from e

    async def _owned_habit(
        self, session: AsyncSession, habit_id: str, owner: str
    ) -> Optional[HabitRow]:
        result = await session.execute(
            select(HabitRow).where(HabitRow.id == habit_id, HabitRow.owner_id == owner)
        )
        return result.scalar_one_or_none()

    # --- Habits ---

    async def list_habits(self) -> List[Habit]:
        owner = self._owner()
        async with self._session("list_habits") as session:
            result = await session.execute(
                select(HabitRow)
                .where(HabitRow.owner_id == owner)
                .order_by(HabitRow.created_at.asc(), HabitRow.id.asc())
            )
            return [habit_from_row(row) for row in result.scalars().all()]

    async def get_habit(self, habit_id: str) -> Habit:
        owner = self._owner()
        async with self._session("get_habit") as session:
            row = await self._owned_habit(session, habit_id, owner)
            if row is None:
                raise HabitNotFound(habit_id)
            return habit_from_row(row)

    async def create_habit(self, habit: Habit) -> Habit:
        owner = self._owner()
        validate_habit(habit)
        row = HabitRow(
            id=habit.id,
            owner_id=owner,
            title=habit.title,
            description=habit.description,
            goal_type=habit.goal_type.value,
            color=habit.color,
            start_date=_to_date(habit.start_date, "start_date"),
            created_at=habit.created_at,
            target_time=habit.target_time or None,
            target_day_of_week=habit.target_day_of_week,
            target_day_of_month=habit.target_day_of_month,
        )
        async with self._session("create_habit") as session:
            session.add(row)
            await session.flush()
            await session.refresh(row)
            created = habit_from_row(row)
        logger.info(f"Created habit {created.id} ({created.goal_type.value}) for {owner}")
        return created

    async def update_habit(self, habit_id: str, patch: HabitPatch) -> Habit:
        owner = self._owner()
        validate_patch(patch)
        changes = patch.changes()
        async with self._session("update_habit") as session:
            row = await self._owned_habit(session, habit_id, owner)
            if row is None:
                raise HabitNotFound(habit_id)
            for name, value in changes.items():
                if name == "start_date":
                    value = _to_date(value, "start_date")
                setattr(row, name, value)
            await session.flush()
            return habit_from_row(row)

    async def delete_habit(self, habit_id: str) -> None:
        owner = self._owner()
        async with self._session("delete_habit") as session:
            row = await self._owned_habit(session, habit_id, owner)
            if row is None:
                raise HabitNotFound(habit_id)
            await session.execute(
                delete(EntryRow).where(
                    EntryRow.habit_id == habit_id, EntryRow.owner_id == owner
                )
            )
            await session.delete(row)
        logger.info(f"Deleted habit {habit_id} and its entries")

    # --- Entries ---

    async def list_entries_for_user(self) -> List[Entry]:
        owner = self._owner()
        async with self._session("list_entries_for_user") as session:
            result = await session.execute(
                select(EntryRow)
                .where(EntryRow.owner_id == owner)
                .order_by(EntryRow.habit_id, EntryRow.date)
            )
            return [entry_from_row(row) for row in result.scalars().all()]

    async def list_entries_for_habit(self, habit_id: str) -> List[Entry]:
        owner = self._owner()
        async with self._session("list_entries_for_habit") as session:
            result = await session.execute(
                select(EntryRow)
                .where(EntryRow.habit_id == habit_id, EntryRow.owner_id == owner)
                .order_by(EntryRow.date)
            )
            return [entry_from_row(row) for row in result.scalars().all()]

    async def upsert_entry(self, entry: Entry) -> Entry:
        owner = self._owner()
        status = EntryStatus(entry.status)
        day = _to_date(entry.date, "date")
        async with self._session("upsert_entry") as session:
            if await self._owned_habit(session, entry.habit_id, owner) is None:
                raise HabitNotFound(entry.habit_id)
            row = await session.get(EntryRow, (entry.habit_id, day))
            if row is None:
                row = EntryRow(
                    habit_id=entry.habit_id, date=day, status=status.value, owner_id=owner
                )
                session.add(row)
            else:
                row.status = status.value
            await session.flush()
            return entry_from_row(row)

    async def delete_entry(self, habit_id: str, date: str) -> None:
        owner = self._owner()
        day = _to_date(date, "date")
        async with self._session("delete_entry") as session:
            await session.execute(
                delete(EntryRow).where(
                    EntryRow.habit_id == habit_id,
                    EntryRow.date == day,
                    EntryRow.owner_id == owner,
                )
            )
