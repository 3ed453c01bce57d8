"""
Habit and entry tables.

Both carry ``owner_id`` so every query can be scoped to the signed-in user.
Deleting a habit cascades to its entries at the database level.
"""

import datetime as dt
from typing import Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    ForeignKey,
    SmallInteger,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class HabitRow(Base):
    """A user-defined recurring intention."""

    __tablename__ = "habits"
    __table_args__ = (
        CheckConstraint(
            "goal_type IN ('daily', 'weekly', 'monthly')", name="ck_habits_goal_type"
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    owner_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    goal_type: Mapped[str] = mapped_column(String(16), nullable=False)
    color: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    start_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)

    # Epoch milliseconds, minted by the client
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    target_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)  # HH:MM
    target_day_of_week: Mapped[Optional[int]] = mapped_column(SmallInteger, nullable=True)
    target_day_of_month: Mapped[Optional[int]] = mapped_column(SmallInteger, nullable=True)

    def __repr__(self) -> str:
        return f"<HabitRow(id={self.id}, owner_id={self.owner_id}, goal_type={self.goal_type}, title={self.title})>"


class EntryRow(Base):
    """Outcome of one habit on one day. Absence means pending."""

    __tablename__ = "entries"
    __table_args__ = (
        CheckConstraint("status IN ('completed', 'skipped')", name="ck_entries_status"),
    )

    habit_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("habits.id", ondelete="CASCADE"), primary_key=True
    )
    date: Mapped[dt.date] = mapped_column(Date, primary_key=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<EntryRow(habit_id={self.habit_id}, date={self.date}, status={self.status})>"
