from .account import Account, AccountSession
from .base import Base, TimestampMixin
from .habit import EntryRow, HabitRow

__all__ = [
    "Base",
    "TimestampMixin",
    "Account",
    "AccountSession",
    "HabitRow",
    "EntryRow",
]
