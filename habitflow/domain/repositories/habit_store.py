"""HabitStore protocol: the only I/O boundary for habits and entries."""

from typing import List, Protocol, runtime_checkable

from ..habits import Entry, Habit, HabitPatch


@runtime_checkable
class HabitStore(Protocol):
    """Repository interface for habit and entry persistence.

    Every call acts on behalf of the signed-in user; rows owned by anyone
    else are neither visible nor writable. Implementations raise
    ``NotAuthenticated`` without a session and ``StoreUnavailable`` on
    transient backend failures.
    """

    async def list_habits(self) -> List[Habit]:
        """All of the caller's habits, oldest ``created_at`` first."""
        ...

    async def get_habit(self, habit_id: str) -> Habit:
        """Fetch one habit.

        Raises:
            HabitNotFound: No such habit visible to the caller.
        """
        ...

    async def create_habit(self, habit: Habit) -> Habit:
        """Insert a habit; ``owner_id`` is taken from the session.

        Returns:
            The stored habit with server-authored fields populated.
        """
        ...

    async def update_habit(self, habit_id: str, patch: HabitPatch) -> Habit:
        """Change title, description, color or start date.

        Raises:
            HabitNotFound: No such habit visible to the caller.
        """
        ...

    async def delete_habit(self, habit_id: str) -> None:
        """Delete a habit and, by cascade, all of its entries."""
        ...

    async def list_entries_for_user(self) -> List[Entry]:
        ...

    async def list_entries_for_habit(self, habit_id: str) -> List[Entry]:
        ...

    async def upsert_entry(self, entry: Entry) -> Entry:
        """Insert or overwrite the entry at ``(habit_id, date)``.

        Returns:
            The row as stored.
        """
        ...

    async def delete_entry(self, habit_id: str, date: str) -> None:
        """Remove the entry at ``(habit_id, date)``; a missing row is not an error."""
        ...
