"""
In-memory projection of entries.

Keeps two views over the same data: a point lookup keyed by
``(habit_id, date)`` and a per-habit mapping that iterates in date order.
Rebuilt wholesale after every fetch, patched in place after every toggle.
"""

from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .habits import Entry, EntryStatus

Key = Tuple[str, str]


class EntryIndex:
    """Point lookup plus per-habit ordered iteration over entries."""

    def __init__(self, entries: Iterable[Entry] = ()) -> None:
        self._by_key: Dict[Key, EntryStatus] = {}
        self._by_habit: Dict[str, Dict[str, EntryStatus]] = {}
        self.rebuild(entries)

    # --- Bulk ---

    def rebuild(self, entries: Iterable[Entry]) -> None:
        """Replace all contents with *entries*. Later duplicates win."""
        self._by_key.clear()
        self._by_habit.clear()
        for entry in entries:
            self.put(entry.habit_id, entry.date, entry.status)

    def replace_habit(self, habit_id: str, entries: Iterable[Entry]) -> None:
        """Replace the entries of a single habit, leaving the others alone."""
        self.drop_habit(habit_id)
        for entry in entries:
            if entry.habit_id == habit_id:
                self.put(entry.habit_id, entry.date, entry.status)

    def drop_habit(self, habit_id: str) -> None:
        for date in self._by_habit.pop(habit_id, {}):
            self._by_key.pop((habit_id, date), None)

    # --- Point operations ---

    def get(self, habit_id: str, date: str) -> Optional[EntryStatus]:
        return self._by_key.get((habit_id, date))

    def put(self, habit_id: str, date: str, status: EntryStatus) -> None:
        status = EntryStatus(status)
        self._by_key[(habit_id, date)] = status
        self._by_habit.setdefault(habit_id, {})[date] = status

    def remove(self, habit_id: str, date: str) -> None:
        self._by_key.pop((habit_id, date), None)
        per_habit = self._by_habit.get(habit_id)
        if per_habit is not None:
            per_habit.pop(date, None)
            if not per_habit:
                del self._by_habit[habit_id]

    def set(self, habit_id: str, date: str, status: Optional[EntryStatus]) -> None:
        """Put *status*, or remove the entry when *status* is None."""
        if status is None:
            self.remove(habit_id, date)
        else:
            self.put(habit_id, date, status)

    # --- Views ---

    def for_habit(self, habit_id: str) -> List[Entry]:
        """Entries of one habit, date ascending."""
        per_habit = self._by_habit.get(habit_id, {})
        return [Entry(habit_id, date, per_habit[date]) for date in sorted(per_habit)]

    def statuses_for_habit(self, habit_id: str) -> Dict[str, EntryStatus]:
        return dict(self._by_habit.get(habit_id, {}))

    def completed_dates(self, habit_id: str) -> Set[str]:
        return {
            date
            for date, status in self._by_habit.get(habit_id, {}).items()
            if status is EntryStatus.COMPLETED
        }

    def habit_ids(self) -> List[str]:
        return list(self._by_habit)

    def __iter__(self) -> Iterator[Entry]:
        for (habit_id, date), status in self._by_key.items():
            yield Entry(habit_id, date, status)

    def __len__(self) -> int:
        return len(self._by_key)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key
