"""
Optimistic toggling of a day's entry.

Each toggle rotates the local status ``absent -> completed -> skipped ->
absent``, applies it to the entry index immediately, and then makes the
store agree. Writes for one ``(habit_id, date)`` never overlap: while a write
is in flight, further toggles of the same key only move the local state, and
the running flush keeps writing until the store matches the latest local
state (or finds it already does, e.g. after three quick toggles).

On a failed write the key is put back to the last status the store
confirmed, which is exactly what it held before the unconfirmed toggles.
Other keys are never touched. A write that finds the habit deleted drops
the key instead.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from ..core.error_messages import sanitize_error
from ..domain import dates
from ..domain.entry_index import EntryIndex
from ..domain.errors import AuthError, HabitNotFound, ToggleRejected
from ..domain.habits import Entry, EntryStatus, Habit
from ..domain.repositories.habit_store import HabitStore
from ..domain.schedule import toggle_block_reason
from ..utils.task_tracker import create_tracked_task

logger = logging.getLogger(__name__)

Key = Tuple[str, str]

_ROTATION = {
    None: EntryStatus.COMPLETED,
    EntryStatus.COMPLETED: EntryStatus.SKIPPED,
    EntryStatus.SKIPPED: None,
}


def next_status(current: Optional[EntryStatus]) -> Optional[EntryStatus]:
    """The status a toggle moves to; None means the entry is removed."""
    return _ROTATION[current]


@dataclass(frozen=True)
class ToggleOutcome:
    """Result of a toggle once the store has caught up (or refused)."""

    habit_id: str
    date: str
    status: Optional[EntryStatus]
    ok: bool
    message: Optional[str] = None
    auth_required: bool = False


@dataclass
class _KeyState:
    # Last status the store is known to hold for this key
    confirmed: Optional[EntryStatus]
    task: Optional[asyncio.Task] = field(default=None)


class ToggleService:
    """Applies toggles optimistically and serializes store writes per key."""

    def __init__(
        self,
        store: HabitStore,
        index: EntryIndex,
        clock: Callable[[], str] = dates.today,
    ) -> None:
        self._store = store
        self._index = index
        self._clock = clock
        self._inflight: Dict[Key, _KeyState] = {}

    def is_pending(self, habit_id: str, date: str) -> bool:
        return (habit_id, date) in self._inflight

    def pending_keys(self) -> List[Key]:
        return list(self._inflight)

    async def toggle(self, habit: Habit, date: str) -> ToggleOutcome:
        """Rotate the entry at (habit, date) and wait for the store to agree.

        Raises:
            ToggleRejected: The date is in the future, before the habit's
                start, or not a scheduled day. Nothing is changed.
        """
        reason = toggle_block_reason(habit, date, self._clock())
        if reason is not None:
            raise ToggleRejected(habit.id, date, reason)

        key = (habit.id, date)
        state = self._inflight.get(key)
        if state is None:
            state = _KeyState(confirmed=self._index.get(*key))
            self._inflight[key] = state

        previous = self._index.get(*key)
        optimistic = next_status(previous)
        self._index.set(habit.id, date, optimistic)
        logger.debug(
            f"Toggle {habit.id}@{date}: {previous and previous.value} -> "
            f"{optimistic and optimistic.value}"
        )

        if state.task is None:
            state.task = create_tracked_task(
                self._flush(key, state), name=f"toggle:{habit.id}:{date}"
            )
        task = state.task
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                # Abandoned (sign-out or view teardown), not our caller
                return ToggleOutcome(
                    habit.id,
                    date,
                    self._index.get(*key),
                    ok=False,
                    message="The change was abandoned before it was saved.",
                )
            raise

    async def _flush(self, key: Key, state: _KeyState) -> ToggleOutcome:
        habit_id, date = key
        try:
            while True:
                target = self._index.get(habit_id, date)
                if target == state.confirmed:
                    return ToggleOutcome(habit_id, date, target, ok=True)
                if target is None:
                    await self._store.delete_entry(habit_id, date)
                    state.confirmed = None
                else:
                    row = await self._store.upsert_entry(Entry(habit_id, date, target))
                    state.confirmed = row.status
                    if self._index.get(habit_id, date) == target:
                        # Nothing queued behind us: take the server's row as truth
                        self._index.set(habit_id, date, row.status)
        except asyncio.CancelledError:
            self._index.set(habit_id, date, state.confirmed)
            raise
        except HabitNotFound as e:
            # The habit is gone; nothing of it may stay in the index
            self._index.remove(habit_id, date)
            logger.info(f"Toggle write for {habit_id}@{date} dropped: {e}")
            return ToggleOutcome(
                habit_id, date, None, ok=False, message=sanitize_error(e)
            )
        except Exception as e:
            self._index.set(habit_id, date, state.confirmed)
            logger.warning(
                f"Toggle write for {habit_id}@{date} failed, rolled back to "
                f"{state.confirmed and state.confirmed.value}: {e}"
            )
            return ToggleOutcome(
                habit_id,
                date,
                state.confirmed,
                ok=False,
                message=sanitize_error(e),
                auth_required=isinstance(e, AuthError),
            )
        finally:
            if self._inflight.get(key) is state:
                del self._inflight[key]

    @staticmethod
    async def _cancel(states: List[_KeyState]) -> None:
        tasks = [s.task for s in states if s.task is not None]
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def cancel_pending(self) -> int:
        """Abandon every in-flight write and restore the last confirmed states.

        Returns:
            Number of keys that were in flight.
        """
        states = list(self._inflight.items())
        await self._cancel([s for _, s in states])
        for key, state in states:
            # A task cancelled before it first ran never reached its handler
            self._index.set(key[0], key[1], state.confirmed)
            if self._inflight.get(key) is state:
                del self._inflight[key]
        if states:
            logger.info(f"Abandoned {len(states)} in-flight toggle(s)")
        return len(states)

    async def cancel_for_habit(self, habit_id: str) -> int:
        """Abandon in-flight writes for one habit and forget its keys.

        Used when the habit is deleted, so nothing is restored.
        """
        states = [(key, s) for key, s in self._inflight.items() if key[0] == habit_id]
        await self._cancel([s for _, s in states])
        for key, state in states:
            self._index.remove(*key)
            if self._inflight.get(key) is state:
                del self._inflight[key]
        if states:
            logger.info(f"Abandoned {len(states)} toggle(s) of deleted habit {habit_id}")
        return len(states)
