from .habit_store import HabitStore

__all__ = ["HabitStore"]
