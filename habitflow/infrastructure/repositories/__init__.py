from .sqlalchemy_habit_store import SqlAlchemyHabitStore

__all__ = ["SqlAlchemyHabitStore"]
