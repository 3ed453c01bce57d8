import logging
import logging.handlers
import os
import uuid
from datetime import timedelta

import pytest

# Set test environment variables before any habitflow import reads settings
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORE_API_KEY"] = ""
os.environ["PASSWORD_HASH_ITERATIONS"] = "1000"

from habitflow.core.config import get_settings  # noqa: E402
from habitflow.domain.entry_index import EntryIndex  # noqa: E402
from habitflow.domain.habits import Entry, EntryStatus, GoalType, Habit  # noqa: E402

get_settings.cache_clear()

TODAY = "2025-03-10"  # a Monday


@pytest.fixture(autouse=True)
def _strip_file_handlers():
    """Remove file handlers from root logger so tests never write to logs/app.log."""
    root = logging.getLogger()
    saved = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    for h in saved:
        root.removeHandler(h)
    yield
    for h in list(root.handlers):
        if isinstance(h, logging.FileHandler):
            root.removeHandler(h)
    for h in saved:
        root.addHandler(h)


def _make_habit(
    habit_id: str = "H1",
    goal_type: GoalType = GoalType.DAILY,
    start_date: str = "2025-03-01",
    **overrides,
) -> Habit:
    fields = dict(
        id=habit_id,
        title=overrides.pop("title", f"Habit {habit_id}"),
        goal_type=goal_type,
        start_date=start_date,
        created_at=overrides.pop("created_at", 1_700_000_000_000),
    )
    fields.update(overrides)
    return Habit(**fields)


def _completed(habit_id: str, *days: str):
    return [Entry(habit_id, d, EntryStatus.COMPLETED) for d in days]


@pytest.fixture
def make_habit():
    """Factory for Habit records with sensible defaults."""
    return _make_habit


@pytest.fixture
def completed():
    """Factory for completed entries: completed("H1", "2025-03-09", ...)."""
    return _completed


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def daily_habit():
    return _make_habit("H1", GoalType.DAILY, "2025-03-01")


@pytest.fixture
def weekly_habit():
    return _make_habit("H2", GoalType.WEEKLY, "2025-03-01", target_day_of_week=1)


@pytest.fixture
def monthly_habit():
    return _make_habit("H3", GoalType.MONTHLY, "2025-01-01", target_day_of_month=31)


@pytest.fixture
def index():
    return EntryIndex()


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def async_engine():
    """An in-memory async SQLite engine with all tables and FK enforcement."""
    from habitflow.core.database import create_engine, create_tables

    engine = create_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    from habitflow.core.database import create_session_factory

    return create_session_factory(async_engine)


@pytest.fixture
def auth_provider(session_factory):
    from habitflow.infrastructure.auth import SqlAlchemyAuthProvider

    return SqlAlchemyAuthProvider(session_factory, session_ttl=timedelta(hours=1))


class StaticIdentity:
    """Identity source pinned to one user id (or nobody)."""

    def __init__(self, user_id=None):
        self.user_id = user_id

    def current_user_id(self):
        return self.user_id


@pytest.fixture
def identity():
    """Factory for identity sources: identity("user-1") or identity(None)."""
    return StaticIdentity


@pytest.fixture
async def make_account(session_factory):
    """Insert an account row directly and return its id."""
    from habitflow.models import Account

    async def _make(email=None):
        account_id = str(uuid.uuid4())
        async with session_factory() as session:
            session.add(
                Account(
                    id=account_id,
                    email=email or f"{account_id[:8]}@example.com",
                    password_hash="x",
                    first_name="Test",
                    last_name="User",
                    email_confirmed=True,
                )
            )
            await session.commit()
        return account_id

    return _make
