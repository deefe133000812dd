import os
import sys
from datetime import datetime, timezone

# Make the repository root importable so `habit_rabbit` resolves without installing
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

import pytest
import pytest_asyncio
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from habit_rabbit.models.habit import Habit, HabitState  # noqa: F401
from habit_rabbit.models.profile import Profile  # noqa: F401
from habit_rabbit.services.habit_store import SqlHabitStore
from habit_rabbit.utils.clock import FixedClock

# Wednesday; the current week started on Sunday 2024-05-12
NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FixedClock(NOW, "UTC")


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture
async def store(session_factory):
    return SqlHabitStore(session_factory)


def make_habit(**overrides) -> HabitState:
    """In-memory habit snapshot with sensible defaults."""
    fields = {
        "id": 1,
        "user_id": 1,
        "name": "Read",
        "created_at": NOW,
    }
    fields.update(overrides)
    return HabitState(**fields)
