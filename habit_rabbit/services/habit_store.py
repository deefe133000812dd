from __future__ import annotations
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Protocol, Sequence

from loguru import logger
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..models.habit import Habit, HabitState
from ..models.profile import Profile, ProfileState


def _to_utc(fields: Dict[str, Any]) -> Dict[str, Any]:
    # sqlite keeps wall-clock time only, so aware datetimes are stored as UTC
    return {
        k: v.astimezone(timezone.utc) if isinstance(v, datetime) and v.tzinfo else v
        for k, v in fields.items()
    }


class PersistenceError(Exception):
    """A storage call failed; nothing the caller holds in memory should change."""


class HabitNotFoundError(LookupError):
    pass


class HabitStore(Protocol):
    """Storage the tracker depends on. Every call either succeeds or raises PersistenceError."""

    async def fetch_habits(self, user_id: int) -> List[HabitState]: ...

    async def insert_habit(self, user_id: int, fields: Dict[str, Any]) -> HabitState: ...

    async def update_habit(self, habit_id: int, fields: Dict[str, Any]) -> None: ...

    async def update_habits(self, habit_ids: Sequence[int], fields: Dict[str, Any]) -> None: ...

    async def delete_habit(self, habit_id: int) -> None: ...

    async def fetch_profile(self, user_id: int) -> Optional[ProfileState]: ...

    async def create_profile(self, user_id: int, now: datetime) -> ProfileState: ...

    async def update_profile(self, profile_id: int, fields: Dict[str, Any]) -> None: ...

    async def list_profile_ids(self) -> List[int]: ...


class SqlHabitStore:
    """
    HabitStore over the SQLModel tables. One session (and transaction) per call.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise PersistenceError(str(e)) from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def fetch_habits(self, user_id: int) -> List[HabitState]:
        async with self._session() as session:
            result = await session.execute(
                select(Habit).where(Habit.user_id == user_id).order_by(Habit.created_at, Habit.id)
            )
            return [HabitState.model_validate(h) for h in result.scalars().all()]

    async def insert_habit(self, user_id: int, fields: Dict[str, Any]) -> HabitState:
        async with self._session() as session:
            habit = Habit(user_id=user_id, **_to_utc(fields))
            session.add(habit)
            await session.flush()
            await session.refresh(habit)
            logger.info("Created habit {} for user {}", habit.id, user_id)
            return HabitState.model_validate(habit)

    async def update_habit(self, habit_id: int, fields: Dict[str, Any]) -> None:
        async with self._session() as session:
            habit = await session.get(Habit, habit_id)
            if not habit:
                raise HabitNotFoundError(f"Habit {habit_id} not found")
            for key, value in _to_utc(fields).items():
                setattr(habit, key, value)
            habit.touch()
            session.add(habit)

    async def update_habits(self, habit_ids: Sequence[int], fields: Dict[str, Any]) -> None:
        if not habit_ids:
            return
        async with self._session() as session:
            await session.execute(
                update(Habit).where(Habit.id.in_(list(habit_ids))).values(**_to_utc(fields))
            )

    async def delete_habit(self, habit_id: int) -> None:
        async with self._session() as session:
            habit = await session.get(Habit, habit_id)
            if not habit:
                raise HabitNotFoundError(f"Habit {habit_id} not found")
            await session.delete(habit)
            logger.info("Deleted habit {}", habit_id)

    async def fetch_profile(self, user_id: int) -> Optional[ProfileState]:
        async with self._session() as session:
            profile = await session.get(Profile, user_id)
            return ProfileState.model_validate(profile) if profile else None

    async def create_profile(self, user_id: int, now: datetime) -> ProfileState:
        async with self._session() as session:
            profile = Profile(id=user_id, global_xp=0, last_consolidated=now.astimezone(timezone.utc))
            session.add(profile)
            await session.flush()
            logger.info("Created profile for user {}", user_id)
            return ProfileState.model_validate(profile)

    async def update_profile(self, profile_id: int, fields: Dict[str, Any]) -> None:
        async with self._session() as session:
            profile = await session.get(Profile, profile_id)
            if not profile:
                raise PersistenceError(f"Profile {profile_id} not found")
            for key, value in _to_utc(fields).items():
                setattr(profile, key, value)
            profile.touch()
            session.add(profile)

    async def list_profile_ids(self) -> List[int]:
        async with self._session() as session:
            result = await session.execute(select(Profile.id).order_by(Profile.id))
            return list(result.scalars().all())
