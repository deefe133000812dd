from typing import List, Optional
from datetime import datetime, date, timezone
from enum import Enum
from pydantic import field_validator
from sqlmodel import SQLModel, Field, Column, JSON
from sqlalchemy import DateTime


class HabitType(str, Enum):
    POSITIVE = "positive"  # build this
    NEGATIVE = "negative"  # stop doing this


class TargetPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class HabitBase(SQLModel):
    user_id: int = Field(index=True, foreign_key="profiles.id")

    name: str = Field(max_length=200)
    icon: str = Field(default="🎯", max_length=16)

    habit_type: HabitType = Field(default=HabitType.POSITIVE)
    target_period: TargetPeriod = Field(default=TargetPeriod.DAILY)
    target_count: int = Field(default=1)  # e.g., 1/day, 3/week

    # Streak and transient points (points are swept into Profile.global_xp)
    streak: int = Field(default=0)
    points: int = Field(default=0)
    last_completed: Optional[date] = Field(default=None)
    completion_history: List[str] = Field(default_factory=list)  # ISO dates, ascending

    has_timer: bool = Field(default=False)


class Habit(HabitBase, table=True):
    """
    User habits: positive ones are completed, negative ones are relapsed.
    """
    __tablename__ = "habits"

    id: Optional[int] = Field(default=None, primary_key=True)
    completion_history: List[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)


class HabitState(HabitBase):
    """
    Detached snapshot of a habit row, the unit the rules engine works on.
    """
    id: int
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # sqlite drops tzinfo on the way back
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def is_positive(self) -> bool:
        return self.habit_type == HabitType.POSITIVE

    def history_dates(self) -> List[date]:
        return [date.fromisoformat(d) for d in self.completion_history]
