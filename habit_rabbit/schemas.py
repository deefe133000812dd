from typing import Optional
from pydantic import BaseModel, Field

from .models.habit import HabitType, TargetPeriod


class HabitCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    icon: str = Field(default="🎯", max_length=16)
    habit_type: HabitType = HabitType.POSITIVE
    target_period: TargetPeriod = TargetPeriod.DAILY
    target_count: int = Field(default=1, ge=1)
    has_timer: bool = False


class EventsOut(BaseModel):
    target_met: bool = False
    level_up: bool = False
    relapse_reported: bool = False
    consolidation_occurred: bool = False
    xp_awarded: int = 0


class ActionOut(BaseModel):
    ok: bool
    events: EventsOut
    habit: Optional[dict] = None
    total_points: int
    level: int
