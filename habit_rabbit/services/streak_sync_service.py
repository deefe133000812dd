from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from ..models.habit import HabitState
from ..utils.clock import Clock, whole_days_between
from .habit_store import HabitStore

CLEAN_DAY_POINTS = 10


def compute_clean_state(
    habit: HabitState,
    clock: Clock,
    last_consolidated: Optional[datetime],
) -> Dict[str, int]:
    """
    Streak and accrued points of a negative habit from elapsed time alone.

    The streak counts whole days since the last relapse (or creation). Points only
    count days after the later of that moment and the last consolidation, since
    earlier days were already paid into the global pool.
    """
    now = clock.now()
    if habit.last_completed is not None:
        last_relapse = clock.local_midnight(habit.last_completed)
    else:
        last_relapse = habit.created_at

    if habit.last_completed == clock.today():
        streak = 0
    else:
        streak = whole_days_between(last_relapse, now)

    baseline = last_relapse
    if last_consolidated is not None and last_consolidated > baseline:
        baseline = last_consolidated
    points = whole_days_between(baseline, now) * CLEAN_DAY_POINTS
    return {"streak": streak, "points": points}


class StreakSyncService:
    @staticmethod
    async def sync_negative_habits(
        store: HabitStore,
        habits: List[HabitState],
        clock: Clock,
        last_consolidated: Optional[datetime],
    ) -> List[HabitState]:
        """
        Recomputes every negative habit and writes back only the ones that changed.
        Returns the full habit list with the synced snapshots swapped in.
        Raises PersistenceError on the first failed write; nothing is returned then.
        """
        synced: List[HabitState] = []
        writes = 0
        for habit in habits:
            if habit.is_positive:
                synced.append(habit)
                continue
            computed = compute_clean_state(habit, clock, last_consolidated)
            changes: Dict[str, Any] = {
                k: v for k, v in computed.items() if getattr(habit, k) != v
            }
            if not changes:
                synced.append(habit)
                continue
            await store.update_habit(habit.id, changes)
            writes += 1
            synced.append(habit.model_copy(update=changes))
        if writes:
            logger.info("Synced {} negative habit(s)", writes)
        return synced
