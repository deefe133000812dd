from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from loguru import logger

from ..models.habit import HabitState
from ..models.profile import ProfileState
from .habit_store import HabitStore, PersistenceError, HabitNotFoundError

CONSOLIDATION_INTERVAL = timedelta(days=7)
DELETION_GRACE_PERIOD = timedelta(days=7)


@dataclass
class SweepResult:
    credited: int
    profile: ProfileState
    habits: List[HabitState]


def is_weekly_sweep_due(profile: ProfileState, habits: List[HabitState], now: datetime) -> bool:
    if not any(h.points > 0 for h in habits):
        return False
    if profile.last_consolidated is None:
        return True
    return now - profile.last_consolidated >= CONSOLIDATION_INTERVAL


def deletion_credit(habit: HabitState, now: datetime) -> int:
    """
    Points a deleted habit hands over to the global pool. Habits younger than the
    grace period lose their points, so create/farm/delete cycles earn nothing.
    """
    if habit.points > 0 and now - habit.created_at >= DELETION_GRACE_PERIOD:
        return habit.points
    return 0


class ConsolidationService:
    """
    Moves transient habit points into Profile.global_xp.
    """

    @staticmethod
    async def weekly_sweep(
        store: HabitStore,
        profile: ProfileState,
        habits: List[HabitState],
        now: datetime,
    ) -> Optional[SweepResult]:
        """
        Credits the sum of all habit points to the profile, then zeroes the habits.
        Returns None when the sweep is not due. If zeroing fails the profile write is
        reverted and PersistenceError propagates.
        """
        if not is_weekly_sweep_due(profile, habits, now):
            return None

        credited = sum(h.points for h in habits)
        await store.update_profile(
            profile.id,
            {"global_xp": profile.global_xp + credited, "last_consolidated": now},
        )
        try:
            await store.update_habits([h.id for h in habits if h.points], {"points": 0})
        except PersistenceError:
            logger.exception("Resetting habit points failed for user {}; reverting profile", profile.id)
            await ConsolidationService._revert_profile(store, profile)
            raise

        logger.info("Consolidated {} points for user {}", credited, profile.id)
        return SweepResult(
            credited=credited,
            profile=profile.model_copy(
                update={"global_xp": profile.global_xp + credited, "last_consolidated": now}
            ),
            habits=[h.model_copy(update={"points": 0}) for h in habits],
        )

    @staticmethod
    async def delete_habit(
        store: HabitStore,
        profile: ProfileState,
        habit: HabitState,
        now: datetime,
    ) -> Tuple[ProfileState, int]:
        """
        Deletes a habit, crediting its points first when it is past the grace period.
        Returns the resulting profile and the credited amount.
        """
        credited = deletion_credit(habit, now)
        if credited:
            await store.update_profile(profile.id, {"global_xp": profile.global_xp + credited})
        try:
            await store.delete_habit(habit.id)
        except (PersistenceError, HabitNotFoundError):
            if credited:
                logger.exception("Deleting habit {} failed; reverting credit of {}", habit.id, credited)
                await ConsolidationService._revert_profile(store, profile)
            raise

        if credited:
            logger.info("Credited {} points from deleted habit {} to user {}", credited, habit.id, profile.id)
            profile = profile.model_copy(update={"global_xp": profile.global_xp + credited})
        return profile, credited

    @staticmethod
    async def _revert_profile(store: HabitStore, profile: ProfileState) -> None:
        try:
            await store.update_profile(
                profile.id,
                {"global_xp": profile.global_xp, "last_consolidated": profile.last_consolidated},
            )
        except PersistenceError:
            # The credit stays applied while habits keep their points
            logger.critical(
                "Could not revert profile {} to global_xp={}; consolidation left half-applied",
                profile.id,
                profile.global_xp,
            )
