from __future__ import annotations
from loguru import logger

from ..db import AsyncSessionLocal
from ..services.habit_store import SqlHabitStore, PersistenceError
from ..services.tracker import HabitTracker
from ..utils.clock import Clock


async def weekly_consolidation_job() -> int:
    """
    Loads every profile once, which syncs negative habits and runs the weekly
    sweep where it is due. Returns how many profiles were consolidated.
    """
    logger.info("Running weekly_consolidation_job")
    store = SqlHabitStore(AsyncSessionLocal)
    clock = Clock()
    try:
        user_ids = await store.list_profile_ids()
    except PersistenceError as e:
        logger.exception("Could not list profiles for consolidation: {}", e)
        return 0

    consolidated = 0
    for user_id in user_ids:
        tracker = HabitTracker(store, user_id, clock)
        result = await tracker.load()
        if not result.ok:
            logger.warning("Consolidation skipped for user {}: {}", user_id, result.error)
            continue
        if result.events.consolidation_occurred:
            consolidated += 1
    logger.info("weekly_consolidation_job consolidated {} of {} profile(s)", consolidated, len(user_ids))
    return consolidated
