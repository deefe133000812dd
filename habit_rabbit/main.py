from __future__ import annotations
import sys
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from fastapi import FastAPI, HTTPException, Query
from loguru import logger

from .config import settings
from .db import init_db, AsyncSessionLocal
from .scheduler.scheduler_instance import start_scheduler, shutdown_scheduler, scheduler
from .schemas import HabitCreate, ActionOut, EventsOut
from .services.habit_store import SqlHabitStore, PersistenceError, HabitNotFoundError
from .services.tracker import HabitTracker, ActionResult
from .services import stats_service
from .utils.clock import Clock

store = SqlHabitStore(AsyncSessionLocal)


async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # --- startup ---
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL)

    await init_db()
    if settings.ENABLE_SCHEDULER:
        start_scheduler()
    logger.info("Habit Rabbit started successfully")

    yield

    # --- shutdown ---
    shutdown_scheduler()
    logger.info("Habit Rabbit shut down")


app = FastAPI(title="Habit Rabbit", lifespan=lifespan)


async def _tracker(user_id: int) -> HabitTracker:
    try:
        return await HabitTracker.login(store, user_id, Clock())
    except (PersistenceError, HabitNotFoundError):
        raise HTTPException(status_code=503, detail="Storage unavailable, try again later.")


def _action_response(tracker: HabitTracker, result: ActionResult) -> ActionOut:
    if not result.ok:
        if isinstance(result.error, HabitNotFoundError):
            raise HTTPException(status_code=404, detail=str(result.error))
        raise HTTPException(status_code=503, detail="Storage unavailable, nothing was changed.")
    e = result.events
    return ActionOut(
        ok=True,
        events=EventsOut(
            target_met=e.target_met,
            level_up=e.level_up,
            relapse_reported=e.relapse_reported,
            consolidation_occurred=e.consolidation_occurred,
            xp_awarded=e.xp_awarded,
        ),
        habit=result.habit.model_dump(mode="json") if result.habit else None,
        total_points=tracker.total_points,
        level=tracker.current_level,
    )


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "scheduler_running": scheduler.running if scheduler else False,
    }


@app.get("/users/{user_id}/dashboard")
async def dashboard(user_id: int):
    tracker = await _tracker(user_id)
    return tracker.dashboard()


@app.post("/users/{user_id}/habits", response_model=ActionOut)
async def add_habit(user_id: int, body: HabitCreate):
    tracker = await _tracker(user_id)
    try:
        result = await tracker.add_habit(**body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _action_response(tracker, result)


@app.post("/users/{user_id}/habits/{habit_id}/toggle", response_model=ActionOut)
async def toggle_habit(user_id: int, habit_id: int):
    tracker = await _tracker(user_id)
    try:
        result = await tracker.toggle(habit_id)
    except HabitNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _action_response(tracker, result)


@app.delete("/users/{user_id}/habits/{habit_id}", response_model=ActionOut)
async def delete_habit(user_id: int, habit_id: int):
    tracker = await _tracker(user_id)
    try:
        result = await tracker.delete_habit(habit_id)
    except HabitNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _action_response(tracker, result)


@app.post("/users/{user_id}/habits/{habit_id}/focus-sessions", response_model=ActionOut)
async def complete_focus_session(user_id: int, habit_id: int):
    tracker = await _tracker(user_id)
    try:
        result = await tracker.complete_focus_session(habit_id)
    except HabitNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _action_response(tracker, result)


@app.get("/users/{user_id}/stats/monthly")
async def monthly_stats(
    user_id: int,
    year: Optional[int] = Query(default=None),
    month: Optional[int] = Query(default=None, ge=1, le=12),
):
    tracker = await _tracker(user_id)
    today = tracker.clock.today()
    year = year or today.year
    month = month or today.month
    habits = tracker.habits
    return {
        "summary": stats_service.monthly_summary(habits, year, month),
        "habits": stats_service.habit_progress(habits, year, month),
        "calendar": {
            d.isoformat(): count
            for d, count in stats_service.calendar_day_counts(habits, year, month).items()
        },
    }
