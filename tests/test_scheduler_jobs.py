import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from pytz import utc

from habit_rabbit.config import settings
from habit_rabbit.services.habit_store import PersistenceError
from habit_rabbit.services.tracker import ActionResult, TrackerEvents


def test_consolidation_job_is_scheduled_daily(monkeypatch):
    test_scheduler = AsyncIOScheduler(timezone=utc)
    import habit_rabbit.scheduler.scheduler_instance as si
    monkeypatch.setattr(si, "scheduler", test_scheduler)

    si.schedule_consolidation_job()

    job = test_scheduler.get_job(si.CONSOLIDATION_JOB_ID)
    assert job is not None
    assert isinstance(job.trigger, CronTrigger)
    next_run = job.trigger.get_next_fire_time(previous_fire_time=None, now=datetime.now(timezone.utc))
    assert next_run.hour == settings.CONSOLIDATION_SWEEP_HOUR
    assert next_run.minute == 0


def test_consolidation_job_loads_every_profile(monkeypatch):
    from habit_rabbit.scheduler.jobs import weekly_consolidation_job

    fake_store = MagicMock()
    fake_store.list_profile_ids = AsyncMock(return_value=[1, 2, 3])
    monkeypatch.setattr("habit_rabbit.scheduler.jobs.SqlHabitStore", lambda factory: fake_store)

    outcomes = {
        1: ActionResult(ok=True, events=TrackerEvents(consolidation_occurred=True)),
        2: ActionResult(ok=False, error=PersistenceError("offline")),
        3: ActionResult(ok=True),
    }
    loaded = []

    class FakeTracker:
        def __init__(self, store, user_id, clock):
            self.user_id = user_id

        async def load(self):
            loaded.append(self.user_id)
            return outcomes[self.user_id]

    monkeypatch.setattr("habit_rabbit.scheduler.jobs.HabitTracker", FakeTracker)

    consolidated = asyncio.run(weekly_consolidation_job())

    assert loaded == [1, 2, 3]
    assert consolidated == 1


def test_consolidation_job_survives_listing_failure(monkeypatch):
    from habit_rabbit.scheduler.jobs import weekly_consolidation_job

    fake_store = MagicMock()
    fake_store.list_profile_ids = AsyncMock(side_effect=PersistenceError("offline"))
    monkeypatch.setattr("habit_rabbit.scheduler.jobs.SqlHabitStore", lambda factory: fake_store)

    assert asyncio.run(weekly_consolidation_job()) == 0
