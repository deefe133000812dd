from __future__ import annotations
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.triggers.cron import CronTrigger
from pytz import utc
from loguru import logger

from ..config import settings

# APScheduler's jobstore uses sync SQLAlchemy
job_store_url = settings.DATABASE_URL.replace("+asyncpg", "").replace("+aiosqlite", "")

jobstores = {
    'default': SQLAlchemyJobStore(url=job_store_url)
}

executors = {
    'default': AsyncIOExecutor()
}

job_defaults = {
    'coalesce': True,  # Combine missed runs
    'max_instances': 1,  # One instance per job
    'misfire_grace_time': 300,  # 5 min grace for missed jobs
}

scheduler = AsyncIOScheduler(
    jobstores=jobstores,
    executors=executors,
    job_defaults=job_defaults,
    timezone=utc,
)

CONSOLIDATION_JOB_ID = "weekly_consolidation"


def schedule_consolidation_job() -> None:
    scheduler.add_job(
        func="habit_rabbit.scheduler.jobs:weekly_consolidation_job",
        trigger=CronTrigger(hour=settings.CONSOLIDATION_SWEEP_HOUR, minute=0, timezone=utc),
        id=CONSOLIDATION_JOB_ID,
        replace_existing=True,
    )
    logger.info("Scheduled weekly_consolidation_job daily at {:02d}:00 UTC", settings.CONSOLIDATION_SWEEP_HOUR)


def start_scheduler():
    if not scheduler.running:
        scheduler.start()
        try:
            schedule_consolidation_job()
        except Exception:
            logger.exception("Failed to schedule consolidation job")
        logger.info("APScheduler started")

def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown()
        logger.info("APScheduler shut down")
