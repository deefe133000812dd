from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger

from ..config import settings


def resolve_zone(tz_name: Optional[str]) -> ZoneInfo:
    """
    Returns the ZoneInfo for tz_name, falling back to UTC when it is empty or unknown.
    """
    if not tz_name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone '{}', falling back to UTC", tz_name)
        return ZoneInfo("UTC")


class Clock:
    """
    Wall clock bound to a single timezone. "Today" is the calendar day in that zone,
    midnight to midnight.
    """

    def __init__(self, tz_name: Optional[str] = None):
        self.tz = resolve_zone(tz_name or settings.APP_TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def local_midnight(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.tz)


class FixedClock(Clock):
    """Clock pinned to a given moment; advance() moves it forward."""

    def __init__(self, moment: datetime, tz_name: Optional[str] = None):
        super().__init__(tz_name)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self.tz)
        self._moment = moment

    def now(self) -> datetime:
        return self._moment.astimezone(self.tz)

    def advance(self, **kwargs) -> None:
        self._moment = self._moment + timedelta(**kwargs)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Number of complete 24h days from start to end, never negative."""
    if end <= start:
        return 0
    return (end - start) // timedelta(days=1)
