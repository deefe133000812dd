from __future__ import annotations
from datetime import date, timedelta
from typing import Iterable, Optional

from ..models.habit import HabitState, TargetPeriod


def week_start(today: date) -> date:
    """Most recent Sunday (today itself on a Sunday)."""
    return today - timedelta(days=(today.weekday() + 1) % 7)


def count_completions_in_period(
    target_period: TargetPeriod,
    completion_history: Iterable[str],
    last_completed: Optional[date],
    today: date,
) -> int:
    """
    Counts history entries inside the current daily/weekly/monthly window.
    Weeks start on Sunday; months are calendar months.
    """
    if target_period == TargetPeriod.DAILY:
        return 1 if last_completed == today else 0

    days = {date.fromisoformat(d) for d in completion_history}
    if target_period == TargetPeriod.WEEKLY:
        start = week_start(today)
        return sum(1 for d in days if start <= d <= today)
    if target_period == TargetPeriod.MONTHLY:
        return sum(1 for d in days if d.year == today.year and d.month == today.month)
    raise ValueError(f"Unsupported target period: {target_period}")


def completions_in_period(habit: HabitState, today: date) -> int:
    return count_completions_in_period(
        habit.target_period, habit.completion_history, habit.last_completed, today
    )


def period_progress(habit: HabitState, today: date) -> dict:
    done = completions_in_period(habit, today)
    return {
        "habit_id": habit.id,
        "period": habit.target_period.value,
        "completed": done,
        "target": habit.target_count,
        "target_met": done >= habit.target_count,
    }
