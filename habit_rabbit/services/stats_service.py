from __future__ import annotations
import calendar
from datetime import date
from typing import Dict, List, Optional

from ..models.habit import HabitState


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def completions_in_month(habit: HabitState, year: int, month: int) -> int:
    return sum(1 for d in set(habit.history_dates()) if d.year == year and d.month == month)


def monthly_summary(habits: List[HabitState], year: int, month: int) -> Dict:
    """
    Completion totals for one calendar month across all habits.
    """
    n_days = days_in_month(year, month)
    per_habit = [(h, completions_in_month(h, year, month)) for h in habits]
    total = sum(count for _, count in per_habit)
    possible = len(habits) * n_days
    rate = round(total / possible * 100) if possible else 0

    most_consistent: Optional[Dict] = None
    if per_habit:
        habit, count = max(per_habit, key=lambda item: item[1])
        most_consistent = {"habit_id": habit.id, "name": habit.name, "completions": count}

    return {
        "year": year,
        "month": month,
        "total_completions": total,
        "possible_completions": possible,
        "completion_rate": rate,
        "most_consistent": most_consistent,
    }


def habit_progress(habits: List[HabitState], year: int, month: int) -> List[Dict]:
    """Per-habit completion rate for the month, best first."""
    n_days = days_in_month(year, month)
    rows = []
    for habit in habits:
        count = completions_in_month(habit, year, month)
        rows.append({
            "habit_id": habit.id,
            "name": habit.name,
            "completions": count,
            "days_in_month": n_days,
            "rate": count / n_days * 100,
        })
    rows.sort(key=lambda r: r["rate"], reverse=True)
    return rows


def calendar_day_counts(habits: List[HabitState], year: int, month: int) -> Dict[date, int]:
    counts = {date(year, month, day): 0 for day in range(1, days_in_month(year, month) + 1)}
    for habit in habits:
        for d in set(habit.history_dates()):
            if d in counts:
                counts[d] += 1
    return counts
