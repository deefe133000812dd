from datetime import date

from habit_rabbit.services.stats_service import (
    calendar_day_counts,
    completions_in_month,
    habit_progress,
    monthly_summary,
)

from conftest import make_habit


def _habits():
    return [
        make_habit(id=1, name="Read", completion_history=["2024-04-30", "2024-05-01", "2024-05-02"]),
        make_habit(id=2, name="Walk", completion_history=["2024-05-02", "2024-05-03", "2024-05-04", "2024-05-05"]),
    ]


def test_completions_in_month_filters_by_range():
    read, walk = _habits()
    assert completions_in_month(read, 2024, 5) == 2
    assert completions_in_month(read, 2024, 4) == 1
    assert completions_in_month(walk, 2024, 6) == 0


def test_monthly_summary():
    summary = monthly_summary(_habits(), 2024, 5)
    assert summary["total_completions"] == 6
    assert summary["possible_completions"] == 62
    assert summary["completion_rate"] == 10
    assert summary["most_consistent"] == {"habit_id": 2, "name": "Walk", "completions": 4}


def test_monthly_summary_without_habits():
    summary = monthly_summary([], 2024, 2)
    assert summary["possible_completions"] == 0
    assert summary["completion_rate"] == 0
    assert summary["most_consistent"] is None


def test_habit_progress_sorted_by_rate():
    rows = habit_progress(_habits(), 2024, 5)
    assert [r["name"] for r in rows] == ["Walk", "Read"]
    assert rows[0]["days_in_month"] == 31


def test_calendar_day_counts():
    counts = calendar_day_counts(_habits(), 2024, 5)
    assert len(counts) == 31
    assert counts[date(2024, 5, 2)] == 2
    assert counts[date(2024, 5, 1)] == 1
    assert counts[date(2024, 5, 20)] == 0
