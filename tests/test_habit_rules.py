from datetime import date, timedelta

from habit_rabbit.models.habit import HabitType, TargetPeriod
from habit_rabbit.services.habit_rules import ToggleAction, toggle_habit

from conftest import make_habit

TODAY = date(2024, 5, 15)
YESTERDAY = TODAY - timedelta(days=1)


def test_complete_daily_habit_first_time():
    habit = make_habit()
    outcome = toggle_habit(habit, TODAY)

    assert outcome.action == ToggleAction.COMPLETE
    assert outcome.changes == {
        "completion_history": ["2024-05-15"],
        "last_completed": TODAY,
        "points": 10,
        "streak": 1,
    }
    assert outcome.target_met is True
    assert outcome.relapse_reported is False


def test_complete_after_yesterday_extends_streak():
    habit = make_habit(streak=3, points=30, last_completed=YESTERDAY,
                       completion_history=["2024-05-12", "2024-05-13", "2024-05-14"])
    updated = toggle_habit(habit, TODAY).apply(habit)
    assert updated.streak == 4
    assert updated.points == 40
    assert updated.completion_history[-1] == "2024-05-15"


def test_consecutive_days_then_gap():
    habit = make_habit()
    habit = toggle_habit(habit, date(2024, 5, 1)).apply(habit)
    habit = toggle_habit(habit, date(2024, 5, 2)).apply(habit)
    assert habit.streak == 2

    habit = toggle_habit(habit, date(2024, 5, 4)).apply(habit)
    assert habit.streak == 1
    assert habit.points == 30


def test_complete_then_undo_restores_prior_state():
    habit = make_habit(streak=2, points=20, last_completed=YESTERDAY,
                       completion_history=["2024-05-13", "2024-05-14"])
    done = toggle_habit(habit, TODAY).apply(habit)
    undo = toggle_habit(done, TODAY)
    restored = undo.apply(done)

    assert undo.action == ToggleAction.UNDO
    assert restored.streak == habit.streak
    assert restored.points == habit.points
    assert restored.completion_history == habit.completion_history
    assert restored.last_completed == habit.last_completed


def test_undo_with_single_entry_clears_last_completed():
    habit = make_habit(streak=1, points=10, last_completed=TODAY, completion_history=["2024-05-15"])
    updated = toggle_habit(habit, TODAY).apply(habit)
    assert updated.last_completed is None
    assert updated.completion_history == []
    assert updated.streak == 0
    assert updated.points == 0


def test_undo_never_drops_points_below_zero():
    habit = make_habit(streak=1, points=0, last_completed=TODAY, completion_history=["2024-05-15"])
    assert toggle_habit(habit, TODAY).changes["points"] == 0


def test_undo_removes_duplicate_entries():
    habit = make_habit(points=20, last_completed=TODAY,
                       completion_history=["2024-05-10", "2024-05-10", "2024-05-15", "2024-05-15"])
    updated = toggle_habit(habit, TODAY).apply(habit)
    assert updated.completion_history == ["2024-05-10"]
    assert updated.last_completed == date(2024, 5, 10)


def test_multi_target_completion_keeps_streak_and_reports_target():
    habit = make_habit(target_period=TargetPeriod.WEEKLY, target_count=3, streak=5,
                       last_completed=date(2024, 5, 13), completion_history=["2024-05-13"])
    outcome = toggle_habit(habit, TODAY)
    assert "streak" not in outcome.changes
    assert outcome.target_met is False

    habit = outcome.apply(habit)
    outcome = toggle_habit(habit, date(2024, 5, 16))
    assert outcome.target_met is True
    assert outcome.apply(habit).streak == 5


def test_multi_target_undo_keeps_streak():
    habit = make_habit(target_period=TargetPeriod.MONTHLY, target_count=4, streak=2, points=10,
                       last_completed=TODAY, completion_history=["2024-05-15"])
    outcome = toggle_habit(habit, TODAY)
    assert "streak" not in outcome.changes


def test_relapse_resets_streak_and_costs_points():
    habit = make_habit(habit_type=HabitType.NEGATIVE, streak=6, points=15)
    outcome = toggle_habit(habit, TODAY)

    assert outcome.action == ToggleAction.RELAPSE
    assert outcome.relapse_reported is True
    assert outcome.target_met is False
    assert outcome.changes == {
        "completion_history": ["2024-05-15"],
        "last_completed": TODAY,
        "streak": 0,
        "points": 0,
    }


def test_undo_relapse_gives_points_back_but_not_streak():
    habit = make_habit(habit_type=HabitType.NEGATIVE, streak=0, points=10,
                       last_completed=TODAY, completion_history=["2024-05-01", "2024-05-15"])
    outcome = toggle_habit(habit, TODAY)
    updated = outcome.apply(habit)

    assert outcome.action == ToggleAction.UNDO_RELAPSE
    assert outcome.relapse_reported is False
    assert updated.points == 30
    assert updated.streak == 0
    assert updated.last_completed == date(2024, 5, 1)
    assert updated.completion_history == ["2024-05-01"]


def test_toggle_does_not_mutate_input():
    habit = make_habit(completion_history=["2024-05-14"], last_completed=YESTERDAY)
    toggle_habit(habit, TODAY)
    assert habit.completion_history == ["2024-05-14"]
    assert habit.points == 0
