"""
Per-habit toggle rules. Pure: takes a snapshot and "today", returns the fields to
persist plus the notifications the change should raise. Nothing here touches
storage.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from ..models.habit import HabitState
from .period_service import count_completions_in_period

COMPLETION_POINTS = 10
RELAPSE_PENALTY = 20


class ToggleAction(str, Enum):
    COMPLETE = "complete"
    UNDO = "undo"
    RELAPSE = "relapse"
    UNDO_RELAPSE = "undo_relapse"


@dataclass
class ToggleOutcome:
    action: ToggleAction
    changes: Dict[str, Any] = field(default_factory=dict)
    target_met: bool = False
    relapse_reported: bool = False

    def apply(self, habit: HabitState) -> HabitState:
        return habit.model_copy(update=self.changes)


def _without_day(history: List[str], day: str) -> List[str]:
    # Drops every occurrence of `day` and any duplicate left behind
    seen = set()
    kept = []
    for entry in history:
        if entry == day or entry in seen:
            continue
        seen.add(entry)
        kept.append(entry)
    return kept


def _last_or_none(history: List[str]) -> Optional[date]:
    return date.fromisoformat(history[-1]) if history else None


def toggle_habit(habit: HabitState, today: date) -> ToggleOutcome:
    """
    Decides what a tap on the habit means today and computes the new fields.

    Positive habits: complete today, or undo today's completion.
    Negative habits: report a relapse today, or undo today's relapse.
    """
    done_today = habit.last_completed == today
    if habit.is_positive:
        if done_today:
            return _undo_completion(habit, today)
        return _complete(habit, today)
    if done_today:
        return _undo_relapse(habit, today)
    return _relapse(habit, today)


def _complete(habit: HabitState, today: date) -> ToggleOutcome:
    day = today.isoformat()
    history = _without_day(habit.completion_history, day) + [day]
    changes: Dict[str, Any] = {
        "completion_history": history,
        "last_completed": today,
        "points": habit.points + COMPLETION_POINTS,
    }
    if habit.target_count == 1:
        completed_yesterday = habit.last_completed == today - timedelta(days=1)
        changes["streak"] = habit.streak + 1 if completed_yesterday else 1

    done = count_completions_in_period(habit.target_period, history, today, today)
    return ToggleOutcome(
        action=ToggleAction.COMPLETE,
        changes=changes,
        target_met=done >= habit.target_count,
    )


def _undo_completion(habit: HabitState, today: date) -> ToggleOutcome:
    history = _without_day(habit.completion_history, today.isoformat())
    changes: Dict[str, Any] = {
        "completion_history": history,
        "last_completed": _last_or_none(history),
        "points": max(0, habit.points - COMPLETION_POINTS),
    }
    if habit.target_count == 1:
        changes["streak"] = max(0, habit.streak - 1)
    return ToggleOutcome(action=ToggleAction.UNDO, changes=changes)


def _relapse(habit: HabitState, today: date) -> ToggleOutcome:
    day = today.isoformat()
    history = _without_day(habit.completion_history, day) + [day]
    return ToggleOutcome(
        action=ToggleAction.RELAPSE,
        changes={
            "completion_history": history,
            "last_completed": today,
            "streak": 0,
            "points": max(0, habit.points - RELAPSE_PENALTY),
        },
        relapse_reported=True,
    )


def _undo_relapse(habit: HabitState, today: date) -> ToggleOutcome:
    # Streak stays at 0 here; the next sync recomputes it from the previous relapse
    history = _without_day(habit.completion_history, today.isoformat())
    return ToggleOutcome(
        action=ToggleAction.UNDO_RELAPSE,
        changes={
            "completion_history": history,
            "last_completed": _last_or_none(history),
            "points": habit.points + RELAPSE_PENALTY,
        },
    )
