from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from loguru import logger

from ..config import settings
from ..models.habit import HabitState, HabitType, TargetPeriod
from ..models.profile import ProfileState
from ..utils.clock import Clock
from . import leveling
from .consolidation_service import ConsolidationService
from .habit_rules import COMPLETION_POINTS, ToggleAction, toggle_habit
from .habit_store import HabitNotFoundError, HabitStore, PersistenceError
from .period_service import period_progress
from .streak_sync_service import StreakSyncService


@dataclass
class TrackerEvents:
    """Notifications raised by one action, for the presentation layer to show."""
    target_met: bool = False
    level_up: bool = False
    relapse_reported: bool = False
    consolidation_occurred: bool = False
    xp_awarded: int = 0


@dataclass
class ActionResult:
    ok: bool
    events: TrackerEvents = field(default_factory=TrackerEvents)
    habit: Optional[HabitState] = None
    error: Optional[Exception] = None


@dataclass(frozen=True)
class TrackerState:
    user_id: int
    profile: ProfileState
    habits: List[HabitState]

    @property
    def total_points(self) -> int:
        return self.profile.global_xp + sum(h.points for h in self.habits)


class HabitTracker:
    """
    Session state of one logged-in user plus the actions that change it.

    Every action persists first and only then swaps in the new in-memory state;
    a failed storage call leaves the state untouched and comes back as
    ActionResult(ok=False).
    """

    def __init__(self, store: HabitStore, user_id: int, clock: Optional[Clock] = None):
        self.store = store
        self.user_id = user_id
        self.clock = clock or Clock()
        self.state: Optional[TrackerState] = None

    @classmethod
    async def login(cls, store: HabitStore, user_id: int, clock: Optional[Clock] = None) -> "HabitTracker":
        """Builds a tracker and loads it. Raises PersistenceError when loading fails."""
        tracker = cls(store, user_id, clock)
        result = await tracker.load()
        if not result.ok:
            raise result.error
        return tracker

    def logout(self) -> None:
        self.state = None
        logger.info("User {} logged out", self.user_id)

    # --- actions ---

    async def load(self) -> ActionResult:
        """
        Fetches (or lazily creates) the profile and habits, re-syncs negative
        habits, then runs the weekly consolidation if it is due.
        """
        now = self.clock.now()
        try:
            profile = await self.store.fetch_profile(self.user_id)
            if profile is None:
                logger.info("No profile for user {}; creating one", self.user_id)
                profile = await self.store.create_profile(self.user_id, now)
            habits = await self.store.fetch_habits(self.user_id)
            stored = TrackerState(user_id=self.user_id, profile=profile, habits=habits)
            habits = await StreakSyncService.sync_negative_habits(
                self.store, habits, self.clock, profile.last_consolidated
            )
            sweep = await ConsolidationService.weekly_sweep(self.store, profile, habits, now)
        except (PersistenceError, HabitNotFoundError) as e:
            logger.exception("Loading data for user {} failed: {}", self.user_id, e)
            return ActionResult(ok=False, error=e)

        events = TrackerEvents()
        if sweep:
            profile, habits = sweep.profile, sweep.habits
            events.consolidation_occurred = True
        # Clean-day points accrue here, so a level can be gained on load
        self._commit(TrackerState(user_id=self.user_id, profile=profile, habits=habits), events, before=stored)
        logger.info("Loaded {} habit(s) for user {}", len(habits), self.user_id)
        return ActionResult(ok=True, events=events)

    async def toggle(self, habit_id: int) -> ActionResult:
        habit = self.get_habit(habit_id)
        outcome = toggle_habit(habit, self.clock.today())
        try:
            await self.store.update_habit(habit.id, outcome.changes)
        except (PersistenceError, HabitNotFoundError) as e:
            logger.exception("Toggling habit {} failed: {}", habit_id, e)
            return ActionResult(ok=False, error=e)

        updated = outcome.apply(habit)
        events = TrackerEvents(
            target_met=outcome.target_met,
            relapse_reported=outcome.relapse_reported,
            xp_awarded=COMPLETION_POINTS if outcome.action == ToggleAction.COMPLETE else 0,
        )
        habits = [updated if h.id == habit.id else h for h in self.state.habits]
        self._commit(replace(self.state, habits=habits), events)
        logger.info("Habit {} of user {}: {}", habit_id, self.user_id, outcome.action.value)
        return ActionResult(ok=True, events=events, habit=updated)

    async def add_habit(
        self,
        name: str,
        icon: str = "🎯",
        habit_type: HabitType = HabitType.POSITIVE,
        target_period: TargetPeriod = TargetPeriod.DAILY,
        target_count: int = 1,
        has_timer: bool = False,
    ) -> ActionResult:
        """Create a new habit. Raises ValueError on inconsistent input."""
        state = self._require_state()
        habit_type = HabitType(habit_type)
        target_period = TargetPeriod(target_period)
        if not name or not name.strip():
            raise ValueError("name must not be empty")
        if target_count < 1:
            raise ValueError("target_count must be a positive integer")
        if target_period == TargetPeriod.DAILY and target_count != 1:
            raise ValueError("daily habits always have target_count 1")
        if has_timer and habit_type != HabitType.POSITIVE:
            raise ValueError("only positive habits can have a focus timer")

        fields: Dict[str, Any] = {
            "name": name.strip(),
            "icon": icon,
            "habit_type": habit_type,
            "target_period": target_period,
            "target_count": target_count,
            "has_timer": has_timer,
            "created_at": self.clock.now(),
        }
        try:
            habit = await self.store.insert_habit(self.user_id, fields)
        except PersistenceError as e:
            logger.exception("Creating habit '{}' for user {} failed: {}", name, self.user_id, e)
            return ActionResult(ok=False, error=e)

        self.state = replace(state, habits=state.habits + [habit])
        return ActionResult(ok=True, habit=habit)

    async def delete_habit(self, habit_id: int) -> ActionResult:
        habit = self.get_habit(habit_id)
        try:
            profile, credited = await ConsolidationService.delete_habit(
                self.store, self.state.profile, habit, self.clock.now()
            )
        except (PersistenceError, HabitNotFoundError) as e:
            logger.exception("Deleting habit {} failed: {}", habit_id, e)
            return ActionResult(ok=False, error=e)

        events = TrackerEvents(consolidation_occurred=credited > 0)
        habits = [h for h in self.state.habits if h.id != habit_id]
        self._commit(replace(self.state, profile=profile, habits=habits), events)
        return ActionResult(ok=True, events=events, habit=habit)

    async def complete_focus_session(self, habit_id: int) -> ActionResult:
        """Awards focus-session XP straight into the global pool."""
        habit = self.get_habit(habit_id)
        if not habit.is_positive or not habit.has_timer:
            raise ValueError(f"Habit {habit_id} has no focus timer")

        amount = settings.FOCUS_SESSION_XP
        profile = self.state.profile
        try:
            await self.store.update_profile(profile.id, {"global_xp": profile.global_xp + amount})
        except PersistenceError as e:
            logger.exception("Awarding {} XP to user {} failed: {}", amount, self.user_id, e)
            return ActionResult(ok=False, error=e)

        events = TrackerEvents(xp_awarded=amount)
        profile = profile.model_copy(update={"global_xp": profile.global_xp + amount})
        self._commit(replace(self.state, profile=profile), events)
        logger.info("Focus session on habit {} earned {} XP for user {}", habit_id, amount, self.user_id)
        return ActionResult(ok=True, events=events, habit=habit)

    # --- derived reads ---

    @property
    def habits(self) -> List[HabitState]:
        return list(self._require_state().habits)

    @property
    def profile(self) -> ProfileState:
        return self._require_state().profile

    @property
    def total_points(self) -> int:
        return self._require_state().total_points

    @property
    def current_level(self) -> int:
        return leveling.level_for_points(self.total_points)

    @property
    def level_progress(self) -> float:
        return leveling.progress_to_next_level(self.total_points)

    @property
    def points_to_next_level(self) -> int:
        return leveling.points_to_next_level(self.total_points)

    @property
    def completed_today(self) -> int:
        today = self.clock.today()
        return sum(1 for h in self._require_state().habits if h.last_completed == today)

    @property
    def best_streak(self) -> int:
        return max((h.streak for h in self._require_state().habits), default=0)

    def period_progress(self, habit_id: int) -> dict:
        return period_progress(self.get_habit(habit_id), self.clock.today())

    def dashboard(self) -> dict:
        today = self.clock.today()
        return {
            "user_id": self.user_id,
            "global_xp": self.profile.global_xp,
            "total_points": self.total_points,
            "level": self.current_level,
            "level_progress": self.level_progress,
            "points_to_next_level": self.points_to_next_level,
            "completed_today": self.completed_today,
            "total_habits": len(self.habits),
            "best_streak": self.best_streak,
            "focus_timer": {
                "focus_minutes": settings.FOCUS_MINUTES,
                "break_minutes": settings.BREAK_MINUTES,
                "session_xp": settings.FOCUS_SESSION_XP,
            },
            "habits": [
                {
                    **h.model_dump(mode="json"),
                    "completed_today": h.last_completed == today,
                    "progress": period_progress(h, today),
                }
                for h in self.habits
            ],
        }

    def get_habit(self, habit_id: int) -> HabitState:
        for habit in self._require_state().habits:
            if habit.id == habit_id:
                return habit
        raise HabitNotFoundError(f"Habit {habit_id} not found")

    # --- internals ---

    def _require_state(self) -> TrackerState:
        if self.state is None:
            raise RuntimeError("Tracker is not loaded; call load() first")
        return self.state

    def _commit(
        self, new_state: TrackerState, events: TrackerEvents, before: Optional[TrackerState] = None
    ) -> None:
        previous = before if before is not None else self.state
        before_level = leveling.level_for_points(previous.total_points)
        after = leveling.level_for_points(new_state.total_points)
        events.level_up = after > before_level
        self.state = new_state
        if events.level_up:
            logger.info("User {} reached level {}", self.user_id, after)
