"""Plan state machine.

The session is an immutable ``SessionState`` snapshot. Every intent is applied
by the pure ``reduce(state, intent)`` function, which returns the next snapshot
plus an optional effect for the caller to run (the only effect is "generate a
roadmap"). ``PlannerSession`` owns the current snapshot, runs effects and feeds
their outcome back through ``reduce``.

Generations are tagged with a request id; an outcome whose tag no longer
matches the state (because the session was reset meanwhile) is dropped.
"""
import math
from dataclasses import dataclass, field, replace
from typing import FrozenSet, Optional, Union

from loguru import logger

from graph import GenerationResult, TotalGenerationError, generate_roadmap
from models import Goal, Roadmap

SCORE_PER_PERCENT = 10


class ValidationError(ValueError):
    """An intent was applied to a state that does not allow it."""


# --- State ---

@dataclass(frozen=True)
class SessionState:
    current_goal: Optional[Goal] = None
    roadmap: Optional[Roadmap] = None
    completed_weeks: FrozenSet[str] = field(default_factory=frozenset)
    current_week: Optional[str] = None
    is_loading: bool = False
    request_id: int = 0
    strategy: Optional[str] = None
    error: Optional[str] = None

    @property
    def phase(self) -> str:
        if self.is_loading:
            return "generating"
        if self.roadmap is not None:
            return "ready"
        return "idle"


# --- Intents and effects ---

@dataclass(frozen=True)
class SubmitGoal:
    goal: Goal


@dataclass(frozen=True)
class GenerationSucceeded:
    request_id: int
    goal: Goal
    roadmap: Roadmap
    strategy: Optional[str] = None


@dataclass(frozen=True)
class GenerationFailed:
    request_id: int
    reason: str


@dataclass(frozen=True)
class ToggleWeek:
    label: str


@dataclass(frozen=True)
class SelectWeek:
    label: str


@dataclass(frozen=True)
class ResetSession:
    pass


Intent = Union[SubmitGoal, GenerationSucceeded, GenerationFailed, ToggleWeek, SelectWeek, ResetSession]


@dataclass(frozen=True)
class GenerateRoadmap:
    request_id: int
    goal: Goal


@dataclass(frozen=True)
class Transition:
    state: SessionState
    effect: Optional[GenerateRoadmap] = None


def _require_week(state: SessionState, label: str) -> None:
    if state.roadmap is None:
        raise ValidationError("No roadmap has been generated yet")
    if not state.roadmap.has_week(label):
        raise ValidationError(f"{label!r} is not a week of the current roadmap")


def reduce(state: SessionState, intent: Intent) -> Transition:
    if isinstance(intent, SubmitGoal):
        if state.is_loading:
            raise ValidationError("A roadmap is already being generated")
        request_id = state.request_id + 1
        return Transition(
            replace(state, is_loading=True, request_id=request_id, error=None),
            GenerateRoadmap(request_id=request_id, goal=intent.goal),
        )

    if isinstance(intent, GenerationSucceeded):
        if intent.request_id != state.request_id or not state.is_loading:
            logger.debug(f"Dropping stale roadmap for request {intent.request_id}")
            return Transition(state)
        return Transition(replace(
            state,
            current_goal=intent.goal,
            roadmap=intent.roadmap,
            completed_weeks=frozenset(),
            current_week=intent.roadmap.first_week,
            is_loading=False,
            strategy=intent.strategy,
            error=None,
        ))

    if isinstance(intent, GenerationFailed):
        if intent.request_id != state.request_id or not state.is_loading:
            logger.debug(f"Dropping stale failure for request {intent.request_id}")
            return Transition(state)
        return Transition(replace(state, is_loading=False, error=intent.reason))

    if isinstance(intent, ToggleWeek):
        _require_week(state, intent.label)
        return Transition(replace(state, completed_weeks=state.completed_weeks ^ {intent.label}))

    if isinstance(intent, SelectWeek):
        _require_week(state, intent.label)
        return Transition(replace(state, current_week=intent.label))

    if isinstance(intent, ResetSession):
        # keep the request counter moving so in-flight results are recognised as stale
        return Transition(SessionState(request_id=state.request_id))

    raise TypeError(f"Unknown intent: {intent!r}")


# --- Derived values ---

def progress_percent(completed: int, total: int) -> int:
    """Completed share as a whole percentage, rounding halves up."""
    if total <= 0:
        return 0
    return int(math.floor(completed / total * 100 + 0.5))


def progress_score(state: SessionState) -> int:
    """XP on a 0-1000 scale in steps of 10."""
    if state.roadmap is None:
        return 0
    return progress_percent(len(state.completed_weeks), state.roadmap.total_weeks) * SCORE_PER_PERCENT


def is_plan_complete(state: SessionState) -> bool:
    return state.roadmap is not None and len(state.completed_weeks) == state.roadmap.total_weeks


def completes_plan(before: SessionState, after: SessionState) -> bool:
    """True only for the transition that marks the last open week as done."""
    return is_plan_complete(after) and not is_plan_complete(before)


def week_status(state: SessionState, label: str) -> str:
    if label in state.completed_weeks:
        return "completed"
    if label == state.current_week:
        return "current"
    return "upcoming"


# --- Session driver ---

class PlannerSession:
    """Single writer of the session state; readers use ``state`` snapshots."""

    def __init__(self, generate=None):
        self._state = SessionState()
        self._generate = generate or generate_roadmap

    @property
    def state(self) -> SessionState:
        return self._state

    def dispatch(self, intent: Intent) -> Transition:
        transition = reduce(self._state, intent)
        self._state = transition.state
        return transition

    async def submit_goal(self, goal: Goal) -> SessionState:
        effect = self.dispatch(SubmitGoal(goal)).effect
        try:
            result: GenerationResult = await self._generate(effect.goal)
        except TotalGenerationError as error:
            logger.error(f"Failed to generate plan: {error}")
            self.dispatch(GenerationFailed(effect.request_id, str(error)))
        else:
            if result.fallback_reason:
                logger.info(f"Using offline planner: {result.fallback_reason}")
            self.dispatch(GenerationSucceeded(effect.request_id, effect.goal, result.roadmap, result.strategy))
        return self._state

    def toggle_week_completion(self, label: str) -> SessionState:
        return self.dispatch(ToggleWeek(label)).state

    def select_week(self, label: str) -> SessionState:
        return self.dispatch(SelectWeek(label)).state

    def reset_session(self) -> SessionState:
        return self.dispatch(ResetSession()).state

    def progress_score(self) -> int:
        return progress_score(self._state)
