"""Activity state models and graduated recovery constants."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Literal


class ActivityState(str, Enum):
    """Discrete daily activity state of a post-operative patient."""

    ADEQUATE = "ADEQUATE"
    UNDERSTIMULATED = "UNDERSTIMULATED"
    STALLING = "STALLING"
    FATIGUE_LIMITED = "FATIGUE_LIMITED"
    OVERREACHED = "OVERREACHED"
    DATA_SPARSE = "DATA_SPARSE"


RiskLevel = Literal["low", "medium", "high"]
Trend = Literal["improving", "stable", "declining", "unknown"]

RISK_LEVELS: tuple[RiskLevel, ...] = ("low", "medium", "high")


def parse_activity_state(value: ActivityState | str) -> ActivityState:
    """Coerce a state name (case-insensitive) to an ``ActivityState``.

    Raises:
        ValueError: If the value names no known state.
    """
    if isinstance(value, ActivityState):
        return value
    try:
        return ActivityState(str(value).strip().upper())
    except ValueError:
        valid = ", ".join(s.value for s in ActivityState)
        raise ValueError(f"Unknown activity state {value!r}. Valid: {valid}") from None


# ---------------------------------------------------------------------------
# Graduated recovery protocol
# ---------------------------------------------------------------------------

# Clinical constant, identical in every tier
MAX_SITTING_STREAK_MIN = 90

# (last week of tier, goal moments/day, micro-walk minutes, active minutes target)
GOAL_TIERS: tuple[tuple[int, int, int, int], ...] = (
    (1, 6, 3, 15),
    (2, 7, 4, 20),
)
PLATEAU_GOALS = (8, 5, 25)

# Rule thresholds
OVERREACH_LOAD_THRESHOLD = 1.2
HIGH_DISTRESS_SCORE = 7
SHORT_SLEEP_HOURS = 6
FATIGUE_STEPS_RATIO = 0.8
FATIGUE_MOMENT_SCORE = 1.0
STALLING_MAX_MOMENTS = 4
UNDERSTIMULATED_RATIO = 0.6

SHORT_SLEEP_PENALTY = 0.3


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ActivityInputs:
    """One patient-day of self-reported activity signals.

    ``None`` means "not reported", which the classifier treats differently
    from an explicit zero.
    """

    steps_count: float | None = None
    steps_target: float | None = None
    active_minutes: float | None = None
    movement_moments: float | None = None
    longest_sitting_streak_min: float | None = None
    sit_to_stand_count: float | None = None
    perceived_exertion_rpe: float | None = None  # 0-10, not used by any rule
    fatigue: float | None = None                 # 0-10
    pain: float | None = None                    # 0-10
    sleep_hours: float | None = None
    post_op_week: int | None = None


@dataclass(frozen=True)
class ActivityGoals:
    """Week-adjusted daily activity targets."""

    goal_moments_per_day: int
    max_sitting_streak_min: int
    micro_walk_min: int
    active_minutes_target: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class DerivedMetrics:
    """Ratios and indicators derived from inputs against goals.

    Ratios are unclamped: values above 1 mean the goal was exceeded.
    """

    steps_ratio: float
    moment_frequency_score: float
    sedentary_risk: bool
    load_indicator: float
    tolerance_indicator: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "steps_ratio": round(self.steps_ratio, 4),
            "moment_frequency_score": round(self.moment_frequency_score, 4),
            "sedentary_risk": self.sedentary_risk,
            "load_indicator": round(self.load_indicator, 4),
            "tolerance_indicator": round(self.tolerance_indicator, 4),
        }


@dataclass(frozen=True)
class ActivityEvaluation:
    """Classifier outcome together with the goals and metrics behind it."""

    state: ActivityState
    goals: ActivityGoals
    metrics: DerivedMetrics

    def to_dict(self) -> dict[str, Any]:
        return {
            "activity_state": self.state.value,
            "goals": self.goals.to_dict(),
            "metrics": self.metrics.to_dict(),
        }
