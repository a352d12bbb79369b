"""Daily aggregate record: the per-patient, per-day input to the engine.

Food, activity and symptom logs (voice or manual) are summed into one
record; optional check-in answers are copied as reported. A total stays
``None`` when no log reported that quantity so the classifier can tell
"not reported" from "reported zero".
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from typing import Any

from herstel.domains.recovery.domain_logic.activity_models import ActivityInputs

CHECKIN_FIELDS = (
    "movement_moments",
    "longest_sitting_streak_min",
    "fatigue_score",
    "pain_score",
    "sleep_hours",
    "sit_to_stand_count",
    "perceived_exertion_rpe",
)


def _num(val: Any) -> float | None:
    """Convert to float, returning None for missing or non-numeric values."""
    if val is None or isinstance(val, bool):
        return None
    try:
        return float(val)
    except (TypeError, ValueError):
        return None


def _sum_reported(logs: Iterable[Mapping[str, Any]], key: str) -> float | None:
    values = [v for v in (_num(log.get(key)) for log in logs) if v is not None]
    return sum(values) if values else None


@dataclass
class DailyAggregate:
    """One day of nutrition, activity and check-in data for a patient."""

    protein: float = 0.0
    calories: float = 0.0
    steps: float | None = None
    activity_minutes: float | None = None

    # Check-in answers
    movement_moments: float | None = None
    longest_sitting_streak_min: float | None = None
    fatigue_score: float | None = None
    pain_score: float | None = None
    sleep_hours: float | None = None
    sit_to_stand_count: float | None = None
    perceived_exertion_rpe: float | None = None

    safety_flags: list[str] = field(default_factory=list)

    def to_activity_inputs(
        self,
        steps_target: float | None,
        post_op_week: int | None = None,
    ) -> ActivityInputs:
        """Map this record onto classifier inputs."""
        return ActivityInputs(
            steps_count=self.steps,
            steps_target=steps_target,
            active_minutes=self.activity_minutes,
            movement_moments=self.movement_moments,
            longest_sitting_streak_min=self.longest_sitting_streak_min,
            sit_to_stand_count=self.sit_to_stand_count,
            perceived_exertion_rpe=self.perceived_exertion_rpe,
            fatigue=self.fatigue_score,
            pain=self.pain_score,
            sleep_hours=self.sleep_hours,
            post_op_week=post_op_week,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def build_daily_aggregate(
    food_logs: Iterable[Mapping[str, Any]] = (),
    activity_logs: Iterable[Mapping[str, Any]] = (),
    symptom_logs: Iterable[Mapping[str, Any]] = (),
    checkin: Mapping[str, Any] | None = None,
) -> DailyAggregate:
    """Aggregate one day of logs into a ``DailyAggregate``.

    Args:
        food_logs: Rows with ``estimated_protein`` / ``estimated_calories``.
        activity_logs: Rows with ``step_count`` / ``duration_minutes``.
        symptom_logs: Rows with an optional ``safety_flags`` list.
        checkin: Optional check-in answers keyed by ``CHECKIN_FIELDS``.
    """
    food_logs = list(food_logs)
    activity_logs = list(activity_logs)

    protein = sum(_num(log.get("estimated_protein")) or 0.0 for log in food_logs)
    calories = sum(_num(log.get("estimated_calories")) or 0.0 for log in food_logs)

    flags: list[str] = []
    for log in symptom_logs:
        for flag in log.get("safety_flags") or []:
            if flag and flag not in flags:
                flags.append(flag)

    checkin_values = {name: _num((checkin or {}).get(name)) for name in CHECKIN_FIELDS}

    return DailyAggregate(
        protein=protein,
        calories=calories,
        steps=_sum_reported(activity_logs, "step_count"),
        activity_minutes=_sum_reported(activity_logs, "duration_minutes"),
        safety_flags=flags,
        **checkin_values,
    )
