"""Wearable-free activity state engine.

Infers a post-operative patient's daily activity state from a handful of
self-reported answers instead of wearable streams:

    resolve_goals(week) -> ActivityGoals
    compute_metrics(inputs, goals) -> DerivedMetrics
    infer_state(inputs) -> ActivityState

The classifier is an ordered rule ladder. The first rule whose predicate
holds decides the state, so ``STATE_RULES`` order is the priority order:
missing data and overreach are checked before anything else.

All functions are pure and total: missing values never raise.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from herstel.domains.recovery.domain_logic.activity_models import (
    FATIGUE_MOMENT_SCORE,
    FATIGUE_STEPS_RATIO,
    GOAL_TIERS,
    HIGH_DISTRESS_SCORE,
    MAX_SITTING_STREAK_MIN,
    OVERREACH_LOAD_THRESHOLD,
    PLATEAU_GOALS,
    SHORT_SLEEP_HOURS,
    SHORT_SLEEP_PENALTY,
    STALLING_MAX_MOMENTS,
    UNDERSTIMULATED_RATIO,
    ActivityEvaluation,
    ActivityGoals,
    ActivityInputs,
    ActivityState,
    DerivedMetrics,
)

logger = logging.getLogger(__name__)


def _ratio(numerator: float | None, denominator: float | None) -> float:
    """numerator/denominator, or 0.0 when either is missing or the denominator is not positive."""
    if numerator is None or denominator is None or denominator <= 0:
        return 0.0
    return numerator / denominator


def _present_at_least(value: float | None, threshold: float) -> bool:
    return value is not None and value >= threshold


def _present_below(value: float | None, threshold: float) -> bool:
    return value is not None and value < threshold


# ---------------------------------------------------------------------------
# Goal resolver
# ---------------------------------------------------------------------------

def resolve_goals(post_op_week: int | None = None) -> ActivityGoals:
    """Return the activity goals for a post-op week.

    Unknown week is treated as week 1, the most conservative tier. Goals
    plateau from week 3 onwards.
    """
    week = post_op_week if post_op_week is not None else 1

    for last_week, moments, micro_walk, active_minutes in GOAL_TIERS:
        if week <= last_week:
            return ActivityGoals(
                goal_moments_per_day=moments,
                max_sitting_streak_min=MAX_SITTING_STREAK_MIN,
                micro_walk_min=micro_walk,
                active_minutes_target=active_minutes,
            )

    moments, micro_walk, active_minutes = PLATEAU_GOALS
    return ActivityGoals(
        goal_moments_per_day=moments,
        max_sitting_streak_min=MAX_SITTING_STREAK_MIN,
        micro_walk_min=micro_walk,
        active_minutes_target=active_minutes,
    )


# ---------------------------------------------------------------------------
# Derived metrics
# ---------------------------------------------------------------------------

def compute_metrics(inputs: ActivityInputs, goals: ActivityGoals) -> DerivedMetrics:
    """Derive ratios and indicators from one day of inputs.

    ``load_indicator`` is the largest of the steps, active-minutes and
    movement-moment ratios. ``tolerance_indicator`` is 1 minus the mean of
    the fatigue, pain and short-sleep penalties and is left unclamped.
    """
    steps_ratio = _ratio(inputs.steps_count, inputs.steps_target)
    moment_frequency_score = _ratio(inputs.movement_moments, goals.goal_moments_per_day)
    active_minutes_ratio = _ratio(inputs.active_minutes, goals.active_minutes_target)

    longest_streak = inputs.longest_sitting_streak_min or 0
    sedentary_risk = longest_streak >= goals.max_sitting_streak_min

    load_indicator = max(steps_ratio, active_minutes_ratio, moment_frequency_score)

    fatigue_penalty = (inputs.fatigue or 0) / 10
    pain_penalty = (inputs.pain or 0) / 10
    sleep_penalty = (
        SHORT_SLEEP_PENALTY if _present_below(inputs.sleep_hours, SHORT_SLEEP_HOURS) else 0.0
    )
    tolerance_indicator = 1 - (fatigue_penalty + pain_penalty + sleep_penalty) / 3

    return DerivedMetrics(
        steps_ratio=steps_ratio,
        moment_frequency_score=moment_frequency_score,
        sedentary_risk=sedentary_risk,
        load_indicator=load_indicator,
        tolerance_indicator=tolerance_indicator,
    )


# ---------------------------------------------------------------------------
# Rule ladder
# ---------------------------------------------------------------------------

StateRule = Callable[[ActivityInputs, DerivedMetrics], bool]


def _is_data_sparse(inputs: ActivityInputs, metrics: DerivedMetrics) -> bool:
    # Zero is a reported value; only absence counts as missing.
    return (
        inputs.steps_count is None
        and inputs.active_minutes is None
        and inputs.movement_moments is None
    )


def _is_overreached(inputs: ActivityInputs, metrics: DerivedMetrics) -> bool:
    poor_recovery = _present_below(inputs.sleep_hours, SHORT_SLEEP_HOURS) or _present_at_least(
        inputs.fatigue, HIGH_DISTRESS_SCORE
    )
    return metrics.load_indicator >= OVERREACH_LOAD_THRESHOLD and poor_recovery


def _is_fatigue_limited(inputs: ActivityInputs, metrics: DerivedMetrics) -> bool:
    high_distress = _present_at_least(inputs.fatigue, HIGH_DISTRESS_SCORE) or _present_at_least(
        inputs.pain, HIGH_DISTRESS_SCORE
    )
    reduced_output = (
        metrics.steps_ratio < FATIGUE_STEPS_RATIO
        or metrics.moment_frequency_score < FATIGUE_MOMENT_SCORE
    )
    return high_distress and reduced_output


def _is_stalling(inputs: ActivityInputs, metrics: DerivedMetrics) -> bool:
    return metrics.sedentary_risk and _present_below(inputs.movement_moments, STALLING_MAX_MOMENTS)


def _is_understimulated(inputs: ActivityInputs, metrics: DerivedMetrics) -> bool:
    return (
        metrics.steps_ratio < UNDERSTIMULATED_RATIO
        or metrics.moment_frequency_score < UNDERSTIMULATED_RATIO
    )


# Priority order. Do not reorder.
STATE_RULES: tuple[tuple[ActivityState, StateRule], ...] = (
    (ActivityState.DATA_SPARSE, _is_data_sparse),
    (ActivityState.OVERREACHED, _is_overreached),
    (ActivityState.FATIGUE_LIMITED, _is_fatigue_limited),
    (ActivityState.STALLING, _is_stalling),
    (ActivityState.UNDERSTIMULATED, _is_understimulated),
)

DEFAULT_STATE = ActivityState.ADEQUATE


def evaluate_activity(inputs: ActivityInputs) -> ActivityEvaluation:
    """Resolve goals, derive metrics and walk the rule ladder."""
    goals = resolve_goals(inputs.post_op_week)
    metrics = compute_metrics(inputs, goals)

    state = DEFAULT_STATE
    for candidate, rule in STATE_RULES:
        if rule(inputs, metrics):
            state = candidate
            break

    logger.debug(
        "Activity state %s (load=%.3f, steps_ratio=%.3f, moments=%.3f)",
        state.value,
        metrics.load_indicator,
        metrics.steps_ratio,
        metrics.moment_frequency_score,
    )
    return ActivityEvaluation(state=state, goals=goals, metrics=metrics)


def infer_state(inputs: ActivityInputs) -> ActivityState:
    """Classify one day of inputs into exactly one ``ActivityState``."""
    return evaluate_activity(inputs).state
