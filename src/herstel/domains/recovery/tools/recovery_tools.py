"""MCP tools for recovery scoring: goals, activity state, Recovery Index, trend.

The pure scoring tools are always available. The two daily assessment tools
(field answers or raw logs) additionally read score history from and write
to the assessment store when storage is enabled.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from herstel.core.audit.logger import AuditLogger
    from herstel.core.config.settings import Settings
    from herstel.core.storage.repository import AssessmentRepository

from herstel.core.storage.models import DailyAssessmentRecord
from herstel.core.storage.repository import RepositoryError, normalize_iso_date
from herstel.domains.recovery.domain_logic.activity_models import (
    ActivityInputs,
    parse_activity_state,
)
from herstel.domains.recovery.domain_logic.activity_state_engine import (
    evaluate_activity,
    resolve_goals,
)
from herstel.domains.recovery.domain_logic.assessment import assess_recovery_day
from herstel.domains.recovery.domain_logic.daily_aggregate import (
    DailyAggregate,
    build_daily_aggregate,
)
from herstel.domains.recovery.domain_logic.guidance import risk_guidance, state_guidance
from herstel.domains.recovery.domain_logic.nutrition_targets import calculate_nutrition_targets
from herstel.domains.recovery.domain_logic.recovery_index import (
    calculate_recovery_index,
    calculate_trend,
)

logger = logging.getLogger(__name__)


def _error(message: str, **extra: Any) -> str:
    return json.dumps({"status": "error", "message": message, **extra})


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def register_recovery_tools(
    mcp: FastMCP,
    settings: Settings,
    repository: AssessmentRepository | None = None,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register recovery scoring tools on the MCP server."""

    @mcp.tool
    async def nutrition_targets(ctx: Context, weight_kg: float) -> str:
        """Calculate daily post-operative protein and calorie targets.

        Based on 1.5 g protein and 27.5 kcal per kg body weight.

        Args:
            weight_kg: Current body weight in kilograms.
        """
        try:
            targets = calculate_nutrition_targets(weight_kg)
        except ValueError as exc:
            return _error(str(exc))
        return json.dumps({"status": "ok", **targets.to_dict()})

    @mcp.tool
    async def activity_goals(ctx: Context, post_op_week: int | None = None) -> str:
        """Show the daily activity goals for a week after surgery.

        Args:
            post_op_week: Weeks since surgery (1-based). Omit for week 1 goals.
        """
        goals = resolve_goals(post_op_week)
        return json.dumps({
            "status": "ok",
            "post_op_week": post_op_week if post_op_week is not None else 1,
            **goals.to_dict(),
        })

    @mcp.tool
    async def assess_activity_state(
        ctx: Context,
        steps_count: float | None = None,
        steps_target: float | None = None,
        active_minutes: float | None = None,
        movement_moments: float | None = None,
        longest_sitting_streak_min: float | None = None,
        sit_to_stand_count: float | None = None,
        perceived_exertion_rpe: float | None = None,
        fatigue: float | None = None,
        pain: float | None = None,
        sleep_hours: float | None = None,
        post_op_week: int | None = None,
    ) -> str:
        """Classify today's activity state from self-reported answers.

        Leave a field out when the patient did not report it; an omitted
        value is treated differently from zero.

        Args:
            steps_count: Steps taken today.
            steps_target: Daily step target.
            active_minutes: Minutes of deliberate activity.
            movement_moments: Times the patient stood up and moved.
            longest_sitting_streak_min: Longest uninterrupted sitting period.
            sit_to_stand_count: Sit-to-stand repetitions.
            perceived_exertion_rpe: Perceived exertion, 0-10.
            fatigue: Fatigue score, 0-10.
            pain: Pain score, 0-10.
            sleep_hours: Hours slept last night.
            post_op_week: Weeks since surgery.
        """
        inputs = ActivityInputs(
            steps_count=steps_count,
            steps_target=steps_target,
            active_minutes=active_minutes,
            movement_moments=movement_moments,
            longest_sitting_streak_min=longest_sitting_streak_min,
            sit_to_stand_count=sit_to_stand_count,
            perceived_exertion_rpe=perceived_exertion_rpe,
            fatigue=fatigue,
            pain=pain,
            sleep_hours=sleep_hours,
            post_op_week=post_op_week,
        )
        evaluation = evaluate_activity(inputs)
        return json.dumps({
            "status": "ok",
            **evaluation.to_dict(),
            "guidance": state_guidance(evaluation.state).to_dict(),
        })

    @mcp.tool
    async def recovery_index(
        ctx: Context,
        daily_protein: float,
        protein_target: float,
        daily_steps: float,
        step_target: float,
        activity_state: str,
    ) -> str:
        """Calculate the 0-100 Recovery Index (Herstelindex).

        Args:
            daily_protein: Protein eaten today (g).
            protein_target: Daily protein target (g).
            daily_steps: Steps taken today.
            step_target: Daily step target.
            activity_state: One of ADEQUATE, UNDERSTIMULATED, STALLING,
                FATIGUE_LIMITED, OVERREACHED, DATA_SPARSE.
        """
        try:
            state = parse_activity_state(activity_state)
        except ValueError as exc:
            return _error(str(exc))

        result = calculate_recovery_index(
            daily_protein, protein_target, daily_steps, step_target, state
        )
        risk = risk_guidance(result.risk_level)
        return json.dumps({
            "status": "ok",
            **result.to_dict(),
            "risk_label": risk.label,
            "risk_color": risk.color,
        })

    @mcp.tool
    async def recovery_trend(
        ctx: Context,
        current_score: float,
        previous_scores: list[float],
    ) -> str:
        """Compare today's score with the average of the last three earlier scores.

        Args:
            current_score: Today's Recovery Index.
            previous_scores: Earlier scores, oldest first. At least two are
                needed, otherwise the trend is 'unknown'.
        """
        return json.dumps({
            "status": "ok",
            "current_score": current_score,
            "history_used": previous_scores[-3:],
            "trend": calculate_trend(current_score, previous_scores),
        })

    def _score_day(
        tool_name: str,
        patient_id: str,
        assessment_date: str,
        aggregate: DailyAggregate,
        *,
        protein_target: float | None,
        weight_kg: float | None,
        step_target: float | None,
        post_op_week: int | None,
        previous_scores: list[float] | None,
    ) -> str:
        start_time = time.monotonic()
        try:
            assessment_date = normalize_iso_date(assessment_date or _today())
        except RepositoryError as exc:
            return _error(str(exc))

        if protein_target is None:
            if weight_kg is None:
                return _error("Provide protein_target or weight_kg")
            try:
                protein_target = calculate_nutrition_targets(weight_kg).protein_target
            except ValueError as exc:
                return _error(str(exc))
        if step_target is None:
            step_target = settings.default_step_target

        if previous_scores is None:
            if repository is not None:
                previous_scores = repository.get_score_history(
                    patient_id,
                    before_date=assessment_date,
                    limit=settings.trend_history_limit,
                )
            else:
                previous_scores = []

        assessment = assess_recovery_day(
            aggregate,
            protein_target=protein_target,
            step_target=step_target,
            post_op_week=post_op_week,
            previous_scores=previous_scores,
        )

        assessment_id: str | None = None
        if repository is not None:
            record = DailyAssessmentRecord(
                id="",
                patient_id=patient_id,
                assessment_date=assessment_date,
                daily_data=aggregate.to_dict(),
                post_op_week=post_op_week,
                activity_state=assessment.evaluation.state.value,
                score=assessment.index.score,
                protein_score=assessment.index.protein_score,
                activity_score=assessment.index.activity_score,
                adl_score=assessment.index.adl_score,
                risk_level=assessment.index.risk_level,
                trend=assessment.trend,
                alerts=assessment.alerts,
            )
            try:
                assessment_id = repository.save_assessment(record)
            except RepositoryError as exc:
                return _error(str(exc))

        if audit_logger is not None:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            audit_logger.log_tool_call(
                tool_name=tool_name,
                tool_input={"patient_id": patient_id, "assessment_date": assessment_date},
                patient_id=patient_id,
                assessment_id=assessment_id,
                duration_ms=elapsed_ms,
            )
            if assessment.alerts:
                audit_logger.log_clinician_alert(
                    tool_name=tool_name,
                    patient_id=patient_id,
                    assessment_id=assessment_id,
                    alerts=assessment.alerts,
                )

        if assessment.notable:
            logger.info(
                "Notable recovery day %s: state=%s risk=%s",
                assessment_date,
                assessment.evaluation.state.value,
                assessment.index.risk_level,
            )

        return json.dumps({
            "status": "ok",
            "assessment_id": assessment_id,
            "stored": assessment_id is not None,
            "assessment_date": assessment_date,
            "protein_target": protein_target,
            "step_target": step_target,
            **assessment.to_dict(),
        }, indent=2)

    @mcp.tool
    async def daily_recovery_assessment(
        ctx: Context,
        patient_id: str,
        assessment_date: str = "",
        protein: float = 0.0,
        calories: float = 0.0,
        steps: float | None = None,
        activity_minutes: float | None = None,
        movement_moments: float | None = None,
        longest_sitting_streak_min: float | None = None,
        fatigue_score: float | None = None,
        pain_score: float | None = None,
        sleep_hours: float | None = None,
        sit_to_stand_count: float | None = None,
        perceived_exertion_rpe: float | None = None,
        safety_flags: list[str] | None = None,
        protein_target: float | None = None,
        weight_kg: float | None = None,
        step_target: float | None = None,
        post_op_week: int | None = None,
        previous_scores: list[float] | None = None,
    ) -> str:
        """Run the full daily assessment for a patient and store the result.

        Classifies the activity state, computes the Recovery Index, compares
        it with earlier days and raises clinician alerts. Earlier scores come
        from ``previous_scores`` when given, otherwise from stored history.

        Args:
            patient_id: Patient identifier.
            assessment_date: Day being assessed (ISO 8601). Defaults to today.
            protein: Protein eaten (g).
            calories: Energy eaten (kcal).
            steps: Steps taken; omit if not reported.
            activity_minutes: Active minutes; omit if not reported.
            movement_moments: Times stood up and moved.
            longest_sitting_streak_min: Longest sitting period (min).
            fatigue_score: Fatigue, 0-10.
            pain_score: Pain, 0-10.
            sleep_hours: Hours slept.
            sit_to_stand_count: Sit-to-stand repetitions.
            perceived_exertion_rpe: Perceived exertion, 0-10.
            safety_flags: Red-flag symptoms reported today.
            protein_target: Daily protein target (g). Derived from weight_kg when omitted.
            weight_kg: Body weight, used when protein_target is omitted.
            step_target: Daily step target. Defaults to the configured target.
            post_op_week: Weeks since surgery.
            previous_scores: Earlier scores, oldest first.
        """
        aggregate = DailyAggregate(
            protein=protein,
            calories=calories,
            steps=steps,
            activity_minutes=activity_minutes,
            movement_moments=movement_moments,
            longest_sitting_streak_min=longest_sitting_streak_min,
            fatigue_score=fatigue_score,
            pain_score=pain_score,
            sleep_hours=sleep_hours,
            sit_to_stand_count=sit_to_stand_count,
            perceived_exertion_rpe=perceived_exertion_rpe,
            safety_flags=list(dict.fromkeys(safety_flags or [])),
        )
        return _score_day(
            "daily_recovery_assessment",
            patient_id,
            assessment_date,
            aggregate,
            protein_target=protein_target,
            weight_kg=weight_kg,
            step_target=step_target,
            post_op_week=post_op_week,
            previous_scores=previous_scores,
        )

    @mcp.tool
    async def daily_recovery_assessment_from_logs(
        ctx: Context,
        patient_id: str,
        assessment_date: str = "",
        food_logs: list[dict[str, Any]] | None = None,
        activity_logs: list[dict[str, Any]] | None = None,
        symptom_logs: list[dict[str, Any]] | None = None,
        checkin: dict[str, Any] | None = None,
        protein_target: float | None = None,
        weight_kg: float | None = None,
        step_target: float | None = None,
        post_op_week: int | None = None,
        previous_scores: list[float] | None = None,
    ) -> str:
        """Run the daily assessment from a day's raw food, activity and symptom logs.

        Logs are summed into one daily record first. A quantity that no log
        reports is treated as not reported rather than zero.

        Args:
            patient_id: Patient identifier.
            assessment_date: Day being assessed (ISO 8601). Defaults to today.
            food_logs: Entries with estimated_protein and estimated_calories.
            activity_logs: Entries with step_count and duration_minutes.
            symptom_logs: Entries with an optional safety_flags list.
            checkin: Check-in answers (movement_moments, longest_sitting_streak_min,
                fatigue_score, pain_score, sleep_hours, sit_to_stand_count,
                perceived_exertion_rpe).
            protein_target: Daily protein target (g). Derived from weight_kg when omitted.
            weight_kg: Body weight, used when protein_target is omitted.
            step_target: Daily step target. Defaults to the configured target.
            post_op_week: Weeks since surgery.
            previous_scores: Earlier scores, oldest first.
        """
        aggregate = build_daily_aggregate(
            food_logs=food_logs or [],
            activity_logs=activity_logs or [],
            symptom_logs=symptom_logs or [],
            checkin=checkin,
        )
        return _score_day(
            "daily_recovery_assessment_from_logs",
            patient_id,
            assessment_date,
            aggregate,
            protein_target=protein_target,
            weight_kg=weight_kg,
            step_target=step_target,
            post_op_week=post_op_week,
            previous_scores=previous_scores,
        )
