"""Guidance tables: per-state labels, colours, responses and actions.

Read once from ``guidance/activity_states.yaml`` at import and exposed as
read-only mappings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from herstel.domains.recovery.domain_logic.activity_models import (
    RISK_LEVELS,
    ActivityState,
    RiskLevel,
    parse_activity_state,
)

logger = logging.getLogger(__name__)

GUIDANCE_FILE = Path(__file__).resolve().parent.parent / "guidance" / "activity_states.yaml"

STATE_COLORS = frozenset({"green", "orange", "red", "gray"})
RISK_COLORS = frozenset({"green", "yellow", "red"})


class GuidanceError(Exception):
    """Raised when the guidance file is missing entries or malformed."""


@dataclass(frozen=True)
class StateGuidance:
    """Presentation data for one activity state."""

    state: ActivityState
    label: str
    color: str
    gauge_position: int
    response: str
    actions: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "color": self.color,
            "gauge_position": self.gauge_position,
            "response": self.response,
            "actions": list(self.actions),
        }


@dataclass(frozen=True)
class RiskGuidance:
    """Presentation data for one risk level."""

    risk_level: RiskLevel
    label: str
    color: str


def _parse_state(name: str, data: dict[str, Any]) -> StateGuidance:
    state = parse_activity_state(name)
    color = data.get("color", "")
    if color not in STATE_COLORS:
        raise GuidanceError(f"State {name}: unknown colour {color!r}")
    gauge = int(data.get("gauge_position", 0))
    if not 0 <= gauge <= 100:
        raise GuidanceError(f"State {name}: gauge_position {gauge} outside 0-100")
    return StateGuidance(
        state=state,
        label=data["label"],
        color=color,
        gauge_position=gauge,
        response=data["response"].strip(),
        actions=tuple(data.get("actions", [])),
    )


def load_guidance_file(
    path: str | Path,
) -> tuple[MappingProxyType[ActivityState, StateGuidance], MappingProxyType[str, RiskGuidance]]:
    """Parse and validate a guidance YAML file.

    Raises:
        GuidanceError: If the file cannot be read, or any state or risk
            level is missing or malformed.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise GuidanceError(f"Cannot load guidance from {path}: {exc}") from exc

    try:
        states = {
            guidance.state: guidance
            for guidance in (
                _parse_state(name, entry) for name, entry in (data.get("states") or {}).items()
            )
        }
    except (KeyError, TypeError, ValueError) as exc:
        raise GuidanceError(f"Malformed state guidance in {path}: {exc}") from exc

    missing = [s.value for s in ActivityState if s not in states]
    if missing:
        raise GuidanceError(f"Guidance missing for states: {', '.join(missing)}")

    risks: dict[str, RiskGuidance] = {}
    for level in RISK_LEVELS:
        entry = (data.get("risk_levels") or {}).get(level)
        if not entry:
            raise GuidanceError(f"Guidance missing for risk level {level!r}")
        if entry.get("color") not in RISK_COLORS:
            raise GuidanceError(f"Risk level {level}: unknown colour {entry.get('color')!r}")
        risks[level] = RiskGuidance(risk_level=level, label=entry["label"], color=entry["color"])

    logger.debug("Loaded guidance for %d states from %s", len(states), path)
    return MappingProxyType(states), MappingProxyType(risks)


STATE_GUIDANCE, RISK_GUIDANCE = load_guidance_file(GUIDANCE_FILE)


def state_guidance(state: ActivityState | str) -> StateGuidance:
    """Look up guidance for a state (enum or name)."""
    return STATE_GUIDANCE[parse_activity_state(state)]


def risk_guidance(risk_level: RiskLevel) -> RiskGuidance:
    """Look up label and colour for a risk level.

    Raises:
        KeyError: For an unknown risk level.
    """
    return RISK_GUIDANCE[risk_level]
