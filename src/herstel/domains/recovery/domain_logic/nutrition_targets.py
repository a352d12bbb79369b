"""Post-operative nutrition targets from body weight."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass

from herstel.domains.recovery.domain_logic.recovery_index import round_half_up

# Post-op protein need is roughly double the 0.8 g/kg general guideline.
PROTEIN_G_PER_KG = 1.5
CALORIES_KCAL_PER_KG = 27.5


@dataclass(frozen=True)
class NutritionTargets:
    """Daily protein (g) and energy (kcal) targets."""

    weight_kg: float
    protein_target: int
    calorie_target: int

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_nutrition_targets(weight_kg: float) -> NutritionTargets:
    """Return rounded daily targets for a body weight in kilograms.

    Raises:
        ValueError: If the weight is not a positive finite number.
    """
    if weight_kg is None or not math.isfinite(weight_kg) or weight_kg <= 0:
        raise ValueError(f"weight_kg must be a positive number, got {weight_kg!r}")

    return NutritionTargets(
        weight_kg=weight_kg,
        protein_target=round_half_up(weight_kg * PROTEIN_G_PER_KG),
        calorie_target=round_half_up(weight_kg * CALORIES_KCAL_PER_KG),
    )
