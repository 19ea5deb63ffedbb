"""
Derived nutrition targets.

Pure functions of the questionnaire answers: the generation job recomputes
them from the stored snapshot instead of trusting values sent at enqueue time.
"""

import hashlib
import json

from pydantic import BaseModel

from nutriplan.v1.questionnaire.schemas import QuestionnaireAnswers

KG_TO_LB = 2.20462

ACTIVITY_FACTORS = {
    "<5k": 1.35,
    "5-8k": 1.45,
    "8-12k": 1.55,
    "12k+": 1.65,
}
DEFAULT_ACTIVITY_FACTOR = 1.45
TRAINING_BONUS = 0.05

# goal -> (calorie adjustment against TDEE, goal mode)
GOAL_ADJUSTMENTS = {
    "Fat loss": (-400, "fat_loss"),
    "Recomposition": (-150, "recomp"),
    "Muscle gain": (200, "muscle_gain"),
    "Energy + focus": (0, "maintenance"),
}


class DerivedTargets(BaseModel):
    """Daily targets handed to the plan generator and stored on the plan."""

    weight_kg: float
    weight_lb: float
    protein_min: int
    protein_max: int
    calories_per_day: int
    goal_mode: str
    bmr: int
    tdee: int
    activity_factor: float


def _round_half_up(value: float) -> int:
    # Same rounding the web client shows for targets
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def calculate_derived_targets(answers: QuestionnaireAnswers) -> DerivedTargets:
    """Compute protein, BMR, TDEE and calorie targets for a questionnaire."""
    weight_lb = answers.weight_kg * KG_TO_LB

    # 1g protein per lb bodyweight, with a -10%/+5% band
    protein_target = weight_lb * 1.0
    protein_min = _round_half_up(protein_target * 0.90)
    protein_max = _round_half_up(protein_target * 1.05)

    # Mifflin-St Jeor
    bmr = 10 * answers.weight_kg + 6.25 * answers.height_cm - 5 * answers.age
    bmr += 5 if answers.sex == "Male" else -161

    activity_factor = ACTIVITY_FACTORS.get(answers.daily_steps, DEFAULT_ACTIVITY_FACTOR)
    if answers.training_days_per_week >= 4:
        activity_factor = round(activity_factor + TRAINING_BONUS, 2)

    tdee = bmr * activity_factor

    adjustment, goal_mode = GOAL_ADJUSTMENTS.get(
        answers.primary_goal, (0, "maintenance")
    )

    return DerivedTargets(
        weight_kg=answers.weight_kg,
        weight_lb=_round_half_up(weight_lb * 10) / 10,
        protein_min=protein_min,
        protein_max=protein_max,
        calories_per_day=_round_half_up(tdee + adjustment),
        goal_mode=goal_mode,
        bmr=_round_half_up(bmr),
        tdee=_round_half_up(tdee),
        activity_factor=activity_factor,
    )


def prompt_hash(answers: QuestionnaireAnswers) -> str:
    """Stable fingerprint of the answers a plan was generated from."""
    canonical = json.dumps(
        answers.model_dump(mode="json", by_alias=True), sort_keys=True
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]
