"""
Plan generator implementations.

Generators turn questionnaire answers plus derived targets into the plan
document. Real AI-backed generators register themselves in the plan generator
registry; the stub generator is always available.
"""

from pydantic import BaseModel, Field

from nutriplan.v1.questionnaire.schemas import QuestionnaireAnswers
from nutriplan.v1.questionnaire.targets import DerivedTargets


class PlanGenerationResult(BaseModel):
    """What a generator hands back to the generation job."""

    content: str = Field(..., description="Plan markdown")
    validation_issues: list[str] = Field(default_factory=list)
    was_repaired: bool = Field(
        default=False, description="Whether a repair pass rewrote the first draft"
    )


class StubPlanGenerator:
    """
    Deterministic template generator for development and testing.

    Builds a short markdown plan straight from the targets. No external
    dependencies or API calls required.
    """

    async def generate(
        self, answers: QuestionnaireAnswers, targets: DerivedTargets
    ) -> PlanGenerationResult:
        proteins = ", ".join(answers.protein_preferences)
        lines = [
            f"# Nutrition Plan for {answers.first_name}",
            "",
            "## Daily Targets",
            f"- Calories: {targets.calories_per_day} kcal ({targets.goal_mode})",
            f"- Protein: {targets.protein_min}-{targets.protein_max} g",
            f"- Maintenance (TDEE): {targets.tdee} kcal",
            "",
            "## Protein Sources",
            f"- {proteins}",
            "",
            "## Routine",
            f"- Wake {answers.wake_time}, sleep {answers.sleep_time}",
            f"- Training {answers.training_days_per_week} days/week "
            f"({answers.training_time_of_day.lower()})",
            "",
            "## Biggest Obstacle",
            f"- {answers.biggest_obstacle}",
        ]
        return PlanGenerationResult(content="\n".join(lines) + "\n")


stub_plan_generator = StubPlanGenerator()
