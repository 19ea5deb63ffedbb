"""
Job handlers for background plan generation.

Handlers implement the JobHandler protocol and are registered in the job
registry under their job type.
"""

from typing import Any

from pydantic import ValidationError

from nutriplan.config.logging import get_logger
from nutriplan.config.settings import Settings
from nutriplan.v1.core.analytics import AnalyticsEvent, track_event
from nutriplan.v1.core.exceptions import InvalidJobPayloadError, PlanNotFoundError
from nutriplan.v1.core.registries import PlanGenerator
from nutriplan.v1.infra.jobs.models import GenerationJob
from nutriplan.v1.infra.jobs.schemas import PlanGenerationPayload
from nutriplan.v1.plans.export_service import ExportStatusService
from nutriplan.v1.plans.models import PlanStatus
from nutriplan.v1.plans.repository import PlanRepository
from nutriplan.v1.questionnaire.schemas import QuestionnaireAnswers
from nutriplan.v1.questionnaire.targets import calculate_derived_targets, prompt_hash

logger = get_logger(__name__)


class PlanGenerationHandler:
    """
    Job handler that generates a nutrition plan document.

    Payload expected:
    {
        "planId": "plan-id",
        "questionnaireId": "questionnaire-id",
        "questionnaireVersion": 3,
        "trigger": "questionnaire_complete" | "regenerate"
    }
    """

    def __init__(
        self,
        settings: Settings,
        plans: PlanRepository,
        generator: PlanGenerator,
        exports: ExportStatusService,
    ):
        self.settings = settings
        self.plans = plans
        self.generator = generator
        self.exports = exports

    def parse_payload(self, payload: Any) -> PlanGenerationPayload:
        if not isinstance(payload, dict):
            raise InvalidJobPayloadError("Invalid generation job payload")

        try:
            return PlanGenerationPayload.model_validate(payload)
        except ValidationError as e:
            fields = sorted(
                {".".join(str(part) for part in err["loc"]) for err in e.errors()}
            )
            raise InvalidJobPayloadError(
                f"Generation job payload is invalid: {', '.join(fields)}",
                {"fields": fields},
            ) from e

    async def handle(
        self, job: GenerationJob, payload: PlanGenerationPayload
    ) -> dict[str, Any] | None:
        """Generate, persist and export the plan referenced by the payload."""
        plan = await self.plans.get_plan(payload.plan_id)
        if plan is None:
            raise PlanNotFoundError(payload.plan_id)

        # A previous attempt may have finished after losing its lease
        if plan.status == PlanStatus.READY.value:
            logger.info(
                "job.plan_generation.skipped_ready", job_id=job.id, plan_id=plan.id
            )
            return {"status": "skipped", "reason": "plan_ready"}

        answers = QuestionnaireAnswers.model_validate(plan.questionnaire.answers)
        targets = calculate_derived_targets(answers)

        generation = await self.generator.generate(answers, targets)

        await self.plans.mark_ready(
            plan.id,
            markdown=generation.content,
            derived_targets=targets.model_dump(),
            validation_issues=generation.validation_issues,
            llm_model=self.settings.llm_model,
            llm_prompt_hash=prompt_hash(answers),
        )
        track_event(
            AnalyticsEvent.PLAN_READY,
            user_id=plan.user_id,
            plan_id=plan.id,
            was_repaired=generation.was_repaired,
        )

        export = await self.exports.start(plan.id, generation.content)

        return {
            "status": "completed",
            "plan_id": plan.id,
            "trigger": payload.trigger,
            "validation_issue_count": len(generation.validation_issues),
            "was_repaired": generation.was_repaired,
            "export_status": export.status,
        }
