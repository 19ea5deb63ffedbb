"""
Generation job Pydantic schemas.
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr
from pydantic.alias_generators import to_camel

PlanGenerationTrigger = Literal["questionnaire_complete", "regenerate"]


class JobOutcome(str, Enum):
    """Result of executing one claimed job."""

    COMPLETED = "completed"
    RETRIED = "retried"
    FAILED = "failed"


class PlanGenerationPayload(BaseModel):
    """Payload stored on plan generation jobs (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    plan_id: StrictStr = Field(..., min_length=1)
    questionnaire_id: StrictStr = Field(..., min_length=1)
    questionnaire_version: StrictInt
    trigger: PlanGenerationTrigger


class EnqueuePlanGenerationRequest(BaseModel):
    """Input for submitting a plan generation job."""

    user_id: str = Field(..., min_length=1, description="Owning user")
    plan_id: str = Field(..., min_length=1, description="Plan to generate")
    questionnaire_id: str = Field(..., min_length=1)
    questionnaire_version: int = Field(..., ge=0)
    trigger: PlanGenerationTrigger = Field(
        ..., description="What caused the generation (observability only)"
    )
    max_attempts: int | None = Field(
        default=None, ge=1, description="Override the configured attempt ceiling"
    )


class EnqueueResult(BaseModel):
    """Schema for job enqueue response."""

    job_id: str
    status: str
    deduplicated: bool = Field(
        default=False, description="Whether an existing job was returned"
    )


class JobRunSummary(BaseModel):
    """Counts for one runner batch."""

    claimed: int = 0
    completed: int = 0
    retried: int = 0
    failed: int = 0

    def record(self, outcome: JobOutcome) -> None:
        if outcome is JobOutcome.COMPLETED:
            self.completed += 1
        elif outcome is JobOutcome.RETRIED:
            self.retried += 1
        else:
            self.failed += 1


class JobResponse(BaseModel):
    """Read model for displaying a job."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    job_key: str
    type: str
    status: str
    attempts: int
    max_attempts: int
    run_after: datetime
    lease_until: datetime | None = None
    last_error: str | None = None
    user_id: str
    nutrition_plan_id: str | None = None
    created_at: datetime
