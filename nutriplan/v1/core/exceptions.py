from typing import Any


class NutriPlanException(Exception):
    """Base exception for the plan generation service."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(NutriPlanException):
    """Raised when a resource is not found."""


class PipelineDisabledError(NutriPlanException):
    """Raised when a job is submitted while the async plan pipeline is off."""

    def __init__(
        self,
        message: str = "Async plan pipeline is disabled",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)


class JobExecutionError(NutriPlanException):
    """Base class for failures raised while executing a claimed job."""


class NonRetryableJobError(JobExecutionError):
    """Execution failure that retrying cannot fix; the job fails immediately."""


class InvalidJobPayloadError(NonRetryableJobError):
    """The stored job payload is structurally invalid."""


class UnsupportedJobTypeError(NonRetryableJobError):
    """No handler is registered for the job's type."""

    def __init__(self, job_type: str):
        super().__init__(f"Unsupported job type: {job_type}", {"type": job_type})


class PlanNotFoundError(JobExecutionError, NotFoundError):
    """The nutrition plan referenced by a job does not exist (yet)."""

    def __init__(self, plan_id: str):
        super().__init__(f"Plan {plan_id} not found", {"plan_id": plan_id})


class PlanGenerationError(JobExecutionError):
    """Classified failure from the plan generation collaborator."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.status = status


class DocumentExportError(NutriPlanException):
    """Failure from the document export collaborator."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.status = status
