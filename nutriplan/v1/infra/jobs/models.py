"""
Generation job model.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    TIMESTAMP,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from nutriplan.infra.database import Base

PLAN_GENERATION_JOB_TYPE = "plan_generation"


class JobStatus(str, Enum):
    """Job status enumeration."""

    QUEUED = "queued"
    RUNNING = "running"
    RETRYABLE = "retryable"
    COMPLETED = "completed"
    FAILED = "failed"


CLAIMABLE_STATUSES = (JobStatus.QUEUED.value, JobStatus.RETRYABLE.value)
TERMINAL_STATUSES = (JobStatus.COMPLETED.value, JobStatus.FAILED.value)


class GenerationJob(Base):
    """
    Durable unit of plan generation work.

    Provides:
    - Idempotent submission via the unique job_key
    - Leased claiming (lease_until) with re-claim after expiry
    - Bounded retries with a future run_after per retry
    """

    __tablename__ = "generation_jobs"

    # Core fields
    id: Mapped[str] = mapped_column(
        String(50), primary_key=True, default=lambda: str(uuid4())
    )
    job_key: Mapped[str] = mapped_column(
        Text, nullable=False, unique=True, comment="Idempotency key"
    )
    type: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Job type identifier"
    )
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        server_default="{}",
        comment="Job-specific parameters",
    )

    # Job state
    status: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=JobStatus.QUEUED.value,
        comment="Job status: queued|running|retryable|completed|failed",
    )
    attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Number of claims made"
    )
    max_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=5, comment="Attempts before failing"
    )
    run_after: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        comment="Earliest time the job may be claimed",
    )
    lease_until: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
        comment="Claim expiry; null when not leased",
    )
    last_error: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Last error message"
    )

    # Attribution
    user_id: Mapped[str] = mapped_column(String(50), nullable=False)
    nutrition_plan_id: Mapped[str | None] = mapped_column(
        String(50), ForeignKey("nutrition_plans.id"), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default="now()",
        default=lambda: datetime.now(UTC),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default="now()",
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('queued', 'running', 'retryable', 'completed', 'failed')",
            name="generation_jobs_status_check",
        ),
        Index("ix_generation_jobs_claim", "type", "status", "run_after"),
        Index("ix_generation_jobs_created_at", "created_at"),
    )

    def is_terminal(self) -> bool:
        """Check if job has reached completed or failed."""
        return self.status in TERMINAL_STATUSES

    def is_claimable(self, now: datetime) -> bool:
        """Check the claim eligibility predicate against this row."""
        return (
            self.status in CLAIMABLE_STATUSES
            and self.run_after <= now
            and (self.lease_until is None or self.lease_until < now)
        )
