from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from nutriplan.infra.database import Base
from nutriplan.v1.questionnaire.models import Questionnaire


class PlanStatus(str, Enum):
    """Nutrition plan status as seen by status-polling clients."""

    GENERATING = "generating"
    READY = "ready"
    FAILED = "failed"


class ExportStatus(str, Enum):
    """Document export status, tracked separately from the plan."""

    QUEUED = "queued"
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class NutritionPlan(Base):
    """A generated (or generating) nutrition plan document."""

    __tablename__ = "nutrition_plans"

    id: Mapped[str] = mapped_column(
        String(50), primary_key=True, default=lambda: str(uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    questionnaire_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("questionnaires.id"), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    title: Mapped[str | None] = mapped_column(Text)

    status: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=PlanStatus.GENERATING.value,
        server_default=PlanStatus.GENERATING.value,
    )
    markdown: Mapped[str | None] = mapped_column(Text)
    derived_targets: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    validation_issues: Mapped[list[str] | None] = mapped_column(JSON)
    llm_model: Mapped[str | None] = mapped_column(Text)
    llm_prompt_hash: Mapped[str | None] = mapped_column(String(64))
    error: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    questionnaire: Mapped[Questionnaire] = relationship(lazy="selectin")

    __table_args__ = (
        CheckConstraint(
            "status IN ('generating', 'ready', 'failed')",
            name="nutrition_plans_status_check",
        ),
    )


class PlanExport(Base):
    """Status record for the exported plan document (one per plan)."""

    __tablename__ = "plan_exports"

    id: Mapped[str] = mapped_column(
        String(50), primary_key=True, default=lambda: str(uuid4())
    )
    nutrition_plan_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("nutrition_plans.id"), nullable=False, unique=True
    )
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=ExportStatus.QUEUED.value
    )
    external_id: Mapped[str | None] = mapped_column(
        Text, comment="Generation id at the export service"
    )
    url: Mapped[str | None] = mapped_column(Text)
    last_payload: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    error: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
