"""add questionnaire, plan, export and generation job tables

Revision ID: 3f1a9c2d7b64
Revises:
Create Date: 2026-10-19 09:12:40.118203

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1a9c2d7b64"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "questionnaires",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("user_id", sa.String(50), nullable=False),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("answers", sa.JSON, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="active"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "status IN ('active', 'archived')", name="questionnaires_status_check"
        ),
    )
    op.create_index(
        "ix_questionnaires_user_id_status", "questionnaires", ["user_id", "status"]
    )

    op.create_table(
        "nutrition_plans",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("user_id", sa.String(50), nullable=False),
        sa.Column(
            "questionnaire_id",
            sa.String(50),
            sa.ForeignKey("questionnaires.id"),
            nullable=False,
        ),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("title", sa.Text, nullable=True),
        sa.Column("status", sa.Text, nullable=False, server_default="generating"),
        sa.Column("markdown", sa.Text, nullable=True),
        sa.Column("derived_targets", sa.JSON, nullable=True),
        sa.Column("validation_issues", sa.JSON, nullable=True),
        sa.Column("llm_model", sa.Text, nullable=True),
        sa.Column("llm_prompt_hash", sa.String(64), nullable=True),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "status IN ('generating', 'ready', 'failed')",
            name="nutrition_plans_status_check",
        ),
    )
    op.create_index("ix_nutrition_plans_user_id", "nutrition_plans", ["user_id"])

    op.create_table(
        "plan_exports",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column(
            "nutrition_plan_id",
            sa.String(50),
            sa.ForeignKey("nutrition_plans.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("status", sa.Text, nullable=False, server_default="queued"),
        sa.Column(
            "external_id",
            sa.Text,
            nullable=True,
            comment="Generation id at the export service",
        ),
        sa.Column("url", sa.Text, nullable=True),
        sa.Column("last_payload", sa.JSON, nullable=True),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "generation_jobs",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("job_key", sa.Text, nullable=False, comment="Idempotency key"),
        sa.Column("type", sa.Text, nullable=False, comment="Job type identifier"),
        sa.Column(
            "payload",
            sa.JSON,
            nullable=False,
            server_default="{}",
            comment="Job-specific parameters",
        ),
        sa.Column(
            "status",
            sa.Text,
            nullable=False,
            server_default="queued",
            comment="Job status: queued|running|retryable|completed|failed",
        ),
        sa.Column(
            "attempts",
            sa.Integer,
            nullable=False,
            server_default="0",
            comment="Number of claims made",
        ),
        sa.Column(
            "max_attempts",
            sa.Integer,
            nullable=False,
            server_default="5",
            comment="Attempts before failing",
        ),
        sa.Column(
            "run_after",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            comment="Earliest time the job may be claimed",
        ),
        # Lease fields
        sa.Column(
            "lease_until",
            sa.TIMESTAMP(timezone=True),
            nullable=True,
            comment="Claim expiry; null when not leased",
        ),
        sa.Column("last_error", sa.Text, nullable=True, comment="Last error message"),
        sa.Column("user_id", sa.String(50), nullable=False),
        sa.Column(
            "nutrition_plan_id",
            sa.String(50),
            sa.ForeignKey("nutrition_plans.id"),
            nullable=True,
        ),
        # Timestamps
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        # Constraints
        sa.UniqueConstraint("job_key", name="generation_jobs_job_key_key"),
        sa.CheckConstraint(
            "status IN ('queued', 'running', 'retryable', 'completed', 'failed')",
            name="generation_jobs_status_check",
        ),
    )

    # Claim scan: type + claimable status + due time
    op.create_index(
        "ix_generation_jobs_claim",
        "generation_jobs",
        ["type", "status", "run_after"],
    )
    op.create_index(
        "ix_generation_jobs_created_at", "generation_jobs", ["created_at"]
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("generation_jobs")
    op.drop_table("plan_exports")
    op.drop_table("nutrition_plans")
    op.drop_table("questionnaires")
