"""
Persistence for nutrition plans and their export status records.
"""

from datetime import UTC, datetime
from typing import Any, Protocol

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nutriplan.v1.plans.models import NutritionPlan, PlanExport, PlanStatus


class PlanRepository(Protocol):
    """Plan reads and the terminal plan writes made by generation jobs."""

    async def get_plan(self, plan_id: str) -> NutritionPlan | None:
        """Load a plan together with its questionnaire snapshot."""
        ...

    async def mark_ready(
        self,
        plan_id: str,
        *,
        markdown: str,
        derived_targets: dict[str, Any],
        validation_issues: list[str],
        llm_model: str,
        llm_prompt_hash: str,
    ) -> None:
        ...

    async def mark_failed(self, plan_id: str, error: str) -> None:
        ...

    async def upsert_export(self, plan_id: str, fields: dict[str, Any]) -> PlanExport:
        """Create or update the plan's export status record."""
        ...

    async def get_export(self, plan_id: str) -> PlanExport | None:
        ...


class SqlAlchemyPlanRepository:
    """PlanRepository on SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_plan(self, plan_id: str) -> NutritionPlan | None:
        async with self.session_factory() as session:
            return await session.get(NutritionPlan, plan_id)

    async def mark_ready(
        self,
        plan_id: str,
        *,
        markdown: str,
        derived_targets: dict[str, Any],
        validation_issues: list[str],
        llm_model: str,
        llm_prompt_hash: str,
    ) -> None:
        await self._update_plan(
            plan_id,
            status=PlanStatus.READY.value,
            markdown=markdown,
            derived_targets=derived_targets,
            validation_issues=validation_issues,
            llm_model=llm_model,
            llm_prompt_hash=llm_prompt_hash,
            error=None,
        )

    async def mark_failed(self, plan_id: str, error: str) -> None:
        await self._update_plan(plan_id, status=PlanStatus.FAILED.value, error=error)

    async def upsert_export(self, plan_id: str, fields: dict[str, Any]) -> PlanExport:
        now = datetime.now(UTC)
        async with self.session_factory() as session:
            stmt = insert(PlanExport).values(
                nutrition_plan_id=plan_id, updated_at=now, **fields
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[PlanExport.nutrition_plan_id],
                set_={**fields, "updated_at": now},
            ).returning(PlanExport)
            result = await session.execute(stmt)
            export = result.scalar_one()
            await session.commit()
            return export

    async def get_export(self, plan_id: str) -> PlanExport | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(PlanExport).where(PlanExport.nutrition_plan_id == plan_id)
            )
            return result.scalar_one_or_none()

    async def _update_plan(self, plan_id: str, **values: Any) -> None:
        async with self.session_factory() as session:
            await session.execute(
                update(NutritionPlan)
                .where(NutritionPlan.id == plan_id)
                .values(**values, updated_at=datetime.now(UTC))
            )
            await session.commit()
