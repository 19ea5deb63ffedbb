"""
Job store: the transactional row operations the queue is built on.

Every cross-runner guarantee of the queue comes from these statements; the
services above never read-then-write a job row themselves.
"""

from datetime import datetime, timedelta
from typing import Any, Protocol

from sqlalchemy import ColumnElement, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nutriplan.config.logging import get_logger
from nutriplan.v1.infra.jobs.models import CLAIMABLE_STATUSES, GenerationJob, JobStatus

logger = get_logger(__name__)


class JobStore(Protocol):
    """Row-level job operations, each atomic in the backing store."""

    async def insert_if_absent(
        self, job_key: str, fields: dict[str, Any]
    ) -> tuple[GenerationJob, bool]:
        """Insert a job; on job_key conflict return the existing row.

        Returns (job, created).
        """
        ...

    async def find_due_batch(
        self, job_type: str, now: datetime, limit: int
    ) -> list[GenerationJob]:
        """Up to ``limit`` claimable jobs, oldest first."""
        ...

    async def conditional_claim(
        self,
        job_id: str,
        expected_status: str,
        now: datetime,
        lease_duration: timedelta,
    ) -> bool:
        """Lease the job iff it is still claimable; return whether it applied."""
        ...

    async def update_outcome(
        self, job_id: str, fields: dict[str, Any], now: datetime
    ) -> None:
        """Unconditionally record fields on a claimed job, stamping updated_at."""
        ...

    async def get(self, job_id: str) -> GenerationJob | None:
        ...


def claimable_at(now: datetime) -> list[ColumnElement[bool]]:
    """SQL form of the claim eligibility predicate."""
    return [
        GenerationJob.status.in_(CLAIMABLE_STATUSES),
        GenerationJob.run_after <= now,
        or_(GenerationJob.lease_until.is_(None), GenerationJob.lease_until < now),
    ]


class SqlAlchemyJobStore:
    """JobStore backed by SQLAlchemy async sessions (PostgreSQL in production)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def insert_if_absent(
        self, job_key: str, fields: dict[str, Any]
    ) -> tuple[GenerationJob, bool]:
        async with self.session_factory() as session:
            job = GenerationJob(job_key=job_key, **fields)
            session.add(job)

            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                # Another submission with the same key won the insert
                existing = await self._get_by_key(session, job_key)
                if existing is None:
                    raise
                logger.info(
                    "job.insert.conflict", job_id=existing.id, job_key=job_key
                )
                return existing, False

            await session.refresh(job)
            return job, True

    async def find_due_batch(
        self, job_type: str, now: datetime, limit: int
    ) -> list[GenerationJob]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(GenerationJob)
                .where(GenerationJob.type == job_type, *claimable_at(now))
                .order_by(GenerationJob.created_at.asc(), GenerationJob.id.asc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def conditional_claim(
        self,
        job_id: str,
        expected_status: str,
        now: datetime,
        lease_duration: timedelta,
    ) -> bool:
        async with self.session_factory() as session:
            # Postgres re-checks the WHERE clause after waiting on a concurrent
            # writer's row lock, so at most one claimer matches.
            result = await session.execute(
                update(GenerationJob)
                .where(
                    GenerationJob.id == job_id,
                    GenerationJob.status == expected_status,
                    *claimable_at(now),
                )
                .values(
                    status=JobStatus.RUNNING.value,
                    attempts=GenerationJob.attempts + 1,
                    lease_until=now + lease_duration,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount == 1

    async def update_outcome(
        self, job_id: str, fields: dict[str, Any], now: datetime
    ) -> None:
        async with self.session_factory() as session:
            await session.execute(
                update(GenerationJob)
                .where(GenerationJob.id == job_id)
                .values(**fields, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            await session.commit()

    async def get(self, job_id: str) -> GenerationJob | None:
        async with self.session_factory() as session:
            return await session.get(GenerationJob, job_id)

    async def _get_by_key(
        self, session: AsyncSession, job_key: str
    ) -> GenerationJob | None:
        result = await session.execute(
            select(GenerationJob).where(GenerationJob.job_key == job_key)
        )
        return result.scalar_one_or_none()
