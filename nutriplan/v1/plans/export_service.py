"""
Export status tracking for generated plans.
"""

from typing import Protocol

from nutriplan.config.logging import get_logger
from nutriplan.v1.core.exceptions import DocumentExportError
from nutriplan.v1.plans.export_client import ExportKickoffResult
from nutriplan.v1.plans.models import ExportStatus, PlanExport
from nutriplan.v1.plans.repository import PlanRepository

logger = get_logger(__name__)

POLLABLE_STATUSES = (ExportStatus.QUEUED.value, ExportStatus.PENDING.value)


class DocumentExporter(Protocol):
    """Document export collaborator."""

    async def start_export(self, markdown: str) -> ExportKickoffResult:
        ...

    async def get_export_status(self, external_id: str) -> ExportKickoffResult:
        ...


class ExportStatusService:
    """Kicks off plan exports and refreshes their status record."""

    def __init__(self, plans: PlanRepository, exporter: DocumentExporter):
        self.plans = plans
        self.exporter = exporter

    async def start(self, plan_id: str, markdown: str) -> PlanExport:
        """
        Start exporting a plan document.

        Failures are recorded on the export record and never raised: the
        export is a best-effort side pipeline of plan generation.
        """
        await self.plans.upsert_export(
            plan_id, {"status": ExportStatus.QUEUED.value, "error": None}
        )

        try:
            result = await self.exporter.start_export(markdown)
        except Exception as e:
            logger.error(
                "job.plan_generation.export_failed",
                plan_id=plan_id,
                error=str(e),
                exc_info=not isinstance(e, DocumentExportError),
            )
            return await self.plans.upsert_export(
                plan_id,
                {
                    "status": ExportStatus.FAILED.value,
                    "error": str(e) or "Unknown error",
                },
            )

        return await self.plans.upsert_export(plan_id, self._fields_from(result))

    async def refresh(self, plan_id: str) -> PlanExport | None:
        """Poll the export service for an in-flight export and persist the result."""
        export = await self.plans.get_export(plan_id)
        if export is None:
            return None

        if export.status not in POLLABLE_STATUSES or not export.external_id:
            return export

        try:
            result = await self.exporter.get_export_status(export.external_id)
        except Exception as e:
            # Stored record stays as-is on poll errors
            logger.warning(
                "plan.status.export_poll_failed",
                plan_id=plan_id,
                error=str(e),
                exc_info=not isinstance(e, DocumentExportError),
            )
            return export

        return await self.plans.upsert_export(plan_id, self._fields_from(result))

    @staticmethod
    def _fields_from(result: ExportKickoffResult) -> dict:
        return {
            "status": result.status,
            "external_id": result.external_id,
            "url": result.url,
            "last_payload": {
                "external_id": result.external_id,
                "export_url": result.export_url,
            },
            "error": result.error,
        }
