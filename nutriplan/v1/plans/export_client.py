"""
HTTP client for the document export service (Gamma).
"""

import re
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from nutriplan.config.logging import get_logger
from nutriplan.config.settings import Settings
from nutriplan.v1.core.exceptions import DocumentExportError

logger = get_logger(__name__)

_HEADING_RE = re.compile(r"^(#{1,3}\s)", re.MULTILINE)


class ExportKickoffResult(BaseModel):
    """State of one document generation at the export service."""

    external_id: str
    status: str
    url: str | None = None
    export_url: str | None = None
    error: str | None = None


def format_for_export(markdown: str) -> str:
    """Insert card breaks before top-level headings."""
    return _HEADING_RE.sub(r"\n---\n\1", markdown)


class GammaExportClient:
    """Starts and polls document generations at the export service."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self.transport = transport

    async def start_export(self, markdown: str) -> ExportKickoffResult:
        """Submit a plan document for export; returns the pending generation."""
        body = {
            "inputText": format_for_export(markdown),
            "textMode": "preserve",
            "format": "document",
            "cardSplit": "inputTextBreaks",
            "numCards": 30,
            "imageOptions": {"source": "noImages"},
            "exportAs": "pdf",
            "additionalInstructions": (
                "Keep formatting clean. Preserve headings. "
                "Use a professional, minimal style."
            ),
        }
        data = await self._request("POST", "/generations", json=body)
        return self._parse(data)

    async def get_export_status(self, external_id: str) -> ExportKickoffResult:
        data = await self._request("GET", f"/generations/{external_id}")
        return self._parse(data)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        if not self.settings.gamma_api_key:
            raise DocumentExportError("GAMMA_API_KEY is not configured")

        async with httpx.AsyncClient(
            base_url=self.settings.gamma_api_url.rstrip("/"),
            timeout=self.settings.gamma_timeout_seconds,
            headers={
                "X-API-KEY": self.settings.gamma_api_key,
                "accept": "application/json",
            },
            transport=self.transport,
        ) as client:
            try:
                response = await client.request(method, path, **kwargs)
            except httpx.RequestError as e:
                raise DocumentExportError(f"Export service unreachable: {e}") from e

        if response.is_error:
            logger.warning(
                "export.api_error",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise DocumentExportError(
                f"Gamma API error: {response.status_code} - {response.text}",
                status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise DocumentExportError(
                "Export service returned invalid JSON", status=response.status_code
            ) from e

    @staticmethod
    def _parse(data: Any) -> ExportKickoffResult:
        if not isinstance(data, dict):
            raise DocumentExportError("Export service response is not a JSON object")
        if not data.get("id"):
            raise DocumentExportError("Export service response is missing an id")

        export_urls = data.get("exportUrls")
        try:
            return ExportKickoffResult(
                external_id=str(data["id"]),
                status=data.get("status") or "pending",
                url=data.get("gammaUrl"),
                export_url=export_urls.get("pdf") if isinstance(export_urls, dict) else None,
                error=data.get("error"),
            )
        except ValidationError as e:
            raise DocumentExportError(f"Export service returned an invalid generation: {e}") from e
