"""
Product analytics events.

Events are emitted as structured log lines and collected downstream from the
log stream.
"""

from enum import Enum
from typing import Any

from nutriplan.config.logging import get_logger

logger = get_logger(__name__)


class AnalyticsEvent(str, Enum):
    PLAN_QUEUED = "plan_queued"
    PLAN_READY = "plan_ready"


def track_event(event: AnalyticsEvent, **metadata: Any) -> None:
    """Record an analytics event."""
    logger.info("analytics.event", analytics_event=event.value, **metadata)
