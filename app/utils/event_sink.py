### app/utils/event_sink.py

# Standard library imports
from typing import Any, Dict, Optional

# Third party imports
import httpx

# Local imports
from app.utils.general import utc_now
from app.utils.logger import get_logger

logger = get_logger(__name__)


class EventSink:
    """
    Structured trace events `{location, message, data, timestamp}`.

    Events always go to the debug log. When an ingest URL is configured they
    are also POSTed there; delivery is best effort and never fails the caller.
    """

    def __init__(self, ingest_url: Optional[str] = None, timeout: float = 2.0):
        self.ingest_url = ingest_url
        self.timeout = timeout

    @staticmethod
    def build_event(location: str, message: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return {
            "location": location,
            "message": message,
            "data": data or {},
            "timestamp": int(utc_now().timestamp() * 1000),
        }

    async def emit(self, location: str, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        event = self.build_event(location, message, data)
        logger.debug("trace_event", trace=event)

        if not self.ingest_url:
            return

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.ingest_url, json=event)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Trace event delivery failed", location=location, error=str(e))
