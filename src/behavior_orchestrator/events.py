"""
Run Event Sink

Posts run lifecycle events to an event gateway. Emission is best effort:
failures are logged and never affect the run.
"""

import logging
import uuid
from typing import Any, Dict, Optional

import httpx

from .main import OrchestratorConfig

logger = logging.getLogger(__name__)


class EventSink:
    """HTTP sink for orchestrator events"""

    def __init__(
        self,
        gateway_url: str,
        timeout_ms: int = 5000,
        service: str = "behavior-orchestrator",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.gateway_url = gateway_url.rstrip("/")
        self.timeout_ms = timeout_ms
        self.service = service
        self._transport = transport

    @classmethod
    def from_config(cls, config: OrchestratorConfig) -> Optional["EventSink"]:
        """Build a sink, or None when events are disabled or no gateway is configured"""
        if not config.enable_events or not config.event_gateway_url:
            return None
        return cls(
            config.event_gateway_url,
            timeout_ms=config.event_timeout_ms,
            service=config.name,
        )

    async def emit(
        self,
        event: str,
        status: str,
        run_id: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """Send one event; returns its id when the gateway accepted it"""
        event_id = str(uuid.uuid4())
        payload = {
            "service": self.service,
            "event": f"orchestrator.{event}",
            "status": status,
            "rid": event_id,
            "run_id": run_id,
            "metadata": metadata or {},
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_ms / 1000,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    f"{self.gateway_url}/events/ingest",
                    json=payload,
                )
                if response.status_code == 200:
                    logger.debug(f"Event emitted: {event}")
                    return event_id
                else:
                    logger.warning(f"Event {event} rejected: {response.status_code}")
        except httpx.HTTPError as e:
            logger.warning(f"Event {event} error: {e}")

        return None
