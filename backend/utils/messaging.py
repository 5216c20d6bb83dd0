# backend/utils/messaging.py
import httpx
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class MessageSink(Protocol):
    async def send(self, topic: str, message: str) -> None: ...


class WebhookMessageSink:
    """Posts notification messages as JSON to a webhook endpoint."""

    def __init__(self, url: str, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def send(self, topic: str, message: str) -> None:
        payload = {
            "topic": topic,
            "message": message,
            "sent_at": datetime.now(timezone.utc).isoformat(),
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                # Log detailed error information before re-raising
                try:
                    resp_text = e.response.text if isinstance(e, httpx.HTTPStatusError) else str(e)
                except Exception:
                    resp_text = str(e)
                logger.error(f"Notification to {self.url} failed: {resp_text}")
                raise


class LoggingMessageSink:
    """Used when no webhook is configured."""

    async def send(self, topic: str, message: str) -> None:
        logger.info(f"[{topic}] {message}")
