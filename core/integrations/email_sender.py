"""
Taskboard Email Sender: Outbound Email API Client.

Delivers rendered messages through a managed email HTTP API:
- JSON payload (from, to, subject, html, text) with bearer auth
- One attempt per message; failures are reported, not retried
- Delivery records for auditing
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
import logging
import os
import time
import uuid

import httpx

logger = logging.getLogger(__name__)

EMAIL_API_URL = os.getenv("EMAIL_API_URL", "")
EMAIL_API_KEY = os.getenv("EMAIL_API_KEY", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "Taskboard <reminders@taskboard.local>")


@dataclass
class EmailMessage:
    """A rendered message ready for delivery."""
    to: str
    subject: str
    text: str
    html: str = ""
    tags: dict[str, str] = field(default_factory=dict)


@dataclass
class EmailDelivery:
    """Record of a single delivery attempt."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    to: str = ""
    subject: str = ""
    status_code: int = 0
    latency_ms: float = 0.0
    success: bool = False
    error: str | None = None
    delivered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "to": self.to,
            "subject": self.subject,
            "status_code": self.status_code,
            "latency_ms": round(self.latency_ms, 1),
            "success": self.success,
            "error": self.error,
            "delivered_at": self.delivered_at.isoformat(),
        }


class EmailSender:
    """Sends email through an HTTP email API."""

    TIMEOUT = 10.0

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        sender: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url if api_url is not None else EMAIL_API_URL
        self.api_key = api_key if api_key is not None else EMAIL_API_KEY
        self.sender = sender or EMAIL_FROM
        self._transport = transport
        self._deliveries: list[EmailDelivery] = []

    @property
    def enabled(self) -> bool:
        return bool(self.api_url)

    async def send(self, message: EmailMessage) -> EmailDelivery:
        """Deliver one message. Never raises for transport failures."""
        delivery = EmailDelivery(to=message.to, subject=message.subject)
        if not self.enabled:
            delivery.error = "email API not configured"
            logger.debug("Email to %s skipped: %s", message.to, delivery.error)
            self._deliveries.append(delivery)
            return delivery

        payload = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "text": message.text,
            "html": message.html or None,
            "tags": [{"name": k, "value": v} for k, v in message.tags.items()],
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        start = time.time()
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    self.api_url,
                    json=payload,
                    headers=headers,
                    timeout=self.TIMEOUT,
                )
            delivery.status_code = resp.status_code
            delivery.success = 200 <= resp.status_code < 300
            if not delivery.success:
                delivery.error = f"HTTP {resp.status_code}"
        except httpx.HTTPError as exc:
            delivery.error = str(exc) or exc.__class__.__name__
        delivery.latency_ms = (time.time() - start) * 1000

        if delivery.success:
            logger.info("Email delivered to %s (%s)", message.to, message.subject)
        else:
            logger.warning("Email to %s failed: %s", message.to, delivery.error)
        self._deliveries.append(delivery)
        return delivery

    def get_deliveries(self, limit: int = 50) -> list[EmailDelivery]:
        """Most recent delivery attempts first."""
        return sorted(self._deliveries, key=lambda d: d.delivered_at, reverse=True)[:limit]
