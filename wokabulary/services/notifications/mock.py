"""
Mock Notification Service

Bills "sent" in development land in an in-memory outbox instead of a
customer's inbox. Failures and provider latency are simulated so the
bill flow's error handling can be exercised locally.
"""

import asyncio
import random
import uuid
import logging
from collections import deque
from typing import Optional

from wokabulary.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):
    """
    Development stand-in for Twilio and SendGrid.

    Args:
        failure_rate: Probability (0-1) that a single email or SMS fails
        max_latency: Upper bound of the simulated provider delay in seconds
        outbox_size: Number of delivered messages kept in ``sent``
    """

    def __init__(self, failure_rate: float = 0.05, max_latency: float = 0.3, outbox_size: int = 200):
        self.failure_rate = failure_rate
        self.max_latency = max_latency
        # Most recent deliveries, oldest first
        self.sent: deque[dict] = deque(maxlen=outbox_size)
        logger.info(
            f"MockNotificationService initialized "
            f"(failure_rate={failure_rate:.0%}, max_latency={max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _deliver(self, channel: str, recipient: str, **content) -> NotificationResult:
        """Wait like a provider would, then fail or record the message."""
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(0, self.max_latency))

        if random.random() < self.failure_rate:
            logger.warning(f"Mock {channel} to {recipient} failed (simulated)")
            return NotificationResult(
                success=False,
                error_message=f"Simulated {channel} failure",
                provider="mock"
            )

        message_id = f"{channel}_mock_{uuid.uuid4().hex[:12]}"
        self.sent.append({"channel": channel, "to": recipient, "id": message_id, **content})
        logger.info(f"Mock {channel} delivered to {recipient} (ID: {message_id})")

        return NotificationResult(success=True, message_id=message_id, provider="mock")

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        return await self._deliver("sms", to_phone, body=message)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        return await self._deliver(
            "email",
            to_email,
            subject=subject,
            body=body_html,
            text=body_text,
        )

    async def health_check(self) -> bool:
        return True
