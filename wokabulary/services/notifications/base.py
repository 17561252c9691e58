"""
Notification Service Abstract Base Class

Defines the interface for sending bills to customers by email and SMS.
Supports both Mock (development) and Real (production) implementations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


@dataclass
class BillDeliveryResult:
    """Outcome of delivering one bill: the email is mandatory, the SMS is not."""
    email: NotificationResult
    sms: Optional[NotificationResult] = None

    @property
    def email_sent(self) -> bool:
        return self.email.success

    @property
    def sms_sent(self) -> bool:
        return self.sms is not None and self.sms.success


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_sms(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Send an SMS message."""
        pass

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send an email."""
        pass

    async def send_bill(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
        to_phone: Optional[str] = None,
        sms_message: Optional[str] = None,
    ) -> BillDeliveryResult:
        """
        Email a bill and, when a phone number is given, text a short notice.

        The SMS is only attempted after the email went out.
        """
        email_result = await self.send_email(
            to_email=to_email,
            subject=subject,
            body_html=body_html,
            body_text=body_text,
        )

        sms_result = None
        if email_result.success and to_phone and sms_message:
            sms_result = await self.send_sms(to_phone, sms_message)

        return BillDeliveryResult(email=email_result, sms=sms_result)

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass
