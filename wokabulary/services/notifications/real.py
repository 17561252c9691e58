"""
Real Notification Service

Bills go out through:
- SendGrid, or plain SMTP when no SendGrid key is configured (email)
- Twilio (SMS)

The provider SDKs are blocking, so every call runs in a worker thread and
the bill request does not stall the event loop.
"""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from twilio.rest import Client as TwilioClient
from twilio.base.exceptions import TwilioException

from wokabulary.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)
from wokabulary.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class RealNotificationService(BaseNotificationService):
    """Production bill delivery."""

    def __init__(self):
        self.twilio_client: Optional[TwilioClient] = None
        if settings.twilio_account_sid and settings.twilio_auth_token:
            self.twilio_client = TwilioClient(settings.twilio_account_sid, settings.twilio_auth_token)
        else:
            logger.warning("Twilio credentials not configured, bill SMS disabled")

        self.sendgrid_client: Optional[SendGridAPIClient] = None
        if settings.sendgrid_api_key:
            self.sendgrid_client = SendGridAPIClient(settings.sendgrid_api_key)
        elif settings.smtp_host:
            logger.info(f"SendGrid not configured, bills are mailed via {settings.smtp_host}")
        else:
            logger.warning("No email provider configured, bills cannot be sent")

        logger.info(f"RealNotificationService initialized (email via {self.email_provider})")

    @property
    def provider_name(self) -> str:
        return "real"

    @property
    def email_provider(self) -> str:
        if self.sendgrid_client:
            return "sendgrid"
        if settings.smtp_host:
            return "smtp"
        return "none"

    # =========================================================================
    # SMS
    # =========================================================================

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        if not self.twilio_client:
            return NotificationResult(
                success=False,
                error_message="Twilio not configured",
                provider="twilio"
            )

        try:
            sent = await asyncio.to_thread(
                self.twilio_client.messages.create,
                body=message,
                from_=settings.twilio_phone_number,
                to=to_phone,
            )
        except TwilioException as e:
            logger.error(f"Twilio error sending to {to_phone}: {e}")
            return NotificationResult(success=False, error_message=str(e), provider="twilio")

        logger.info(f"Bill SMS sent to {to_phone}: {sent.sid}")
        return NotificationResult(success=True, message_id=sent.sid, provider="twilio")

    # =========================================================================
    # EMAIL
    # =========================================================================

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        provider = self.email_provider
        if provider == "sendgrid":
            return await asyncio.to_thread(self._sendgrid_send, to_email, subject, body_html, body_text)
        if provider == "smtp":
            return await asyncio.to_thread(self._smtp_send, to_email, subject, body_html, body_text)

        return NotificationResult(
            success=False,
            error_message="Email provider not configured",
            provider="none"
        )

    def _sendgrid_send(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str],
    ) -> NotificationResult:
        mail = Mail(
            from_email=settings.sendgrid_from_email,
            to_emails=to_email,
            subject=subject,
            html_content=body_html,
            plain_text_content=body_text,
        )

        try:
            response = self.sendgrid_client.send(mail)
        except Exception as e:
            # SendGrid raises its HTTP client's errors for 4xx/5xx responses
            logger.error(f"SendGrid error sending to {to_email}: {e}")
            return NotificationResult(success=False, error_message=str(e), provider="sendgrid")

        accepted = response.status_code in (200, 201, 202)
        logger.info(f"Bill email to {to_email}: SendGrid status {response.status_code}")
        return NotificationResult(
            success=accepted,
            message_id=response.headers.get("X-Message-Id"),
            error_message=None if accepted else f"SendGrid status {response.status_code}",
            provider="sendgrid"
        )

    def _smtp_send(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str],
    ) -> NotificationResult:
        msg = MIMEMultipart("alternative")
        msg["From"] = settings.smtp_from or settings.smtp_user or settings.sendgrid_from_email
        msg["To"] = to_email
        msg["Subject"] = subject
        if body_text:
            msg.attach(MIMEText(body_text, "plain"))
        msg.attach(MIMEText(body_html, "html"))

        try:
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as server:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls()
                    server.ehlo()
                if settings.smtp_user and settings.smtp_password:
                    server.login(settings.smtp_user, settings.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP error sending to {to_email}: {type(e).__name__}: {e}")
            return NotificationResult(success=False, error_message=str(e), provider="smtp")

        logger.info(f"Bill email sent to {to_email} via SMTP")
        return NotificationResult(success=True, provider="smtp")

    async def health_check(self) -> bool:
        """Bills need an email provider; SMS is optional."""
        return self.email_provider != "none"
