"""Notification channel implementations.

This module provides:
- Notification: subject/body pair handed to a channel
- DeliveryResult: Result dataclass for notification delivery
- NotificationChannel: Abstract base class for notification channels
- EmailChannel: SMTP-based plain text email channel
- SlackChannel: Slack incoming webhook channel ({"text": ...} payload)
- WebhookChannel: Generic JSON webhook channel ({"subject", "body"} payload)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage

import aiosmtplib
import httpx

from statuswatch.config import Settings
from statuswatch.models.alert_rule import NotificationType


@dataclass(frozen=True)
class Notification:
    subject: str
    body: str


@dataclass
class DeliveryResult:
    """Outcome of one send attempt.

    response_code carries the HTTP status, or 250 for an accepted email.
    """

    success: bool
    response_code: int | None = None
    error_message: str | None = None


class NotificationChannel(ABC):
    """Delivers a notification to a destination; never raises for delivery errors."""

    @abstractmethod
    async def send(self, notification: Notification, destination: str) -> DeliveryResult:
        """Deliver to an email address or webhook URL, depending on the channel."""


class EmailChannel(NotificationChannel):
    """SMTP email channel sending the notification as plain text."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls

    async def send(self, notification: Notification, destination: str) -> DeliveryResult:
        message = EmailMessage()
        message["Subject"] = notification.subject
        message["From"] = self.sender
        message["To"] = destination
        message.set_content(notification.body)

        try:
            await aiosmtplib.send(
                message=message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
            )
            return DeliveryResult(success=True, response_code=250)
        except aiosmtplib.SMTPException as e:
            return DeliveryResult(success=False, error_message=str(e))


class _HttpChannel(NotificationChannel):
    """Shared POST logic for JSON webhook style channels."""

    def __init__(self, timeout_seconds: float = 10.0):
        self.timeout_seconds = timeout_seconds

    @abstractmethod
    def build_payload(self, notification: Notification) -> dict[str, str]:
        """JSON body posted to the destination URL."""

    async def send(self, notification: Notification, destination: str) -> DeliveryResult:
        payload = self.build_payload(notification)
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(destination, json=payload)
                response.raise_for_status()
                return DeliveryResult(success=True, response_code=response.status_code)
        except httpx.TimeoutException:
            return DeliveryResult(
                success=False,
                error_message="Request timed out",
            )
        except httpx.HTTPStatusError as e:
            return DeliveryResult(
                success=False,
                response_code=e.response.status_code,
                error_message=str(e),
            )
        except (httpx.RequestError, httpx.InvalidURL) as e:
            return DeliveryResult(
                success=False,
                error_message=str(e),
            )


class SlackChannel(_HttpChannel):
    """Slack incoming webhook; subject and body joined into one text field."""

    def build_payload(self, notification: Notification) -> dict[str, str]:
        return {"text": f"{notification.subject}\n{notification.body}"}


class WebhookChannel(_HttpChannel):
    """Generic webhook receiving the subject and body as JSON fields."""

    def build_payload(self, notification: Notification) -> dict[str, str]:
        return {"subject": notification.subject, "body": notification.body}


def build_channels(config: Settings) -> dict[NotificationType, NotificationChannel]:
    """Create the channel registry from configuration.

    Email is only registered when an SMTP host is configured.
    """
    channels: dict[NotificationType, NotificationChannel] = {
        NotificationType.SLACK: SlackChannel(timeout_seconds=config.webhook_timeout_seconds),
        NotificationType.WEBHOOK: WebhookChannel(timeout_seconds=config.webhook_timeout_seconds),
    }
    if config.smtp_host:
        channels[NotificationType.EMAIL] = EmailChannel(
            smtp_host=config.smtp_host,
            smtp_port=config.smtp_port,
            sender=config.smtp_sender,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
        )
    return channels
