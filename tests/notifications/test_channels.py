"""Tests for notification channels."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from statuswatch.config import Settings
from statuswatch.models.alert_rule import NotificationType
from statuswatch.notifications.channels import (
    DeliveryResult,
    EmailChannel,
    Notification,
    NotificationChannel,
    SlackChannel,
    WebhookChannel,
    _HttpChannel,
    build_channels,
)

# Test fixtures for SMTP authentication (not real credentials)
TEST_SMTP_USER = "user"
TEST_SMTP_CRED = "test-cred-1234"

NOTE = Notification(subject="[Alert] Errors - 12 events in 5 min", body="Count: 12")


def _mock_post_client(mock_client_class, response=None, side_effect=None):
    mock_client = AsyncMock()
    if side_effect is not None:
        mock_client.post.side_effect = side_effect
    else:
        mock_client.post.return_value = response
    mock_client.__aenter__.return_value = mock_client
    mock_client_class.return_value = mock_client
    return mock_client


class TestDeliveryResult:
    def test_defaults(self):
        result = DeliveryResult(success=True)
        assert result.response_code is None
        assert result.error_message is None


class TestNotificationChannel:
    def test_notification_channel_is_abstract(self):
        with pytest.raises(TypeError):
            NotificationChannel()

    def test_http_channel_requires_payload_builder(self):
        with pytest.raises(TypeError):
            _HttpChannel()


class TestEmailChannel:
    @pytest.mark.asyncio
    async def test_send_success(self):
        channel = EmailChannel(
            smtp_host="smtp.example.com",
            smtp_port=587,
            sender="status@example.com",
            username=TEST_SMTP_USER,
            password=TEST_SMTP_CRED,
        )

        with patch("statuswatch.notifications.channels.aiosmtplib.send") as mock_send:
            mock_send.return_value = ({}, "OK")

            result = await channel.send(NOTE, "ops@example.com")

        assert result.success is True
        assert result.response_code == 250
        kwargs = mock_send.call_args.kwargs
        assert kwargs["hostname"] == "smtp.example.com"
        assert kwargs["port"] == 587
        assert kwargs["username"] == TEST_SMTP_USER
        assert kwargs["password"] == TEST_SMTP_CRED
        assert kwargs["start_tls"] is True
        message = kwargs["message"]
        assert message["Subject"] == NOTE.subject
        assert message["From"] == "status@example.com"
        assert message["To"] == "ops@example.com"
        assert message.get_content().strip() == "Count: 12"

    @pytest.mark.asyncio
    async def test_send_smtp_error(self):
        import aiosmtplib

        channel = EmailChannel(smtp_host="smtp.example.com", smtp_port=25, sender="s@x.com")

        with patch("statuswatch.notifications.channels.aiosmtplib.send") as mock_send:
            mock_send.side_effect = aiosmtplib.SMTPException("Connection refused")

            result = await channel.send(NOTE, "ops@example.com")

        assert result.success is False
        assert "Connection refused" in result.error_message


class TestSlackChannel:
    @pytest.mark.asyncio
    async def test_payload_joins_subject_and_body(self):
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.raise_for_status = MagicMock()

        with patch("statuswatch.notifications.channels.httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_post_client(mock_client_class, response=mock_response)

            result = await SlackChannel().send(NOTE, "https://hooks.slack.com/services/T/B/X")

        assert result.success is True
        assert result.response_code == 200
        mock_client.post.assert_called_once_with(
            "https://hooks.slack.com/services/T/B/X",
            json={"text": "[Alert] Errors - 12 events in 5 min\nCount: 12"},
        )


class TestWebhookChannel:
    @pytest.mark.asyncio
    async def test_payload_has_subject_and_body(self):
        mock_response = MagicMock()
        mock_response.status_code = 202
        mock_response.raise_for_status = MagicMock()

        with patch("statuswatch.notifications.channels.httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_post_client(mock_client_class, response=mock_response)

            result = await WebhookChannel(timeout_seconds=3.0).send(NOTE, "https://hooks.test/a")

        assert result.success is True
        mock_client.post.assert_called_once_with(
            "https://hooks.test/a",
            json={"subject": NOTE.subject, "body": NOTE.body},
        )
        mock_client_class.assert_called_once_with(timeout=3.0)

    @pytest.mark.asyncio
    async def test_timeout(self):
        with patch("statuswatch.notifications.channels.httpx.AsyncClient") as mock_client_class:
            _mock_post_client(
                mock_client_class, side_effect=httpx.TimeoutException("Request timed out")
            )

            result = await WebhookChannel().send(NOTE, "https://hooks.test/a")

        assert result.success is False
        assert result.error_message == "Request timed out"

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        mock_response = MagicMock()
        mock_response.status_code = 500

        with patch("statuswatch.notifications.channels.httpx.AsyncClient") as mock_client_class:
            _mock_post_client(
                mock_client_class,
                side_effect=httpx.HTTPStatusError(
                    "Server error", request=MagicMock(), response=mock_response
                ),
            )

            result = await WebhookChannel().send(NOTE, "https://hooks.test/a")

        assert result.success is False
        assert result.response_code == 500

    @pytest.mark.asyncio
    async def test_connection_error(self):
        with patch("statuswatch.notifications.channels.httpx.AsyncClient") as mock_client_class:
            _mock_post_client(mock_client_class, side_effect=httpx.ConnectError("refused"))

            result = await WebhookChannel().send(NOTE, "https://hooks.test/a")

        assert result.success is False
        assert result.error_message == "refused"


class TestBuildChannels:
    def test_without_smtp_host(self):
        channels = build_channels(Settings(smtp_host=None))

        assert set(channels) == {NotificationType.SLACK, NotificationType.WEBHOOK}

    def test_with_smtp_host(self):
        channels = build_channels(
            Settings(smtp_host="smtp.example.com", smtp_port=2525, smtp_use_tls=False)
        )

        email = channels[NotificationType.EMAIL]
        assert isinstance(email, EmailChannel)
        assert email.smtp_port == 2525
        assert email.use_tls is False
        assert isinstance(channels[NotificationType.SLACK], SlackChannel)
        assert isinstance(channels[NotificationType.WEBHOOK], WebhookChannel)
