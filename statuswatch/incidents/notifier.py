"""Email notifications to status page subscribers about incident changes."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from statuswatch.db.repositories.subscriber_repo import SubscriberRepository
from statuswatch.models.alert_rule import NotificationType
from statuswatch.models.entity import StatusApp
from statuswatch.models.incident import StatusIncident
from statuswatch.notifications.channels import Notification
from statuswatch.notifications.hub import NotificationHub, OutboundNotification

logger = logging.getLogger(__name__)


def _status_value(value) -> str:
    return value.value if hasattr(value, "value") else str(value)


class SubscriberNotifier:
    """Queues one email per active, verified subscriber of the incident's app.

    Without a hub (no SMTP configured) the notifications are only logged.
    Enqueueing failures are logged per recipient and never propagate.
    """

    def __init__(self, hub: NotificationHub | None = None):
        self.hub = hub

    async def notify_created(
        self, session: AsyncSession, incident: StatusIncident, app: StatusApp
    ) -> int:
        body = "\n".join(
            [
                f"A new incident has been reported for {app.name}.",
                "",
                f"Incident: {incident.title}",
                f"Severity: {_status_value(incident.severity)}",
                f"Status: {_status_value(incident.status)}",
                "",
                incident.description or "",
            ]
        ).rstrip()
        notification = Notification(
            subject=f"[{app.name}] New Incident: {incident.title}", body=body
        )
        return await self._send(session, app, notification)

    async def notify_updated(
        self, session: AsyncSession, incident: StatusIncident, app: StatusApp, message: str
    ) -> int:
        body = "\n".join(
            [
                f"Incident: {incident.title}",
                f"Current Status: {_status_value(incident.status)}",
                f"Severity: {_status_value(incident.severity)}",
                "",
                f"Update: {message}",
            ]
        )
        notification = Notification(
            subject=f"[{app.name}] Incident Update: {incident.title}", body=body
        )
        return await self._send(session, app, notification)

    async def notify_resolved(
        self, session: AsyncSession, incident: StatusIncident, app: StatusApp, message: str
    ) -> int:
        body = "\n".join(
            [
                f"Incident: {incident.title}",
                "",
                f"Resolution: {message}",
                "",
                "The service has been restored to normal operation.",
            ]
        )
        notification = Notification(
            subject=f"[{app.name}] Incident Resolved: {incident.title}", body=body
        )
        return await self._send(session, app, notification)

    async def _send(self, session: AsyncSession, app: StatusApp, notification: Notification) -> int:
        """Queue the notification for every subscriber; returns how many were queued."""
        subscribers = await SubscriberRepository(session).get_active_verified(app.id)
        if not subscribers:
            logger.info("No active subscribers for app %s, skipping notification", app.name)
            return 0

        if self.hub is None:
            logger.info(
                "No notification hub configured; would have sent '%s' to %d subscribers",
                notification.subject,
                len(subscribers),
            )
            return 0

        queued = 0
        for subscriber in subscribers:
            try:
                ok = await self.hub.enqueue(
                    OutboundNotification(
                        channel_type=NotificationType.EMAIL,
                        destination=subscriber.email,
                        notification=notification,
                    )
                )
            except Exception as e:
                logger.error("Failed to queue notification to %s: %s", subscriber.email, e)
                continue
            if ok:
                queued += 1
        logger.info(
            "Queued '%s' for %d of %d subscribers of %s",
            notification.subject,
            queued,
            len(subscribers),
            app.name,
        )
        return queued
