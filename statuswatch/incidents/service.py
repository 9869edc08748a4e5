"""Lifecycle of incidents opened automatically by health checks."""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from statuswatch.core.clock import utcnow
from statuswatch.db.repositories.incident_repo import IncidentRepository
from statuswatch.incidents.notifier import SubscriberNotifier
from statuswatch.models.entity import StatusApp
from statuswatch.models.incident import (
    SEVERITY_RANK,
    IncidentOrigin,
    IncidentSeverity,
    IncidentStatus,
    StatusIncident,
)

logger = logging.getLogger(__name__)

RESOLUTION_MESSAGE = (
    "Health checks are passing again. This incident has been resolved automatically."
)


class IncidentService:
    """Creates, escalates and resolves AUTOMATED incidents.

    Manual incidents are never touched. All writes happen in the caller's
    session; the caller commits.
    """

    def __init__(self, notifier: SubscriberNotifier | None = None):
        self.notifier = notifier or SubscriberNotifier()

    async def create_automated_incident(
        self,
        session: AsyncSession,
        app: StatusApp,
        severity: IncidentSeverity,
        message: str,
        now: datetime | None = None,
    ) -> StatusIncident:
        """Open a new automated incident, or escalate the one already open.

        An open automated incident with a lower severity is raised to the new
        severity. One with an equal or higher severity is returned unchanged.
        """
        now = now or utcnow()
        repo = IncidentRepository(session)

        open_incidents = await repo.find_open_automated(app.id)
        if open_incidents:
            incident = open_incidents[0]
            current = IncidentSeverity(incident.severity)
            if SEVERITY_RANK[severity] <= SEVERITY_RANK[current]:
                return incident

            incident.severity = severity
            incident.updated_at = now
            update_message = (
                f"Severity escalated from {current.value} to {severity.value}: {message}"
            )
            await repo.add_update(incident, update_message, created_at=now)
            logger.warning(
                "Escalated automated incident %s for app %s to %s",
                incident.id,
                app.name,
                severity.value,
            )
            await self._notify(self.notifier.notify_updated(session, incident, app, update_message))
            return incident

        incident = StatusIncident(
            app_id=app.id,
            title=f"{app.name} is experiencing issues",
            description=f"Automated health check failed: {message}",
            status=IncidentStatus.INVESTIGATING,
            severity=severity,
            origin=IncidentOrigin.AUTOMATED,
            is_public=True,
            started_at=now,
        )
        await repo.create(incident)
        await repo.add_update(
            incident, f"Automated health check detected a problem: {message}", created_at=now
        )
        logger.warning(
            "Created automated %s incident %s for app %s", severity.value, incident.id, app.name
        )
        await self._notify(self.notifier.notify_created(session, incident, app))
        return incident

    async def resolve_automated_incidents(
        self, session: AsyncSession, app: StatusApp, now: datetime | None = None
    ) -> int:
        """Resolve every open automated incident of the app.

        Returns:
            Number of incidents resolved
        """
        now = now or utcnow()
        repo = IncidentRepository(session)

        open_incidents = await repo.find_open_automated(app.id)
        for incident in open_incidents:
            incident.status = IncidentStatus.RESOLVED
            incident.resolved_at = now
            incident.updated_at = now
            await repo.add_update(incident, RESOLUTION_MESSAGE, created_at=now)
            logger.info("Resolved automated incident %s for app %s", incident.id, app.name)
            await self._notify(
                self.notifier.notify_resolved(session, incident, app, RESOLUTION_MESSAGE)
            )
        return len(open_incidents)

    async def _notify(self, pending) -> None:
        # Subscriber notification problems must not roll back the status change
        try:
            await pending
        except Exception as e:
            logger.error("Error notifying subscribers: %s", e)
