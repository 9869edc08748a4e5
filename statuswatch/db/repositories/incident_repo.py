# statuswatch/db/repositories/incident_repo.py
from datetime import datetime
from uuid import UUID

from sqlalchemy import or_, select

from statuswatch.db.repositories.base import BaseRepository
from statuswatch.models.incident import (
    IncidentOrigin,
    IncidentStatus,
    StatusIncident,
    StatusIncidentComponent,
    StatusIncidentUpdate,
)


class IncidentRepository(BaseRepository):
    async def create(self, incident: StatusIncident) -> StatusIncident:
        self.session.add(incident)
        await self.session.flush()
        return incident

    async def add_update(
        self, incident: StatusIncident, message: str, created_at: datetime | None = None
    ) -> StatusIncidentUpdate:
        """Append a timeline entry carrying the incident's current status."""
        update = StatusIncidentUpdate(
            incident_id=incident.id,
            status=incident.status,
            message=message,
        )
        if created_at is not None:
            update.created_at = created_at
        self.session.add(update)
        await self.session.flush()
        return update

    async def find_open_automated(self, app_id: UUID) -> list[StatusIncident]:
        result = await self.session.execute(
            select(StatusIncident)
            .where(StatusIncident.app_id == app_id)
            .where(StatusIncident.origin == IncidentOrigin.AUTOMATED)
            .where(StatusIncident.status != IncidentStatus.RESOLVED)
            .order_by(StatusIncident.started_at)
        )
        return list(result.scalars().all())

    async def find_public_overlapping(
        self, app_id: UUID, start: datetime, end: datetime
    ) -> list[StatusIncident]:
        """Public incidents of an app whose active interval overlaps [start, end)."""
        result = await self.session.execute(
            select(StatusIncident)
            .where(StatusIncident.app_id == app_id)
            .where(StatusIncident.is_public.is_(True))
            .where(StatusIncident.started_at < end)
            .where(or_(StatusIncident.resolved_at.is_(None), StatusIncident.resolved_at > start))
            .order_by(StatusIncident.started_at)
        )
        return list(result.scalars().all())

    async def find_public_overlapping_for_component(
        self, component_id: UUID, start: datetime, end: datetime
    ) -> list[StatusIncident]:
        """Public incidents linked to a component that overlap [start, end)."""
        result = await self.session.execute(
            select(StatusIncident)
            .join(
                StatusIncidentComponent,
                StatusIncidentComponent.incident_id == StatusIncident.id,
            )
            .where(StatusIncidentComponent.component_id == component_id)
            .where(StatusIncident.is_public.is_(True))
            .where(StatusIncident.started_at < end)
            .where(or_(StatusIncident.resolved_at.is_(None), StatusIncident.resolved_at > start))
            .order_by(StatusIncident.started_at)
        )
        return list(result.scalars().all())

    async def list_updates(self, incident_id: UUID) -> list[StatusIncidentUpdate]:
        result = await self.session.execute(
            select(StatusIncidentUpdate)
            .where(StatusIncidentUpdate.incident_id == incident_id)
            .order_by(StatusIncidentUpdate.created_at)
        )
        return list(result.scalars().all())
