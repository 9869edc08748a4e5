# statuswatch/db/repositories/uptime_repo.py
from datetime import date
from uuid import UUID

from sqlalchemy import select

from statuswatch.db.repositories.base import BaseRepository
from statuswatch.models.uptime import UptimeHistory


class UptimeRepository(BaseRepository):
    async def find_by_entity_and_date(
        self, app_id: UUID, component_id: UUID | None, record_date: date
    ) -> UptimeHistory | None:
        query = (
            select(UptimeHistory)
            .where(UptimeHistory.app_id == app_id)
            .where(UptimeHistory.record_date == record_date)
        )
        if component_id is None:
            query = query.where(UptimeHistory.component_id.is_(None))
        else:
            query = query.where(UptimeHistory.component_id == component_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def upsert(self, record: UptimeHistory) -> UptimeHistory:
        """Insert the record or copy its figures onto the existing (entity, date) row."""
        existing = await self.find_by_entity_and_date(
            record.app_id, record.component_id, record.record_date
        )
        if existing is None:
            self.session.add(record)
            await self.session.flush()
            return record

        existing.status = record.status
        existing.uptime_percentage = record.uptime_percentage
        existing.total_minutes = record.total_minutes
        existing.operational_minutes = record.operational_minutes
        existing.degraded_minutes = record.degraded_minutes
        existing.outage_minutes = record.outage_minutes
        existing.incident_count = record.incident_count
        await self.session.flush()
        return existing

    async def list_for_entity(
        self, app_id: UUID, component_id: UUID | None = None
    ) -> list[UptimeHistory]:
        query = select(UptimeHistory).where(UptimeHistory.app_id == app_id)
        if component_id is None:
            query = query.where(UptimeHistory.component_id.is_(None))
        else:
            query = query.where(UptimeHistory.component_id == component_id)
        result = await self.session.execute(query.order_by(UptimeHistory.record_date))
        return list(result.scalars().all())
