# statuswatch/db/repositories/maintenance_repo.py
from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, or_, select

from statuswatch.db.repositories.base import BaseRepository
from statuswatch.models.maintenance import MaintenanceStatus, StatusMaintenance


class MaintenanceRepository(BaseRepository):
    async def has_active_maintenance(self, app_id: UUID, now: datetime) -> bool:
        """True if the app is inside an in-progress or currently scheduled window."""
        result = await self.session.execute(
            select(StatusMaintenance.id)
            .where(StatusMaintenance.app_id == app_id)
            .where(
                or_(
                    StatusMaintenance.status == MaintenanceStatus.IN_PROGRESS,
                    and_(
                        StatusMaintenance.status == MaintenanceStatus.SCHEDULED,
                        StatusMaintenance.starts_at <= now,
                        StatusMaintenance.ends_at > now,
                    ),
                )
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None
