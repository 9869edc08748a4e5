# statuswatch/db/repositories/log_repo.py
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select

from statuswatch.db.repositories.base import BaseRepository
from statuswatch.models.log import LogEntry


@dataclass(frozen=True)
class LogCount:
    """Number of raw logs for one (tenant, service, level) group."""

    tenant_id: UUID | None
    service: str
    level: str
    count: int


class LogRepository(BaseRepository):
    async def count_by_group(self, start: datetime, end: datetime) -> list[LogCount]:
        """Count logs with start <= log_timestamp < end, grouped by tenant, service and level."""
        result = await self.session.execute(
            select(
                LogEntry.tenant_id,
                LogEntry.service,
                LogEntry.level,
                func.count(LogEntry.id),
            )
            .where(LogEntry.log_timestamp >= start)
            .where(LogEntry.log_timestamp < end)
            .group_by(LogEntry.tenant_id, LogEntry.service, LogEntry.level)
        )
        return [
            LogCount(tenant_id=row[0], service=row[1], level=row[2], count=row[3])
            for row in result.all()
        ]

    async def delete_older_than(self, cutoff: datetime) -> int:
        result = await self.session.execute(
            delete(LogEntry).where(LogEntry.log_timestamp < cutoff)
        )
        return result.rowcount
