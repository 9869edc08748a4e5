"""Retention job for removing old raw log entries."""

import logging
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from statuswatch.core.clock import utcnow
from statuswatch.db.repositories.log_repo import LogRepository

logger = logging.getLogger(__name__)


class LogRetentionCleaner:
    """Deletes raw logs older than the retention period.

    Aggregated metric buckets are kept; only the raw entries go.
    """

    DEFAULT_RETENTION_DAYS = 30

    def __init__(self, session: AsyncSession):
        self.session = session

    async def cleanup(self, retention_days: int | None = None, now: datetime | None = None) -> int:
        """Remove raw logs older than the retention period.

        Args:
            retention_days: Days to retain logs. Defaults to 30.
            now: Reference time, defaults to the current UTC time

        Returns:
            Number of log entries deleted.
        """
        if retention_days is None:
            retention_days = self.DEFAULT_RETENTION_DAYS

        cutoff = (now or utcnow()) - timedelta(days=retention_days)
        count = await LogRepository(self.session).delete_older_than(cutoff)
        await self.session.commit()

        if count > 0:
            logger.info("Cleaned up %d old log entries (retention=%d days)", count, retention_days)

        return count
