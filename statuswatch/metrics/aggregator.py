"""Rolls raw logs up into per-minute metric buckets."""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import sessionmaker

from statuswatch.core.clock import previous_minute_bucket, utcnow
from statuswatch.db.repositories.log_repo import LogRepository
from statuswatch.db.repositories.metric_repo import MetricRepository
from statuswatch.models.log import BucketType

logger = logging.getLogger(__name__)

BUCKET_WIDTH = timedelta(minutes=1)


class LogMetricAggregator:
    """Counts logs per (tenant, service, level) for one completed minute.

    Each group's total replaces whatever the bucket held, so aggregating the
    same minute again leaves the stored counts unchanged.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def aggregate_recent(self, now: datetime | None = None) -> int:
        """Aggregate the last fully completed minute before now."""
        bucket = previous_minute_bucket(now or utcnow())
        return await self.aggregate_bucket(bucket)

    async def aggregate_bucket(self, bucket: datetime) -> int:
        """Aggregate logs in [bucket, bucket + 1 minute).

        Returns:
            Number of (tenant, service, level) groups written
        """
        end = bucket + BUCKET_WIDTH
        async with self.session_factory() as session:
            counts = await LogRepository(session).count_by_group(bucket, end)
            metrics = MetricRepository(session)
            for group in counts:
                await metrics.upsert_count(
                    tenant_id=group.tenant_id,
                    service=group.service,
                    level=group.level,
                    bucket=bucket,
                    count=group.count,
                    bucket_type=BucketType.MINUTE,
                )
            await session.commit()

        if counts:
            logger.debug("Aggregated %d log metric groups for bucket %s", len(counts), bucket)
        return len(counts)
