# statuswatch/db/repositories/metric_repo.py
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from statuswatch.db.repositories.base import BaseRepository
from statuswatch.models.log import BucketType, LogMetric


def _match(column, value):
    # NULL never compares equal in SQL, so a missing tenant needs IS NULL
    return column.is_(None) if value is None else column == value


class MetricRepository(BaseRepository):
    """Store of per-bucket log counts."""

    async def get(
        self,
        tenant_id: UUID | None,
        service: str,
        level: str,
        bucket: datetime,
        bucket_type: BucketType = BucketType.MINUTE,
    ) -> LogMetric | None:
        result = await self.session.execute(
            select(LogMetric)
            .where(_match(LogMetric.tenant_id, tenant_id))
            .where(LogMetric.service == service)
            .where(LogMetric.level == level)
            .where(LogMetric.bucket == bucket)
            .where(LogMetric.bucket_type == bucket_type)
        )
        return result.scalar_one_or_none()

    async def upsert_count(
        self,
        tenant_id: UUID | None,
        service: str,
        level: str,
        bucket: datetime,
        count: int,
        bucket_type: BucketType = BucketType.MINUTE,
    ) -> LogMetric:
        """Set the count for a bucket key, creating the row if needed.

        The stored count is replaced, never incremented, so recomputing a
        bucket yields the same value.
        """
        metric = await self.get(tenant_id, service, level, bucket, bucket_type)
        if metric is None:
            metric = LogMetric(
                tenant_id=tenant_id,
                service=service,
                level=level,
                bucket=bucket,
                bucket_type=bucket_type,
                count=count,
            )
            self.session.add(metric)
        else:
            metric.count = count
        await self.session.flush()
        return metric

    async def sum_counts(
        self,
        service: str | None,
        level: str | None,
        since: datetime,
        until: datetime,
        tenant_id: UUID | None = None,
    ) -> int:
        """Sum counts for buckets in [since, until]; None filters match everything."""
        query = (
            select(func.coalesce(func.sum(LogMetric.count), 0))
            .where(LogMetric.bucket >= since)
            .where(LogMetric.bucket <= until)
        )
        if service is not None:
            query = query.where(LogMetric.service == service)
        if level is not None:
            query = query.where(LogMetric.level == level)
        if tenant_id is not None:
            query = query.where(LogMetric.tenant_id == tenant_id)
        result = await self.session.execute(query)
        return int(result.scalar_one())
