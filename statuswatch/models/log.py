"""Raw log entries and the per-minute metric buckets aggregated from them."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, DateTime, Index, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from statuswatch.core.clock import utcnow
from statuswatch.db.database import Base


class BucketType(str, Enum):
    MINUTE = "MINUTE"


class LogEntry(Base):
    """Raw log record ingested by the log hub."""

    __tablename__ = "logs"
    __table_args__ = (Index("idx_logs_timestamp", "log_timestamp"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    log_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    level: Mapped[str] = mapped_column(String(20))
    service: Mapped[str] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text)
    trace_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class LogMetric(Base):
    """Count of log entries for one (tenant, service, level) in one time bucket."""

    __tablename__ = "log_metrics"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "service", "level", "bucket", "bucket_type", name="uq_log_metrics_key"
        ),
        Index("idx_log_metrics_bucket", "bucket"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    service: Mapped[str] = mapped_column(String(255))
    level: Mapped[str] = mapped_column(String(20))
    bucket: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    bucket_type: Mapped[BucketType] = mapped_column(String(10), default=BucketType.MINUTE)
    count: Mapped[int] = mapped_column(BigInteger, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
