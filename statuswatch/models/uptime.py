import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from statuswatch.core.clock import utcnow
from statuswatch.db.database import Base


class UptimeStatus(str, Enum):
    OPERATIONAL = "OPERATIONAL"
    DEGRADED = "DEGRADED"
    MAJOR_OUTAGE = "MAJOR_OUTAGE"


class UptimeHistory(Base):
    """Daily uptime record for an app (component_id null) or a component."""

    __tablename__ = "status_uptime_history"
    __table_args__ = (Index("idx_uptime_app_date", "app_id", "component_id", "record_date"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    app_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("status_apps.id", ondelete="CASCADE")
    )
    component_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("status_components.id", ondelete="CASCADE"), nullable=True
    )
    record_date: Mapped[date] = mapped_column(Date)

    status: Mapped[UptimeStatus] = mapped_column(String(20), default=UptimeStatus.OPERATIONAL)
    uptime_percentage: Mapped[Decimal] = mapped_column(Numeric(6, 3), default=Decimal("100.000"))
    total_minutes: Mapped[int] = mapped_column(Integer, default=1440)
    operational_minutes: Mapped[int] = mapped_column(Integer, default=1440)
    degraded_minutes: Mapped[int] = mapped_column(Integer, default=0)
    outage_minutes: Mapped[int] = mapped_column(Integer, default=0)
    incident_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
