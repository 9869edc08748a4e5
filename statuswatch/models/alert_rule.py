import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from statuswatch.core.clock import utcnow
from statuswatch.db.database import Base


class NotificationType(str, Enum):
    """Delivery channel for a notification."""

    EMAIL = "EMAIL"
    SLACK = "SLACK"
    WEBHOOK = "WEBHOOK"


class AlertRule(Base):
    """Threshold rule evaluated against aggregated log metrics.

    A null service or level matches every service or level.
    """

    __tablename__ = "alert_rules"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255))

    # Target filter
    service: Mapped[str | None] = mapped_column(String(255), nullable=True)
    level: Mapped[str | None] = mapped_column(String(20), nullable=True)

    threshold_count: Mapped[int] = mapped_column(BigInteger)
    window_minutes: Mapped[int] = mapped_column(Integer)
    cooldown_minutes: Mapped[int | None] = mapped_column(Integer, default=15, nullable=True)

    notification_type: Mapped[str] = mapped_column(String(20))
    notification_target: Mapped[str] = mapped_column(String(500))

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    last_fired_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def __init__(self, **kwargs):
        kwargs.setdefault("cooldown_minutes", 15)
        kwargs.setdefault("is_active", True)
        super().__init__(**kwargs)
