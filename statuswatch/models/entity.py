"""Monitored entities: status apps and their components."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from statuswatch.core.clock import utcnow
from statuswatch.db.database import Base


class EntityStatus(str, Enum):
    """Operational status, ordered by severity (maintenance is orthogonal)."""

    OPERATIONAL = "OPERATIONAL"
    DEGRADED_PERFORMANCE = "DEGRADED_PERFORMANCE"
    PARTIAL_OUTAGE = "PARTIAL_OUTAGE"
    MAJOR_OUTAGE = "MAJOR_OUTAGE"
    UNDER_MAINTENANCE = "UNDER_MAINTENANCE"


class CheckType(str, Enum):
    """Kind of health probe configured for an entity."""

    NONE = "NONE"
    PING = "PING"
    HTTP_GET = "HTTP_GET"
    HEALTH_ENDPOINT = "HEALTH_ENDPOINT"
    TCP_PORT = "TCP_PORT"


class EntityKind(str, Enum):
    APP = "app"
    COMPONENT = "component"


class HealthCheckMixin:
    """Check configuration and runtime check state shared by apps and components."""

    status: Mapped[EntityStatus] = mapped_column(
        String(30), default=EntityStatus.OPERATIONAL, index=True
    )

    # Check configuration
    check_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    check_type: Mapped[CheckType] = mapped_column(String(30), default=CheckType.NONE)
    check_target: Mapped[str | None] = mapped_column(String(500), nullable=True)
    check_interval_seconds: Mapped[int | None] = mapped_column(Integer, default=60, nullable=True)
    check_timeout_seconds: Mapped[int | None] = mapped_column(Integer, default=10, nullable=True)
    check_expected_status: Mapped[int | None] = mapped_column(Integer, default=200, nullable=True)
    check_failure_threshold: Mapped[int | None] = mapped_column(Integer, default=3, nullable=True)

    # Runtime state, written only by the status engine
    last_check_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_check_success: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    last_check_message: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    consecutive_failures: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


class StatusApp(HealthCheckMixin, Base):
    """A monitored application shown on the status page."""

    __tablename__ = "status_apps"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    slug: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)

    kind = EntityKind.APP

    def __init__(self, **kwargs):
        kwargs.setdefault("status", EntityStatus.OPERATIONAL)
        kwargs.setdefault("check_enabled", False)
        kwargs.setdefault("check_type", CheckType.NONE)
        kwargs.setdefault("consecutive_failures", 0)
        super().__init__(**kwargs)


class StatusComponent(HealthCheckMixin, Base):
    """A sub-component of an app; may inherit health checking from its app."""

    __tablename__ = "status_components"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    app_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("status_apps.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(255))
    position: Mapped[int] = mapped_column(Integer, default=0)
    check_inherit_from_app: Mapped[bool] = mapped_column(Boolean, default=True)

    kind = EntityKind.COMPONENT

    def __init__(self, **kwargs):
        kwargs.setdefault("status", EntityStatus.OPERATIONAL)
        kwargs.setdefault("check_enabled", False)
        kwargs.setdefault("check_type", CheckType.NONE)
        kwargs.setdefault("check_inherit_from_app", True)
        kwargs.setdefault("consecutive_failures", 0)
        super().__init__(**kwargs)
