"""Incident models: incidents, their timeline and affected components."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from statuswatch.core.clock import utcnow
from statuswatch.db.database import Base


class IncidentSeverity(str, Enum):
    MINOR = "MINOR"
    MAJOR = "MAJOR"
    CRITICAL = "CRITICAL"


# Used to decide whether an automated incident needs escalating
SEVERITY_RANK: dict[IncidentSeverity, int] = {
    IncidentSeverity.MINOR: 1,
    IncidentSeverity.MAJOR: 2,
    IncidentSeverity.CRITICAL: 3,
}


class IncidentStatus(str, Enum):
    INVESTIGATING = "INVESTIGATING"
    IDENTIFIED = "IDENTIFIED"
    MONITORING = "MONITORING"
    RESOLVED = "RESOLVED"


class IncidentOrigin(str, Enum):
    """Who owns the incident lifecycle."""

    AUTOMATED = "AUTOMATED"
    MANUAL = "MANUAL"


class StatusIncident(Base):
    __tablename__ = "status_incidents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    app_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("status_apps.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[IncidentStatus] = mapped_column(
        String(20), default=IncidentStatus.INVESTIGATING, index=True
    )
    severity: Mapped[IncidentSeverity] = mapped_column(String(20), default=IncidentSeverity.MINOR)
    origin: Mapped[IncidentOrigin] = mapped_column(String(20), default=IncidentOrigin.MANUAL)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("status", IncidentStatus.INVESTIGATING)
        kwargs.setdefault("origin", IncidentOrigin.MANUAL)
        kwargs.setdefault("is_public", True)
        super().__init__(**kwargs)

    @property
    def is_open(self) -> bool:
        return self.status != IncidentStatus.RESOLVED


class StatusIncidentUpdate(Base):
    """Timeline entry posted on an incident."""

    __tablename__ = "status_incident_updates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    incident_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("status_incidents.id", ondelete="CASCADE"), index=True
    )
    status: Mapped[IncidentStatus] = mapped_column(String(20))
    message: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class StatusIncidentComponent(Base):
    """Links an incident to a component it affects."""

    __tablename__ = "status_incident_components"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    incident_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("status_incidents.id", ondelete="CASCADE"), index=True
    )
    component_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("status_components.id", ondelete="CASCADE"), index=True
    )
