from statuswatch.models.alert_rule import AlertRule, NotificationType
from statuswatch.models.entity import (
    CheckType,
    EntityKind,
    EntityStatus,
    StatusApp,
    StatusComponent,
)
from statuswatch.models.incident import (
    IncidentOrigin,
    IncidentSeverity,
    IncidentStatus,
    StatusIncident,
    StatusIncidentComponent,
    StatusIncidentUpdate,
)
from statuswatch.models.log import BucketType, LogEntry, LogMetric
from statuswatch.models.maintenance import MaintenanceStatus, StatusMaintenance
from statuswatch.models.settings import HealthCheckSetting
from statuswatch.models.subscriber import NotificationSubscriber
from statuswatch.models.uptime import UptimeHistory, UptimeStatus

__all__ = [
    "AlertRule",
    "BucketType",
    "CheckType",
    "EntityKind",
    "EntityStatus",
    "HealthCheckSetting",
    "IncidentOrigin",
    "IncidentSeverity",
    "IncidentStatus",
    "LogEntry",
    "LogMetric",
    "MaintenanceStatus",
    "NotificationSubscriber",
    "NotificationType",
    "StatusApp",
    "StatusComponent",
    "StatusIncident",
    "StatusIncidentComponent",
    "StatusIncidentUpdate",
    "StatusMaintenance",
    "UptimeHistory",
    "UptimeStatus",
]
