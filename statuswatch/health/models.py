"""Value types passed between the check executor, status engine and scheduler."""

from dataclasses import dataclass
from uuid import UUID

from statuswatch.models.entity import CheckType, EntityKind, EntityStatus


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a single probe.

    Attributes:
        success: Whether the probe passed
        message: Human readable outcome, including latency on success
    """

    success: bool
    message: str


@dataclass(frozen=True)
class TriggerResult:
    """Outcome of a manual "run now" request.

    Attributes:
        success: Whether the check ran and passed
        message: Check message, or why the check could not run
        duration_ms: Wall time of the check, None if it did not run
    """

    success: bool
    message: str
    duration_ms: int | None = None


@dataclass(frozen=True)
class CheckJob:
    """Snapshot of an entity's check configuration taken when it is enqueued."""

    kind: EntityKind
    entity_id: UUID
    name: str
    check_type: CheckType | str | None
    target: str | None
    timeout_seconds: int
    expected_status: int | None

    @property
    def key(self) -> tuple[EntityKind, UUID]:
        return (self.kind, self.entity_id)


@dataclass(frozen=True)
class StatusTransition:
    previous: EntityStatus
    current: EntityStatus
