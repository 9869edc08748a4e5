"""Derives an entity's status from consecutive check results.

State machine per entity, driven by consecutive failures against the
entity's failure threshold T:

    OPERATIONAL --(T failures)--> DEGRADED_PERFORMANCE --(2T failures)--> MAJOR_OUTAGE
         ^                                  |                                  |
         +------------(any success)---------+----------------------------------+

UNDER_MAINTENANCE is owned by the maintenance workflow and is never entered
or left here.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from statuswatch.core.clock import utcnow
from statuswatch.db.repositories.entity_repo import Entity, EntityRepository
from statuswatch.db.repositories.maintenance_repo import MaintenanceRepository
from statuswatch.health.models import CheckResult, StatusTransition
from statuswatch.incidents.service import IncidentService
from statuswatch.models.entity import EntityKind, EntityStatus, StatusApp
from statuswatch.models.incident import IncidentSeverity

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 3

# Statuses the engine itself puts entities into and may therefore restore
AUTO_STATUSES = frozenset({EntityStatus.DEGRADED_PERFORMANCE, EntityStatus.MAJOR_OUTAGE})


class StatusEngine:
    def __init__(
        self,
        incident_service: IncidentService | None = None,
        default_failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
    ):
        self.incident_service = incident_service or IncidentService()
        self.default_failure_threshold = default_failure_threshold

    def failure_threshold(self, entity: Entity) -> int:
        threshold = entity.check_failure_threshold
        if threshold is None or threshold < 1:
            return self.default_failure_threshold
        return threshold

    async def is_under_maintenance(
        self, session: AsyncSession, entity: Entity, now: datetime
    ) -> bool:
        if entity.status == EntityStatus.UNDER_MAINTENANCE:
            return True
        app_id = entity.id if entity.kind == EntityKind.APP else entity.app_id
        return await MaintenanceRepository(session).has_active_maintenance(app_id, now)

    async def apply_result(
        self,
        session: AsyncSession,
        entity: Entity,
        result: CheckResult,
        now: datetime | None = None,
    ) -> StatusTransition | None:
        """Fold one check result into the entity's state.

        Last-check fields and the failure counter are always updated. Status
        changes, incidents and the component cascade are skipped while the
        entity is under maintenance. The caller owns the transaction.

        Args:
            session: Session the entity was loaded in
            entity: StatusApp or StatusComponent, ideally loaded FOR UPDATE
            result: Outcome of the check
            now: Evaluation time, defaults to the current UTC time

        Returns:
            The status transition made, or None if the status did not change
        """
        now = now or utcnow()
        entity.last_check_at = now
        entity.last_check_success = result.success
        entity.last_check_message = result.message

        if result.success:
            entity.consecutive_failures = 0
        else:
            entity.consecutive_failures = (entity.consecutive_failures or 0) + 1

        if await self.is_under_maintenance(session, entity, now):
            logger.debug(
                "%s %s is under maintenance, status left unchanged", entity.kind.value, entity.name
            )
            return None

        previous = EntityStatus(entity.status)
        if result.success:
            transition = await self._on_success(session, entity, previous, now)
        else:
            transition = await self._on_failure(session, entity, previous, result, now)

        if transition is not None and entity.kind == EntityKind.APP:
            await self._cascade(session, entity, transition)
        return transition

    async def _on_success(
        self, session: AsyncSession, entity: Entity, previous: EntityStatus, now: datetime
    ) -> StatusTransition | None:
        if previous not in AUTO_STATUSES:
            return None

        entity.status = EntityStatus.OPERATIONAL
        logger.info(
            "%s %s auto-restored from %s to OPERATIONAL",
            entity.kind.value.capitalize(),
            entity.name,
            previous.value,
        )
        if isinstance(entity, StatusApp):
            await self.incident_service.resolve_automated_incidents(session, entity, now)
        return StatusTransition(previous=previous, current=EntityStatus.OPERATIONAL)

    async def _on_failure(
        self,
        session: AsyncSession,
        entity: Entity,
        previous: EntityStatus,
        result: CheckResult,
        now: datetime,
    ) -> StatusTransition | None:
        failures = entity.consecutive_failures
        threshold = self.failure_threshold(entity)

        if failures >= threshold * 2:
            if previous == EntityStatus.MAJOR_OUTAGE:
                return None
            current, severity = EntityStatus.MAJOR_OUTAGE, IncidentSeverity.CRITICAL
        elif failures >= threshold:
            if previous in AUTO_STATUSES:
                return None
            current, severity = EntityStatus.DEGRADED_PERFORMANCE, IncidentSeverity.MAJOR
        else:
            return None

        entity.status = current
        logger.warning(
            "%s %s changed to %s after %d consecutive failures",
            entity.kind.value.capitalize(),
            entity.name,
            current.value,
            failures,
        )
        if isinstance(entity, StatusApp):
            await self.incident_service.create_automated_incident(
                session, entity, severity, result.message, now=now
            )
        return StatusTransition(previous=previous, current=current)

    async def _cascade(
        self, session: AsyncSession, app: StatusApp, transition: StatusTransition
    ) -> None:
        """Project an app transition onto its components.

        Entering MAJOR_OUTAGE takes every component down with the app. On
        restore, only components that inherit their check from the app are
        brought back; the others are restored by their own checks.
        """
        if transition.current == EntityStatus.MAJOR_OUTAGE:
            components = await EntityRepository(session).list_components_for_app(app.id)
            for component in components:
                if EntityStatus(component.status) in (
                    EntityStatus.UNDER_MAINTENANCE,
                    EntityStatus.MAJOR_OUTAGE,
                ):
                    continue
                component.status = EntityStatus.MAJOR_OUTAGE
                logger.warning(
                    "Component %s set to MAJOR_OUTAGE with app %s", component.name, app.name
                )
        elif transition.current == EntityStatus.OPERATIONAL:
            components = await EntityRepository(session).list_components_for_app(app.id)
            for component in components:
                if (
                    component.check_inherit_from_app
                    and EntityStatus(component.status) in AUTO_STATUSES
                ):
                    component.status = EntityStatus.OPERATIONAL
                    logger.info(
                        "Component %s restored to OPERATIONAL with app %s",
                        component.name,
                        app.name,
                    )
