"""Daily uptime history for apps and components.

For each entity and calendar day the minutes covered by public incidents are
split into outage minutes (CRITICAL incidents) and degraded minutes (any
other severity). The rest of the 1440-minute day counts as operational.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from statuswatch.core.clock import ensure_utc, utcnow
from statuswatch.db.repositories.entity_repo import EntityRepository
from statuswatch.db.repositories.incident_repo import IncidentRepository
from statuswatch.db.repositories.uptime_repo import UptimeRepository
from statuswatch.models.entity import StatusApp
from statuswatch.models.incident import IncidentSeverity, StatusIncident
from statuswatch.models.uptime import UptimeHistory, UptimeStatus

logger = logging.getLogger(__name__)

MINUTES_IN_DAY = 1440
OUTAGE_SEVERITIES = frozenset({IncidentSeverity.CRITICAL})
PERCENT_QUANTUM = Decimal("0.001")


@dataclass(frozen=True)
class DaySummary:
    outage_minutes: int
    degraded_minutes: int
    operational_minutes: int
    uptime_percentage: Decimal
    status: UptimeStatus
    incident_count: int


def resolve_zone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def day_bounds(day: date, zone: tzinfo) -> tuple[datetime, datetime]:
    """[start, end) of a local calendar day, expressed in UTC."""
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def incident_minutes(incident: StatusIncident, start: datetime, end: datetime) -> int:
    """Whole minutes of the incident inside [start, end); unresolved runs to end."""
    started_at = max(ensure_utc(incident.started_at), start)
    resolved_at = ensure_utc(incident.resolved_at)
    finished_at = min(resolved_at, end) if resolved_at is not None else end
    if finished_at <= started_at:
        return 0
    return int((finished_at - started_at).total_seconds() // 60)


def is_outage(incident: StatusIncident) -> bool:
    return IncidentSeverity(incident.severity) in OUTAGE_SEVERITIES


def summarize_day(
    incidents: list[StatusIncident], start: datetime, end: datetime
) -> DaySummary:
    outage = 0
    degraded = 0
    for incident in incidents:
        minutes = incident_minutes(incident, start, end)
        if is_outage(incident):
            outage += minutes
        else:
            degraded += minutes

    # Overlapping incidents can add up to more than a day
    outage = min(outage, MINUTES_IN_DAY)
    degraded = min(degraded, MINUTES_IN_DAY - outage)
    operational = MINUTES_IN_DAY - outage - degraded

    percentage = (Decimal(operational) * 100 / Decimal(MINUTES_IN_DAY)).quantize(
        PERCENT_QUANTUM, rounding=ROUND_HALF_UP
    )
    if outage > 0:
        status = UptimeStatus.MAJOR_OUTAGE
    elif degraded > 0:
        status = UptimeStatus.DEGRADED
    else:
        status = UptimeStatus.OPERATIONAL

    return DaySummary(
        outage_minutes=outage,
        degraded_minutes=degraded,
        operational_minutes=operational,
        uptime_percentage=percentage,
        status=status,
        incident_count=len(incidents),
    )


class UptimeHistoryCalculator:
    def __init__(
        self,
        session_factory: sessionmaker,
        timezone_name: str = "UTC",
        enabled: bool = True,
    ):
        self.session_factory = session_factory
        self.zone = resolve_zone(timezone_name)
        self.enabled = enabled

    def today(self) -> date:
        return utcnow().astimezone(self.zone).date()

    async def calculate_daily(self, today: date | None = None) -> list[UptimeHistory]:
        """Record yesterday's uptime for every app and component."""
        if not self.enabled:
            logger.debug("Uptime history disabled, skipping daily calculation")
            return []
        target = (today or self.today()) - timedelta(days=1)
        logger.info("Calculating uptime history for %s", target)
        return await self.calculate_for_date(target)

    async def calculate_for_date(self, day: date) -> list[UptimeHistory]:
        """Upsert one record per app and component for the given day.

        Each app, together with its components, is written in its own
        transaction; a failing app is logged and skipped.
        """
        start, end = day_bounds(day, self.zone)
        async with self.session_factory() as session:
            app_ids = [app.id for app in await EntityRepository(session).list_apps()]

        records: list[UptimeHistory] = []
        for app_id in app_ids:
            try:
                async with self.session_factory() as session:
                    records.extend(await self._calculate_app(session, app_id, day, start, end))
                    await session.commit()
            except Exception as e:
                logger.error("Error calculating uptime for app %s on %s: %s", app_id, day, e)
        return records

    async def backfill(self, days: int, today: date | None = None) -> int:
        """Recalculate each of the last N days, oldest first.

        Returns:
            Number of days processed successfully
        """
        today = today or self.today()
        processed = 0
        for offset in range(days, 0, -1):
            day = today - timedelta(days=offset)
            try:
                await self.calculate_for_date(day)
                processed += 1
            except Exception as e:
                logger.error("Uptime backfill failed for %s: %s", day, e)
        logger.info("Uptime backfill processed %d of %d days", processed, days)
        return processed

    async def _calculate_app(
        self,
        session: AsyncSession,
        app_id: UUID,
        day: date,
        start: datetime,
        end: datetime,
    ) -> list[UptimeHistory]:
        entities = EntityRepository(session)
        incidents = IncidentRepository(session)
        uptime = UptimeRepository(session)

        app: StatusApp | None = await entities.get_app(app_id)
        if app is None:
            return []

        app_incidents = await incidents.find_public_overlapping(app.id, start, end)
        summary = summarize_day(app_incidents, start, end)
        records = [await uptime.upsert(self._record(app.id, None, day, summary))]

        for component in await entities.list_components_for_app(app.id):
            component_incidents = await incidents.find_public_overlapping_for_component(
                component.id, start, end
            )
            summary = summarize_day(component_incidents, start, end)
            records.append(await uptime.upsert(self._record(app.id, component.id, day, summary)))
        return records

    def _record(
        self, app_id: UUID, component_id: UUID | None, day: date, summary: DaySummary
    ) -> UptimeHistory:
        return UptimeHistory(
            app_id=app_id,
            component_id=component_id,
            record_date=day,
            status=summary.status,
            uptime_percentage=summary.uptime_percentage,
            total_minutes=MINUTES_IN_DAY,
            operational_minutes=summary.operational_minutes,
            degraded_minutes=summary.degraded_minutes,
            outage_minutes=summary.outage_minutes,
            incident_count=summary.incident_count,
        )
