"""Health check scheduling and the worker pool that runs the checks.

Each tick selects the entities whose check is due and puts a CheckJob on a
bounded queue drained by a fixed number of worker tasks. Every worker runs
the probe, then folds the result into the entity inside its own transaction.

An entity is never checked by two workers at once: its key stays in the
in-flight set from enqueue until its result is recorded, and ticks or manual
triggers that meet an in-flight key leave it alone. All access to the set
happens on the event loop thread, so no lock is needed.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import sessionmaker

from statuswatch.core.clock import ensure_utc, utcnow
from statuswatch.db.repositories.entity_repo import Entity, EntityRepository
from statuswatch.health.checkers import CheckExecutor
from statuswatch.health.models import CheckJob, CheckResult, TriggerResult
from statuswatch.health.settings import HealthCheckSettings, SettingsProvider
from statuswatch.health.status_engine import StatusEngine
from statuswatch.models.entity import CheckType, EntityKind, StatusComponent

logger = logging.getLogger(__name__)


def check_eligibility(entity: Entity) -> str | None:
    """Why an entity cannot be checked, or None if it can.

    Components that inherit from their app are covered by the app's check.
    """
    kind = entity.kind.value
    if isinstance(entity, StatusComponent) and entity.check_inherit_from_app:
        return "Component inherits check from app, trigger the app check instead"
    if not entity.check_enabled:
        return f"Health checking is not enabled for this {kind}"
    if entity.check_type is None or entity.check_type == CheckType.NONE:
        return f"No check type configured for this {kind}"
    if entity.check_target is None or not entity.check_target.strip():
        return f"No check URL configured for this {kind}"
    return None


def is_due(entity: Entity, now: datetime, default_interval_seconds: int) -> bool:
    """Never-checked entities are always due."""
    last_check_at = ensure_utc(entity.last_check_at)
    if last_check_at is None:
        return True
    interval = entity.check_interval_seconds or default_interval_seconds
    return now >= last_check_at + timedelta(seconds=interval)


class HealthCheckScheduler:
    def __init__(
        self,
        session_factory: sessionmaker,
        settings_provider: SettingsProvider,
        executor: CheckExecutor | None = None,
        engine: StatusEngine | None = None,
        max_queue_size: int = 1000,
    ):
        self.session_factory = session_factory
        self.settings_provider = settings_provider
        self.executor = executor or CheckExecutor()
        self.engine = engine or StatusEngine()

        self._queue: asyncio.Queue[CheckJob] = asyncio.Queue(maxsize=max_queue_size)
        self._workers: list[asyncio.Task[None]] = []
        self._in_flight: set[tuple[EntityKind, UUID]] = set()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pool_size(self) -> int:
        return len(self._workers)

    def is_in_flight(self, kind: EntityKind, entity_id: UUID) -> bool:
        return (kind, entity_id) in self._in_flight

    async def start(self, pool_size: int | None = None) -> None:
        """Start the worker pool.

        Args:
            pool_size: Number of workers; defaults to the current settings value
        """
        if self._running:
            return
        if pool_size is None:
            pool_size = (await self.settings_provider.get_settings()).pool_size

        self._running = True
        for worker_id in range(pool_size):
            task = asyncio.create_task(
                self._worker(worker_id), name=f"health_check_worker_{worker_id}"
            )
            self._workers.append(task)
        logger.info("Health check scheduler started with %d workers", pool_size)

    async def stop(self) -> None:
        """Cancel the workers and drop any jobs still queued."""
        self._running = False

        for worker in self._workers:
            worker.cancel()
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()

        while not self._queue.empty():
            job = self._queue.get_nowait()
            self._in_flight.discard(job.key)
            self._queue.task_done()
        logger.info("Health check scheduler stopped")

    async def join(self) -> None:
        """Wait until every queued check has been processed."""
        await self._queue.join()

    async def run_due_checks(self, now: datetime | None = None) -> int:
        """Scheduler tick: enqueue every eligible entity whose check is due.

        Returns:
            Number of checks enqueued; 0 when checking is globally disabled
        """
        settings = await self.settings_provider.get_settings()
        if not settings.enabled:
            logger.debug("Health checks disabled, skipping tick")
            return 0

        now = now or utcnow()
        jobs = await self._collect_jobs(settings, now=now)
        submitted = self._submit_all(jobs)
        if submitted:
            logger.debug("Enqueued %d due health checks", submitted)
        return submitted

    async def trigger_all_checks(self) -> int:
        """Enqueue every eligible entity immediately, ignoring due times."""
        logger.info("Manual trigger: running all health checks")
        settings = await self.settings_provider.get_settings()
        jobs = await self._collect_jobs(settings, now=None)
        submitted = self._submit_all(jobs)
        logger.info("Manual trigger: submitted %d health checks", submitted)
        return submitted

    async def trigger_entity_check(self, entity_id: UUID) -> TriggerResult:
        """Check one app or component now and wait for the result."""
        logger.info("Manual trigger: running health check for %s", entity_id)
        settings = await self.settings_provider.get_settings()

        async with self.session_factory() as session:
            repo = EntityRepository(session)
            entity: Entity | None = await repo.get_app(entity_id)
            if entity is None:
                entity = await repo.get_component(entity_id)
            if entity is None:
                return TriggerResult(success=False, message=f"Entity not found: {entity_id}")

            reason = check_eligibility(entity)
            if reason is not None:
                return TriggerResult(success=False, message=reason)
            job = self._snapshot(entity, settings)

        if job.key in self._in_flight:
            return TriggerResult(
                success=False, message=f"A check for this {job.kind.value} is already running"
            )

        self._in_flight.add(job.key)
        start = time.perf_counter()
        try:
            result = await self._execute(job)
            await self._record(job, result)
        except Exception as e:
            logger.error("Error during manual check of %s %s: %s", job.kind.value, job.name, e)
            duration_ms = int((time.perf_counter() - start) * 1000)
            return TriggerResult(
                success=False, message=f"Check error: {e}", duration_ms=duration_ms
            )
        finally:
            self._in_flight.discard(job.key)

        duration_ms = int((time.perf_counter() - start) * 1000)
        return TriggerResult(
            success=result.success, message=result.message, duration_ms=duration_ms
        )

    async def _collect_jobs(
        self, settings: HealthCheckSettings, now: datetime | None
    ) -> list[CheckJob]:
        """Snapshot eligible entities; with now given, only those that are due."""
        async with self.session_factory() as session:
            repo = EntityRepository(session)
            entities: list[Entity] = [*await repo.list_apps(), *await repo.list_components()]

        jobs = []
        for entity in entities:
            if check_eligibility(entity) is not None:
                continue
            if now is not None and not is_due(entity, now, settings.default_interval_seconds):
                continue
            jobs.append(self._snapshot(entity, settings))
        return jobs

    def _snapshot(self, entity: Entity, settings: HealthCheckSettings) -> CheckJob:
        return CheckJob(
            kind=entity.kind,
            entity_id=entity.id,
            name=entity.name,
            check_type=entity.check_type,
            target=entity.check_target,
            timeout_seconds=entity.check_timeout_seconds or settings.default_timeout_seconds,
            expected_status=entity.check_expected_status,
        )

    def _submit_all(self, jobs: list[CheckJob]) -> int:
        return sum(1 for job in jobs if self._submit(job))

    def _submit(self, job: CheckJob) -> bool:
        if job.key in self._in_flight:
            logger.debug("%s %s still being checked, skipping", job.kind.value, job.name)
            return False
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.warning("Check queue full, skipping %s %s", job.kind.value, job.name)
            return False
        self._in_flight.add(job.key)
        return True

    async def _worker(self, worker_id: int) -> None:
        logger.debug("Health check worker %d starting", worker_id)
        while self._running:
            try:
                await self._process_one()
            except asyncio.CancelledError:
                logger.debug("Health check worker %d cancelled", worker_id)
                raise
            except Exception as e:
                logger.exception("Health check worker %d error: %s", worker_id, e)
        logger.debug("Health check worker %d stopped", worker_id)

    async def _process_one(self) -> None:
        try:
            job = await asyncio.wait_for(self._queue.get(), timeout=1.0)
        except TimeoutError:
            return

        try:
            result = await self._execute(job)
            await self._record(job, result)
        except Exception as e:
            logger.error("Error recording check of %s %s: %s", job.kind.value, job.name, e)
        finally:
            self._in_flight.discard(job.key)
            self._queue.task_done()

    async def _execute(self, job: CheckJob) -> CheckResult:
        logger.debug("Checking %s: %s (%s)", job.kind.value, job.name, job.check_type)
        try:
            result = await self.executor.run(
                job.check_type, job.target, job.timeout_seconds, job.expected_status
            )
        except Exception as e:
            logger.error("Error checking %s %s: %s", job.kind.value, job.name, e)
            return CheckResult(success=False, message=f"Check error: {e}")

        if result.success:
            logger.debug("%s %s check successful: %s", job.kind.value, job.name, result.message)
        else:
            logger.warning("%s %s check failed: %s", job.kind.value, job.name, result.message)
        return result

    async def _record(self, job: CheckJob, result: CheckResult) -> None:
        async with self.session_factory() as session:
            entity = await EntityRepository(session).get_for_update(job.kind, job.entity_id)
            if entity is None:
                logger.warning(
                    "%s %s disappeared before its result was recorded",
                    job.kind.value,
                    job.entity_id,
                )
                return
            await self.engine.apply_result(session, entity, result)
            await session.commit()
