"""Worker setup and lifecycle management for the monitoring jobs.

One APScheduler job per periodic activity:

    health_check_tick        every N seconds (settings, default 10)
    log_metric_aggregation   second 5 of every minute
    alert_rule_evaluation    second 30 of every minute
    uptime_history_daily     00:05 every day
    log_retention            02:00 every day

Each job wrapper catches and logs its own errors so the next run still happens.
"""

import logging
from datetime import timezone
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import sessionmaker

from statuswatch.alerts.evaluator import AlertRuleEvaluator
from statuswatch.config import Settings, settings
from statuswatch.db.database import async_session
from statuswatch.health.checkers import CheckExecutor
from statuswatch.health.scheduler import HealthCheckScheduler
from statuswatch.health.settings import (
    HealthCheckSettings,
    SettingsProvider,
    create_settings_provider,
)
from statuswatch.health.status_engine import StatusEngine
from statuswatch.incidents.notifier import SubscriberNotifier
from statuswatch.incidents.service import IncidentService
from statuswatch.metrics.aggregator import LogMetricAggregator
from statuswatch.metrics.retention import LogRetentionCleaner
from statuswatch.models.alert_rule import NotificationType
from statuswatch.notifications.channels import build_channels
from statuswatch.notifications.hub import NotificationHub
from statuswatch.uptime.calculator import UptimeHistoryCalculator, resolve_zone

logger = logging.getLogger(__name__)

HEALTH_CHECK_JOB_ID = "health_check_tick"

# Global instances
_scheduler: AsyncIOScheduler | None = None
_session_factory: sessionmaker | None = None
_config: Settings | None = None
_settings_provider: SettingsProvider | None = None
_notification_hub: NotificationHub | None = None
_health_scheduler: HealthCheckScheduler | None = None
_aggregator: LogMetricAggregator | None = None
_evaluator: AlertRuleEvaluator | None = None
_uptime_calculator: UptimeHistoryCalculator | None = None


async def _run_health_check_tick() -> None:
    """Scheduled job: enqueue due health checks."""
    if _health_scheduler is None:
        return
    try:
        await _health_scheduler.run_due_checks()
    except Exception as e:
        logger.exception("Health check tick failed: %s", e)


async def _run_log_aggregation() -> None:
    """Scheduled job: aggregate the previous minute of raw logs."""
    if _aggregator is None:
        return
    try:
        await _aggregator.aggregate_recent()
    except Exception as e:
        logger.exception("Log metric aggregation failed: %s", e)


async def _run_alert_evaluation() -> None:
    """Scheduled job: evaluate active alert rules."""
    if _evaluator is None:
        return
    try:
        await _evaluator.evaluate_all()
    except Exception as e:
        logger.exception("Alert rule evaluation failed: %s", e)


async def _run_uptime_history() -> None:
    """Scheduled job: record yesterday's uptime."""
    if _uptime_calculator is None:
        return
    try:
        records = await _uptime_calculator.calculate_daily()
        if records:
            logger.info("Recorded %d uptime history records", len(records))
    except Exception as e:
        logger.exception("Uptime history calculation failed: %s", e)


async def _run_log_retention() -> None:
    """Scheduled job: delete raw logs past the retention period."""
    if _session_factory is None or _config is None:
        return
    try:
        async with _session_factory() as session:
            cleaner = LogRetentionCleaner(session)
            await cleaner.cleanup(retention_days=_config.log_retention_days)
    except Exception as e:
        logger.exception("Log retention cleanup failed: %s", e)


def build_job_scheduler(tick_seconds: int, config: Settings) -> AsyncIOScheduler:
    """Create the APScheduler instance with every monitoring job registered."""
    scheduler = AsyncIOScheduler(timezone=timezone.utc)
    zone = resolve_zone(config.uptime_timezone)

    scheduler.add_job(
        _run_health_check_tick,
        IntervalTrigger(seconds=tick_seconds),
        id=HEALTH_CHECK_JOB_ID,
        name="Enqueue due health checks",
    )

    # Second 5 leaves time for the previous minute's logs to land
    scheduler.add_job(
        _run_log_aggregation,
        CronTrigger(second=5),
        id="log_metric_aggregation",
        name="Aggregate log metrics",
    )

    scheduler.add_job(
        _run_alert_evaluation,
        CronTrigger(second=30),
        id="alert_rule_evaluation",
        name="Evaluate alert rules",
    )

    scheduler.add_job(
        _run_uptime_history,
        CronTrigger(hour=0, minute=5, timezone=zone),
        id="uptime_history_daily",
        name="Calculate daily uptime history",
    )

    scheduler.add_job(
        _run_log_retention,
        CronTrigger(hour=2, minute=0, timezone=zone),
        id="log_retention",
        name="Delete old raw logs",
    )
    return scheduler


async def init_workers(
    config: Settings | None = None,
    session_factory: sessionmaker | None = None,
    start_jobs: bool = True,
) -> None:
    """Initialize the monitoring components and scheduled jobs.

    Args:
        config: Application settings, defaults to the global settings
        session_factory: Session factory, defaults to the application's
        start_jobs: Start the APScheduler jobs (False builds components only)
    """
    global _scheduler, _session_factory, _config, _settings_provider, _notification_hub
    global _health_scheduler, _aggregator, _evaluator, _uptime_calculator

    logger.info("Initializing monitoring workers...")
    _config = config or settings
    _session_factory = session_factory or async_session

    channels = build_channels(_config)
    if NotificationType.EMAIL in channels:
        _notification_hub = NotificationHub(channels=channels)
        await _notification_hub.start(num_workers=2)
    else:
        logger.info("SMTP not configured, subscriber emails will only be logged")
        _notification_hub = None

    _settings_provider = create_settings_provider(_config, _session_factory)
    health_settings = await _settings_provider.get_settings()

    incident_service = IncidentService(SubscriberNotifier(_notification_hub))
    engine = StatusEngine(
        incident_service=incident_service,
        default_failure_threshold=_config.health_check_default_failure_threshold,
    )
    _health_scheduler = HealthCheckScheduler(
        session_factory=_session_factory,
        settings_provider=_settings_provider,
        executor=CheckExecutor(),
        engine=engine,
    )
    await _health_scheduler.start(pool_size=health_settings.pool_size)

    _aggregator = LogMetricAggregator(_session_factory)
    _evaluator = AlertRuleEvaluator(_session_factory, channels)
    _uptime_calculator = UptimeHistoryCalculator(
        _session_factory,
        timezone_name=_config.uptime_timezone,
        enabled=_config.uptime_history_enabled,
    )

    if start_jobs:
        _scheduler = build_job_scheduler(health_settings.scheduler_interval_seconds, _config)
        _scheduler.start()
    logger.info("Monitoring workers initialized")


async def shutdown_workers() -> None:
    """Shutdown all workers and scheduled jobs."""
    global _scheduler, _notification_hub, _health_scheduler
    global _aggregator, _evaluator, _uptime_calculator, _settings_provider

    logger.info("Shutting down monitoring workers...")

    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None

    if _health_scheduler is not None:
        await _health_scheduler.stop()
        _health_scheduler = None

    if _notification_hub is not None:
        await _notification_hub.stop()
        _notification_hub = None

    _aggregator = None
    _evaluator = None
    _uptime_calculator = None
    _settings_provider = None
    logger.info("Monitoring workers shutdown complete")


async def update_health_check_settings(**changes: Any) -> HealthCheckSettings:
    """Persist new health check settings and apply the tick interval.

    A new pool size takes effect the next time the workers are started.

    Raises:
        RuntimeError: Workers not initialized
        ValueError: Unknown setting or invalid value
    """
    provider = get_settings_provider()
    previous = await provider.get_settings()
    updated = await provider.update_settings(**changes)

    if (
        _scheduler is not None
        and updated.scheduler_interval_seconds != previous.scheduler_interval_seconds
    ):
        _scheduler.reschedule_job(
            HEALTH_CHECK_JOB_ID,
            trigger=IntervalTrigger(seconds=updated.scheduler_interval_seconds),
        )
        logger.info(
            "Health check tick rescheduled to every %d seconds",
            updated.scheduler_interval_seconds,
        )
    return updated


def _require(instance: Any, name: str) -> Any:
    if instance is None:
        raise RuntimeError(f"{name} not initialized, call init_workers() first")
    return instance


def get_settings_provider() -> SettingsProvider:
    return _require(_settings_provider, "Settings provider")


def get_health_check_scheduler() -> HealthCheckScheduler:
    return _require(_health_scheduler, "Health check scheduler")


def get_alert_evaluator() -> AlertRuleEvaluator:
    return _require(_evaluator, "Alert rule evaluator")


def get_uptime_calculator() -> UptimeHistoryCalculator:
    return _require(_uptime_calculator, "Uptime history calculator")


def get_job_scheduler() -> AsyncIOScheduler | None:
    return _scheduler
