"""FastAPI dependencies resolving the running monitoring components."""

from fastapi import HTTPException

from statuswatch.alerts.evaluator import AlertRuleEvaluator
from statuswatch.health.scheduler import HealthCheckScheduler
from statuswatch.uptime.calculator import UptimeHistoryCalculator
from statuswatch.workers import setup


def _unavailable(e: RuntimeError) -> HTTPException:
    return HTTPException(status_code=503, detail=str(e))


def health_check_scheduler() -> HealthCheckScheduler:
    try:
        return setup.get_health_check_scheduler()
    except RuntimeError as e:
        raise _unavailable(e) from e


def alert_evaluator() -> AlertRuleEvaluator:
    try:
        return setup.get_alert_evaluator()
    except RuntimeError as e:
        raise _unavailable(e) from e


def uptime_calculator() -> UptimeHistoryCalculator:
    try:
        return setup.get_uptime_calculator()
    except RuntimeError as e:
        raise _unavailable(e) from e
