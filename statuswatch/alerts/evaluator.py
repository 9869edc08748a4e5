"""Evaluates log alert rules against aggregated metric buckets."""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import sessionmaker

from statuswatch.core.clock import ensure_utc, utcnow
from statuswatch.db.repositories.alert_rule_repo import AlertRuleRepository
from statuswatch.db.repositories.metric_repo import MetricRepository
from statuswatch.models.alert_rule import AlertRule, NotificationType
from statuswatch.notifications.channels import Notification, NotificationChannel

logger = logging.getLogger(__name__)


def in_cooldown(rule: AlertRule, now: datetime) -> bool:
    last_fired_at = ensure_utc(rule.last_fired_at)
    if last_fired_at is None or rule.cooldown_minutes is None:
        return False
    return now < last_fired_at + timedelta(minutes=rule.cooldown_minutes)


def _channel_type(value: NotificationType | str) -> NotificationType:
    if isinstance(value, NotificationType):
        return value
    return NotificationType(value.strip().upper())


def build_notification(rule: AlertRule, count: int, now: datetime) -> Notification:
    subject = f"[Alert] {rule.name} - {count} events in {rule.window_minutes} min"
    body = "\n".join(
        [
            f"Alert rule: {rule.name}",
            f"Service: {rule.service or 'ALL'}",
            f"Level: {rule.level or 'ALL'}",
            f"Count: {count} (threshold: {rule.threshold_count})",
            f"Window: {rule.window_minutes} minutes",
            f"Time: {now.isoformat()}",
        ]
    )
    return Notification(subject=subject, body=body)


class AlertRuleEvaluator:
    """Fires notifications for rules whose windowed log count reaches the threshold.

    Each rule is evaluated in its own session so that one failing rule
    neither blocks nor rolls back the others.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        channels: dict[NotificationType, NotificationChannel],
    ):
        self.session_factory = session_factory
        self.channels = channels

    async def evaluate_all(self, now: datetime | None = None) -> int:
        """Evaluate every active rule.

        Returns:
            Number of rules that fired
        """
        now = now or utcnow()
        async with self.session_factory() as session:
            rule_ids = await AlertRuleRepository(session).list_active_ids()

        fired = 0
        for rule_id in rule_ids:
            try:
                if await self.evaluate_rule(rule_id, now):
                    fired += 1
            except Exception as e:
                logger.error("Error evaluating alert rule %s: %s", rule_id, e)
        if fired:
            logger.info("Alert evaluation fired %d of %d rules", fired, len(rule_ids))
        return fired

    async def evaluate_rule(self, rule_id: UUID, now: datetime) -> bool:
        """Evaluate one rule; returns True if it fired."""
        async with self.session_factory() as session:
            rule = await AlertRuleRepository(session).get_for_update(rule_id)
            if rule is None or not rule.is_active:
                return False
            if in_cooldown(rule, now):
                logger.debug("Alert rule '%s' in cooldown, skipping", rule.name)
                return False

            since = now - timedelta(minutes=rule.window_minutes)
            count = await MetricRepository(session).sum_counts(
                rule.service, rule.level, since, now, tenant_id=rule.tenant_id
            )
            if count < rule.threshold_count:
                return False

            logger.warning(
                "Alert rule '%s' triggered: count=%d >= threshold=%d",
                rule.name,
                count,
                rule.threshold_count,
            )
            await self.dispatch(rule, build_notification(rule, count, now))
            rule.last_fired_at = now
            await session.commit()
            return True

    async def dispatch(self, rule: AlertRule, notification: Notification) -> bool:
        """Send through the rule's channel; failures are logged, never raised."""
        try:
            channel_type = _channel_type(rule.notification_type)
        except ValueError:
            logger.warning("Unknown notification type: %s", rule.notification_type)
            return False

        channel = self.channels.get(channel_type)
        if channel is None:
            logger.warning(
                "No %s channel configured for alert rule '%s'", channel_type.value, rule.name
            )
            return False

        try:
            result = await channel.send(notification, rule.notification_target)
        except Exception as e:
            logger.error(
                "Alert rule '%s' notification to %s failed: %s",
                rule.name,
                rule.notification_target,
                e,
            )
            return False

        if not result.success:
            logger.error(
                "Alert rule '%s' notification to %s failed: %s",
                rule.name,
                rule.notification_target,
                result.error_message,
            )
        return result.success
