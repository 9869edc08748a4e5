"""Tests for AlertRuleEvaluator."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from statuswatch.alerts.evaluator import AlertRuleEvaluator, build_notification, in_cooldown
from statuswatch.core.clock import ensure_utc
from statuswatch.db.repositories.metric_repo import MetricRepository
from statuswatch.models.alert_rule import AlertRule, NotificationType
from statuswatch.notifications.channels import DeliveryResult, NotificationChannel

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
WEBHOOK_URL = "https://hooks.example.com/alerts"


def _channel(result=None):
    channel = MagicMock(spec=NotificationChannel)
    channel.send = AsyncMock(return_value=result or DeliveryResult(success=True))
    return channel


def _rule(**kwargs) -> AlertRule:
    kwargs.setdefault("name", "API errors")
    kwargs.setdefault("service", "api")
    kwargs.setdefault("level", "ERROR")
    kwargs.setdefault("threshold_count", 10)
    kwargs.setdefault("window_minutes", 5)
    kwargs.setdefault("notification_type", NotificationType.WEBHOOK.value)
    kwargs.setdefault("notification_target", WEBHOOK_URL)
    return AlertRule(**kwargs)


async def _seed_metrics(session_factory, rows):
    async with session_factory() as session:
        metrics = MetricRepository(session)
        for tenant_id, service, level, minutes_ago, count in rows:
            await metrics.upsert_count(
                tenant_id, service, level, NOW - timedelta(minutes=minutes_ago), count
            )
        await session.commit()


async def _add_rules(session_factory, *rules):
    async with session_factory() as session:
        session.add_all(rules)
        await session.commit()


async def _reload(session_factory, rule_id) -> AlertRule:
    async with session_factory() as session:
        return await session.get(AlertRule, rule_id)


class TestInCooldown:
    def test_never_fired(self):
        assert in_cooldown(_rule(), NOW) is False

    def test_within_cooldown(self):
        rule = _rule(cooldown_minutes=15, last_fired_at=NOW - timedelta(minutes=14))
        assert in_cooldown(rule, NOW) is True

    def test_cooldown_elapsed(self):
        rule = _rule(cooldown_minutes=15, last_fired_at=NOW - timedelta(minutes=15))
        assert in_cooldown(rule, NOW) is False

    def test_no_cooldown_configured(self):
        rule = _rule(cooldown_minutes=None, last_fired_at=NOW)
        assert in_cooldown(rule, NOW) is False


class TestBuildNotification:
    def test_subject_and_body(self):
        notification = build_notification(_rule(), 12, NOW)

        assert notification.subject == "[Alert] API errors - 12 events in 5 min"
        assert notification.body.splitlines() == [
            "Alert rule: API errors",
            "Service: api",
            "Level: ERROR",
            "Count: 12 (threshold: 10)",
            "Window: 5 minutes",
            f"Time: {NOW.isoformat()}",
        ]

    def test_unfiltered_rule_shows_all(self):
        notification = build_notification(_rule(service=None, level=None), 3, NOW)

        assert "Service: ALL" in notification.body
        assert "Level: ALL" in notification.body


class TestEvaluateAll:
    @pytest.mark.asyncio
    async def test_fires_when_threshold_reached(self, session_factory):
        rule = _rule()
        await _add_rules(session_factory, rule)
        await _seed_metrics(
            session_factory,
            [
                (None, "api", "ERROR", 4, 6),
                (None, "api", "ERROR", 2, 5),
                (None, "api", "WARN", 1, 50),
                (None, "billing", "ERROR", 1, 50),
                (None, "api", "ERROR", 10, 100),
            ],
        )
        channel = _channel()
        evaluator = AlertRuleEvaluator(session_factory, {NotificationType.WEBHOOK: channel})

        fired = await evaluator.evaluate_all(now=NOW)

        assert fired == 1
        notification, target = channel.send.await_args.args
        assert target == WEBHOOK_URL
        assert notification.subject == "[Alert] API errors - 11 events in 5 min"
        stored = await _reload(session_factory, rule.id)
        assert ensure_utc(stored.last_fired_at) == NOW

    @pytest.mark.asyncio
    async def test_window_edges_are_inclusive(self, session_factory):
        await _add_rules(session_factory, _rule(threshold_count=2))
        await _seed_metrics(
            session_factory,
            [(None, "api", "ERROR", 5, 1), (None, "api", "ERROR", 0, 1)],
        )
        evaluator = AlertRuleEvaluator(session_factory, {NotificationType.WEBHOOK: _channel()})

        assert await evaluator.evaluate_all(now=NOW) == 1

    @pytest.mark.asyncio
    async def test_below_threshold_does_not_fire(self, session_factory):
        rule = _rule()
        await _add_rules(session_factory, rule)
        await _seed_metrics(session_factory, [(None, "api", "ERROR", 1, 9)])
        channel = _channel()
        evaluator = AlertRuleEvaluator(session_factory, {NotificationType.WEBHOOK: channel})

        assert await evaluator.evaluate_all(now=NOW) == 0
        channel.send.assert_not_awaited()
        assert (await _reload(session_factory, rule.id)).last_fired_at is None

    @pytest.mark.asyncio
    async def test_cooldown_suppresses_refire(self, session_factory):
        await _add_rules(session_factory, _rule(last_fired_at=NOW - timedelta(minutes=5)))
        await _seed_metrics(session_factory, [(None, "api", "ERROR", 1, 40)])
        channel = _channel()
        evaluator = AlertRuleEvaluator(session_factory, {NotificationType.WEBHOOK: channel})

        assert await evaluator.evaluate_all(now=NOW) == 0
        channel.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_second_evaluation_within_cooldown_is_quiet(self, session_factory):
        await _add_rules(session_factory, _rule())
        await _seed_metrics(session_factory, [(None, "api", "ERROR", 1, 40)])
        channel = _channel()
        evaluator = AlertRuleEvaluator(session_factory, {NotificationType.WEBHOOK: channel})

        assert await evaluator.evaluate_all(now=NOW) == 1
        assert await evaluator.evaluate_all(now=NOW + timedelta(minutes=1)) == 0
        channel.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_inactive_rule_skipped(self, session_factory):
        await _add_rules(session_factory, _rule(is_active=False))
        await _seed_metrics(session_factory, [(None, "api", "ERROR", 1, 40)])
        channel = _channel()
        evaluator = AlertRuleEvaluator(session_factory, {NotificationType.WEBHOOK: channel})

        assert await evaluator.evaluate_all(now=NOW) == 0

    @pytest.mark.asyncio
    async def test_unfiltered_rule_counts_everything(self, session_factory):
        await _add_rules(session_factory, _rule(service=None, level=None, threshold_count=30))
        await _seed_metrics(
            session_factory,
            [(None, "api", "ERROR", 1, 10), (None, "billing", "WARN", 2, 20)],
        )
        evaluator = AlertRuleEvaluator(session_factory, {NotificationType.WEBHOOK: _channel()})

        assert await evaluator.evaluate_all(now=NOW) == 1

    @pytest.mark.asyncio
    async def test_tenant_rule_ignores_other_tenants(self, session_factory):
        tenant_a, tenant_b = uuid4(), uuid4()
        await _add_rules(session_factory, _rule(tenant_id=tenant_a))
        await _seed_metrics(
            session_factory,
            [(tenant_a, "api", "ERROR", 1, 4), (tenant_b, "api", "ERROR", 1, 40)],
        )
        evaluator = AlertRuleEvaluator(session_factory, {NotificationType.WEBHOOK: _channel()})

        assert await evaluator.evaluate_all(now=NOW) == 0

    @pytest.mark.asyncio
    async def test_failed_delivery_still_starts_cooldown(self, session_factory):
        rule = _rule()
        await _add_rules(session_factory, rule)
        await _seed_metrics(session_factory, [(None, "api", "ERROR", 1, 40)])
        channel = _channel(DeliveryResult(success=False, error_message="502 Bad Gateway"))
        evaluator = AlertRuleEvaluator(session_factory, {NotificationType.WEBHOOK: channel})

        assert await evaluator.evaluate_all(now=NOW) == 1
        assert ensure_utc((await _reload(session_factory, rule.id)).last_fired_at) == NOW

    @pytest.mark.asyncio
    async def test_channel_exception_is_contained(self, session_factory):
        await _add_rules(session_factory, _rule())
        await _seed_metrics(session_factory, [(None, "api", "ERROR", 1, 40)])
        channel = MagicMock(spec=NotificationChannel)
        channel.send = AsyncMock(side_effect=RuntimeError("socket closed"))
        evaluator = AlertRuleEvaluator(session_factory, {NotificationType.WEBHOOK: channel})

        assert await evaluator.evaluate_all(now=NOW) == 1

    @pytest.mark.asyncio
    async def test_unconfigured_channel(self, session_factory):
        rule = _rule(notification_type="EMAIL", notification_target="ops@example.com")
        await _add_rules(session_factory, rule)
        await _seed_metrics(session_factory, [(None, "api", "ERROR", 1, 40)])
        evaluator = AlertRuleEvaluator(session_factory, {NotificationType.WEBHOOK: _channel()})

        assert await evaluator.evaluate_all(now=NOW) == 1


class TestDispatch:
    @pytest.mark.asyncio
    async def test_unknown_notification_type(self, session_factory):
        evaluator = AlertRuleEvaluator(session_factory, {NotificationType.WEBHOOK: _channel()})
        rule = _rule(notification_type="PAGER")

        assert await evaluator.dispatch(rule, build_notification(rule, 1, NOW)) is False

    @pytest.mark.asyncio
    async def test_lowercase_type_accepted(self, session_factory):
        channel = _channel()
        evaluator = AlertRuleEvaluator(session_factory, {NotificationType.SLACK: channel})
        rule = _rule(notification_type="slack", notification_target="https://hooks.slack.com/x")

        assert await evaluator.dispatch(rule, build_notification(rule, 1, NOW)) is True
        channel.send.assert_awaited_once()
