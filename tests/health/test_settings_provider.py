"""Tests for health check settings parsing and providers."""

import pytest

from statuswatch.config import Settings
from statuswatch.db.repositories.settings_repo import SettingsRepository
from statuswatch.health.settings import (
    DatabaseSettingsProvider,
    HealthCheckSettings,
    StaticSettingsProvider,
    create_settings_provider,
    parse_setting,
)


class TestParseSetting:
    @pytest.mark.parametrize(
        "raw,expected",
        [("true", True), ("FALSE", False), ("1", True), ("off", False), (True, True)],
    )
    def test_enabled(self, raw, expected):
        assert parse_setting("enabled", raw) is expected

    def test_integer(self):
        assert parse_setting("pool_size", " 15 ") == 15

    def test_zero_rejected(self):
        with pytest.raises(ValueError):
            parse_setting("scheduler_interval_seconds", "0")

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            parse_setting("default_timeout_seconds", "ten")

    def test_boolean_is_not_an_integer(self):
        with pytest.raises(ValueError):
            parse_setting("pool_size", True)

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown health check setting"):
            parse_setting("retries", "3")


class TestHealthCheckSettings:
    def test_from_config(self):
        config = Settings(
            health_check_enabled=False,
            health_check_tick_seconds=5,
            health_check_pool_size=4,
            health_check_default_interval_seconds=30,
            health_check_default_timeout_seconds=7,
        )

        settings = HealthCheckSettings.from_config(config)

        assert settings == HealthCheckSettings(
            enabled=False,
            scheduler_interval_seconds=5,
            pool_size=4,
            default_interval_seconds=30,
            default_timeout_seconds=7,
        )


class TestStaticSettingsProvider:
    @pytest.mark.asyncio
    async def test_defaults(self):
        settings = await StaticSettingsProvider().get_settings()

        assert settings.enabled is True
        assert settings.scheduler_interval_seconds == 10
        assert settings.pool_size == 10

    @pytest.mark.asyncio
    async def test_update_changes_given_fields_only(self):
        provider = StaticSettingsProvider()

        updated = await provider.update_settings(pool_size=4, enabled=None)

        assert updated.pool_size == 4
        assert updated.enabled is True
        assert (await provider.get_settings()).pool_size == 4

    @pytest.mark.asyncio
    async def test_invalid_update_leaves_settings_unchanged(self):
        provider = StaticSettingsProvider()

        with pytest.raises(ValueError):
            await provider.update_settings(pool_size=8, scheduler_interval_seconds=0)

        assert (await provider.get_settings()).pool_size == 10


class TestDatabaseSettingsProvider:
    @pytest.mark.asyncio
    async def test_empty_table_uses_fallback(self, session_factory):
        fallback = HealthCheckSettings(pool_size=6)
        provider = DatabaseSettingsProvider(session_factory, fallback=fallback)

        assert await provider.get_settings() == fallback

    @pytest.mark.asyncio
    async def test_rows_override_fallback(self, session_factory):
        async with session_factory() as session:
            repo = SettingsRepository(session)
            await repo.upsert("enabled", "false")
            await repo.upsert("default_interval_seconds", "300")
            await session.commit()

        settings = await DatabaseSettingsProvider(session_factory).get_settings()

        assert settings.enabled is False
        assert settings.default_interval_seconds == 300
        assert settings.pool_size == 10

    @pytest.mark.asyncio
    async def test_invalid_row_falls_back_for_that_key(self, session_factory):
        async with session_factory() as session:
            repo = SettingsRepository(session)
            await repo.upsert("pool_size", "lots")
            await repo.upsert("default_timeout_seconds", "4")
            await session.commit()

        fallback = HealthCheckSettings(pool_size=7)
        settings = await DatabaseSettingsProvider(session_factory, fallback).get_settings()

        assert settings.pool_size == 7
        assert settings.default_timeout_seconds == 4

    @pytest.mark.asyncio
    async def test_unreadable_table_uses_fallback(self):
        def broken_factory():
            raise RuntimeError("database unavailable")

        fallback = HealthCheckSettings(scheduler_interval_seconds=30)
        provider = DatabaseSettingsProvider(broken_factory, fallback=fallback)

        assert await provider.get_settings() == fallback

    @pytest.mark.asyncio
    async def test_update_persists(self, session_factory):
        provider = DatabaseSettingsProvider(session_factory)

        updated = await provider.update_settings(enabled=False, scheduler_interval_seconds=20)

        assert updated.enabled is False
        assert updated.scheduler_interval_seconds == 20

        async with session_factory() as session:
            rows = await SettingsRepository(session).get_all()
        assert rows["enabled"] == "false"
        assert rows["scheduler_interval_seconds"] == "20"

        # A fresh provider sees the stored values
        assert (await DatabaseSettingsProvider(session_factory).get_settings()) == updated

    @pytest.mark.asyncio
    async def test_invalid_update_writes_nothing(self, session_factory):
        provider = DatabaseSettingsProvider(session_factory)

        with pytest.raises(ValueError):
            await provider.update_settings(pool_size=5, default_timeout_seconds=-1)

        async with session_factory() as session:
            assert await SettingsRepository(session).get_all() == {}


class TestCreateSettingsProvider:
    @pytest.mark.asyncio
    async def test_database_source(self, session_factory):
        config = Settings(health_check_settings_source="database")

        provider = create_settings_provider(config, session_factory)

        assert isinstance(provider, DatabaseSettingsProvider)

    @pytest.mark.asyncio
    async def test_static_source(self, session_factory):
        config = Settings(health_check_settings_source="static")

        provider = create_settings_provider(config, session_factory)

        assert isinstance(provider, StaticSettingsProvider)

    def test_database_without_session_factory_is_static(self):
        config = Settings(health_check_settings_source="database")

        assert isinstance(create_settings_provider(config), StaticSettingsProvider)

    @pytest.mark.asyncio
    async def test_static_provider_seeded_from_config(self):
        config = Settings(health_check_settings_source="static", health_check_pool_size=2)

        settings = await create_settings_provider(config).get_settings()

        assert settings.pool_size == 2
