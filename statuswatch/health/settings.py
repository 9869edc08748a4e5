"""Global health check settings.

The scheduler depends only on the SettingsProvider protocol. Two providers
exist: StaticSettingsProvider (values fixed at startup from Settings, editable
in memory) and DatabaseSettingsProvider (key/value rows in
health_check_settings, falling back to the static defaults).
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from statuswatch.config import Settings
from statuswatch.db.repositories.settings_repo import SettingsRepository

logger = logging.getLogger(__name__)

SETTING_DESCRIPTIONS = {
    "enabled": "Master switch for scheduled health checks",
    "scheduler_interval_seconds": "Seconds between scheduler ticks",
    "pool_size": "Number of concurrent check workers",
    "default_interval_seconds": "Check interval for entities without their own",
    "default_timeout_seconds": "Check timeout for entities without their own",
}


@dataclass(frozen=True)
class HealthCheckSettings:
    """Effective health check settings.

    Attributes:
        enabled: Scheduled checks run only while True
        scheduler_interval_seconds: Tick interval of the scheduler job
        pool_size: Worker count, applied on the next scheduler start
        default_interval_seconds: Used when an entity has no interval
        default_timeout_seconds: Used when an entity has no timeout
    """

    enabled: bool = True
    scheduler_interval_seconds: int = 10
    pool_size: int = 10
    default_interval_seconds: int = 60
    default_timeout_seconds: int = 10

    @classmethod
    def from_config(cls, config: Settings) -> "HealthCheckSettings":
        return cls(
            enabled=config.health_check_enabled,
            scheduler_interval_seconds=config.health_check_tick_seconds,
            pool_size=config.health_check_pool_size,
            default_interval_seconds=config.health_check_default_interval_seconds,
            default_timeout_seconds=config.health_check_default_timeout_seconds,
        )


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1", "yes", "on"):
        return True
    if text in ("false", "0", "no", "off"):
        return False
    raise ValueError(f"Invalid boolean: {value!r}")


def _parse_positive_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid integer: {value!r}")
    number = int(str(value).strip())
    if number < 1:
        raise ValueError(f"Must be at least 1: {value!r}")
    return number


def parse_setting(key: str, value: Any) -> bool | int:
    """Validate and convert one setting value.

    Raises:
        ValueError: Unknown key or invalid value
    """
    if key not in SETTING_DESCRIPTIONS:
        raise ValueError(f"Unknown health check setting: {key}")
    if key == "enabled":
        return _parse_bool(value)
    return _parse_positive_int(value)


def apply_changes(current: HealthCheckSettings, changes: dict[str, Any]) -> HealthCheckSettings:
    return dataclasses.replace(current, **_parse_changes(changes))


def _parse_changes(changes: dict[str, Any]) -> dict[str, bool | int]:
    return {key: parse_setting(key, value) for key, value in changes.items() if value is not None}


class SettingsProvider(Protocol):
    """Source of the global health check settings."""

    async def get_settings(self) -> HealthCheckSettings: ...

    async def update_settings(self, **changes: Any) -> HealthCheckSettings: ...


class StaticSettingsProvider:
    """Settings held in memory, seeded from configuration."""

    def __init__(self, settings: HealthCheckSettings | None = None):
        self._settings = settings or HealthCheckSettings()

    async def get_settings(self) -> HealthCheckSettings:
        return self._settings

    async def update_settings(self, **changes: Any) -> HealthCheckSettings:
        self._settings = apply_changes(self._settings, changes)
        logger.info("Health check settings updated: %s", self._settings)
        return self._settings


class DatabaseSettingsProvider:
    """Settings stored as key/value rows, read on every call.

    Missing or unparseable rows fall back to the static value for that key.
    If the table cannot be read at all, the static settings are returned.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        fallback: HealthCheckSettings | None = None,
    ):
        self._session_factory = session_factory
        self._fallback = fallback or HealthCheckSettings()

    async def get_settings(self) -> HealthCheckSettings:
        try:
            async with self._session_factory() as session:
                rows = await SettingsRepository(session).get_all()
        except Exception as e:
            logger.error("Failed to read health check settings, using defaults: %s", e)
            return self._fallback

        values: dict[str, Any] = {}
        for key in SETTING_DESCRIPTIONS:
            raw = rows.get(key)
            if raw is None:
                continue
            try:
                values[key] = parse_setting(key, raw)
            except ValueError as e:
                logger.warning("Ignoring invalid health check setting %s=%r: %s", key, raw, e)
        return dataclasses.replace(self._fallback, **values)

    async def update_settings(self, **changes: Any) -> HealthCheckSettings:
        """Validate and persist the given settings.

        Raises:
            ValueError: Unknown key or invalid value; nothing is written
        """
        parsed = _parse_changes(changes)
        async with self._session_factory() as session:
            await self._write(session, parsed)
            await session.commit()
        logger.info("Health check settings updated: %s", parsed)
        return await self.get_settings()

    async def _write(self, session: AsyncSession, parsed: dict[str, bool | int]) -> None:
        repo = SettingsRepository(session)
        for key, value in parsed.items():
            stored = str(value).lower() if isinstance(value, bool) else str(value)
            await repo.upsert(key, stored, SETTING_DESCRIPTIONS[key])


def create_settings_provider(
    config: Settings, session_factory: sessionmaker | None = None
) -> SettingsProvider:
    """Pick the provider named by config.health_check_settings_source."""
    defaults = HealthCheckSettings.from_config(config)
    if config.health_check_settings_source == "database" and session_factory is not None:
        return DatabaseSettingsProvider(session_factory, fallback=defaults)
    return StaticSettingsProvider(defaults)
