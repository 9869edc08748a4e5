# statuswatch/db/repositories/settings_repo.py
from sqlalchemy import select

from statuswatch.db.repositories.base import BaseRepository
from statuswatch.models.settings import HealthCheckSetting


class SettingsRepository(BaseRepository):
    async def get_all(self) -> dict[str, str]:
        result = await self.session.execute(select(HealthCheckSetting))
        return {row.setting_key: row.setting_value for row in result.scalars().all()}

    async def upsert(self, key: str, value: str, description: str | None = None) -> None:
        result = await self.session.execute(
            select(HealthCheckSetting).where(HealthCheckSetting.setting_key == key)
        )
        setting = result.scalar_one_or_none()
        if setting is None:
            self.session.add(
                HealthCheckSetting(setting_key=key, setting_value=value, description=description)
            )
        else:
            setting.setting_value = value
            if description is not None:
                setting.description = description
        await self.session.flush()
