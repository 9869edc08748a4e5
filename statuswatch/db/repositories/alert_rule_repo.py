# statuswatch/db/repositories/alert_rule_repo.py
from uuid import UUID

from sqlalchemy import select

from statuswatch.db.repositories.base import BaseRepository
from statuswatch.models.alert_rule import AlertRule


class AlertRuleRepository(BaseRepository):
    async def list_active_ids(self) -> list[UUID]:
        result = await self.session.execute(
            select(AlertRule.id)
            .where(AlertRule.is_active.is_(True))
            .order_by(AlertRule.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_for_update(self, rule_id: UUID) -> AlertRule | None:
        result = await self.session.execute(
            select(AlertRule).where(AlertRule.id == rule_id).with_for_update()
        )
        return result.scalar_one_or_none()
