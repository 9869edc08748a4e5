# statuswatch/db/repositories/subscriber_repo.py
from uuid import UUID

from sqlalchemy import select

from statuswatch.db.repositories.base import BaseRepository
from statuswatch.models.subscriber import NotificationSubscriber


class SubscriberRepository(BaseRepository):
    async def get_active_verified(self, app_id: UUID) -> list[NotificationSubscriber]:
        result = await self.session.execute(
            select(NotificationSubscriber)
            .where(NotificationSubscriber.app_id == app_id)
            .where(NotificationSubscriber.is_active.is_(True))
            .where(NotificationSubscriber.is_verified.is_(True))
            .order_by(NotificationSubscriber.created_at)
        )
        return list(result.scalars().all())
