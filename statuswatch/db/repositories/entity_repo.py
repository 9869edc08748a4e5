# statuswatch/db/repositories/entity_repo.py
from uuid import UUID

from sqlalchemy import select

from statuswatch.db.repositories.base import BaseRepository
from statuswatch.models.entity import EntityKind, StatusApp, StatusComponent

Entity = StatusApp | StatusComponent


class EntityRepository(BaseRepository):
    """Read access to monitored apps and components."""

    async def list_apps(self) -> list[StatusApp]:
        result = await self.session.execute(select(StatusApp).order_by(StatusApp.name))
        return list(result.scalars().all())

    async def list_components(self) -> list[StatusComponent]:
        result = await self.session.execute(
            select(StatusComponent).order_by(StatusComponent.app_id, StatusComponent.position)
        )
        return list(result.scalars().all())

    async def list_components_for_app(self, app_id: UUID) -> list[StatusComponent]:
        result = await self.session.execute(
            select(StatusComponent)
            .where(StatusComponent.app_id == app_id)
            .order_by(StatusComponent.position)
        )
        return list(result.scalars().all())

    async def get_app(self, app_id: UUID) -> StatusApp | None:
        return await self.session.get(StatusApp, app_id)

    async def get_component(self, component_id: UUID) -> StatusComponent | None:
        return await self.session.get(StatusComponent, component_id)

    async def get_for_update(self, kind: EntityKind, entity_id: UUID) -> Entity | None:
        """Load an entity with a row lock for a read-modify-write of its check state."""
        model = StatusApp if kind == EntityKind.APP else StatusComponent
        result = await self.session.execute(
            select(model).where(model.id == entity_id).with_for_update()
        )
        return result.scalar_one_or_none()
