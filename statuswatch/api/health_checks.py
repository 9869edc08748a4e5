# statuswatch/api/health_checks.py
"""Health check settings and manual trigger endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from statuswatch.api.deps import health_check_scheduler
from statuswatch.health.scheduler import HealthCheckScheduler
from statuswatch.health.settings import HealthCheckSettings
from statuswatch.workers import setup

router = APIRouter(prefix="/api/health-checks", tags=["health-checks"])


class SettingsResponse(BaseModel):
    enabled: bool
    scheduler_interval_seconds: int
    pool_size: int
    default_interval_seconds: int
    default_timeout_seconds: int

    @classmethod
    def from_settings(cls, settings: HealthCheckSettings) -> "SettingsResponse":
        return cls(
            enabled=settings.enabled,
            scheduler_interval_seconds=settings.scheduler_interval_seconds,
            pool_size=settings.pool_size,
            default_interval_seconds=settings.default_interval_seconds,
            default_timeout_seconds=settings.default_timeout_seconds,
        )


class SettingsUpdateRequest(BaseModel):
    """Fields left out are not changed."""

    enabled: bool | None = None
    scheduler_interval_seconds: int | None = Field(default=None, ge=1)
    pool_size: int | None = Field(default=None, ge=1)
    default_interval_seconds: int | None = Field(default=None, ge=1)
    default_timeout_seconds: int | None = Field(default=None, ge=1)


class TriggerAllResponse(BaseModel):
    submitted: int


class TriggerResponse(BaseModel):
    success: bool
    message: str
    duration_ms: int | None


@router.get("/settings", response_model=SettingsResponse)
async def get_settings() -> SettingsResponse:
    try:
        provider = setup.get_settings_provider()
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return SettingsResponse.from_settings(await provider.get_settings())


@router.put("/settings", response_model=SettingsResponse)
async def update_settings(request: SettingsUpdateRequest) -> SettingsResponse:
    try:
        updated = await setup.update_health_check_settings(**request.model_dump(exclude_none=True))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return SettingsResponse.from_settings(updated)


@router.post("/trigger", response_model=TriggerAllResponse)
async def trigger_all_checks(
    scheduler: HealthCheckScheduler = Depends(health_check_scheduler),
) -> TriggerAllResponse:
    return TriggerAllResponse(submitted=await scheduler.trigger_all_checks())


@router.post("/trigger/{entity_id}", response_model=TriggerResponse)
async def trigger_entity_check(
    entity_id: UUID,
    scheduler: HealthCheckScheduler = Depends(health_check_scheduler),
) -> TriggerResponse:
    result = await scheduler.trigger_entity_check(entity_id)
    return TriggerResponse(
        success=result.success, message=result.message, duration_ms=result.duration_ms
    )
