# statuswatch/api/uptime.py
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from statuswatch.api.deps import uptime_calculator
from statuswatch.uptime.calculator import UptimeHistoryCalculator

router = APIRouter(prefix="/api/uptime", tags=["uptime"])


class BackfillResponse(BaseModel):
    days_processed: int


@router.post("/backfill", response_model=BackfillResponse)
async def backfill_uptime(
    days: int = Query(default=30, ge=1, le=365),
    calculator: UptimeHistoryCalculator = Depends(uptime_calculator),
) -> BackfillResponse:
    """Recalculate uptime history for the last N days."""
    return BackfillResponse(days_processed=await calculator.backfill(days))
