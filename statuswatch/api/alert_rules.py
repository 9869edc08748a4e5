# statuswatch/api/alert_rules.py
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from statuswatch.alerts.evaluator import AlertRuleEvaluator
from statuswatch.api.deps import alert_evaluator

router = APIRouter(prefix="/api/alert-rules", tags=["alert-rules"])


class EvaluateResponse(BaseModel):
    fired: int


@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate_alert_rules(
    evaluator: AlertRuleEvaluator = Depends(alert_evaluator),
) -> EvaluateResponse:
    """Evaluate all active rules now instead of waiting for the next tick."""
    return EvaluateResponse(fired=await evaluator.evaluate_all())
