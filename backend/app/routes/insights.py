from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from app.dependencies.security import optional_person_id, reference_date
from app.dependencies.services import get_insight_service
from app.services.errors import ServiceError
from app.services.insight_service import InsightService


router = APIRouter(prefix="/api/v1", tags=["insights"])


@router.get("/progress")
def get_progress(
    person_id: Optional[int] = Depends(optional_person_id),
    today: date = Depends(reference_date),
    service: InsightService = Depends(get_insight_service),
) -> Dict[str, Any]:
    """Progress of every offer of the current person as of `today`."""
    try:
        return {"today": today.isoformat(), "progress": service.progress(person_id, today)}
    except ServiceError as exc:
        raise exc.to_http()


@router.get("/dashboard")
def get_dashboard(
    person_id: Optional[int] = Depends(optional_person_id),
    today: date = Depends(reference_date),
    service: InsightService = Depends(get_insight_service),
) -> Dict[str, Any]:
    """
    Offers ordered for display: urgent active offers first, then other active
    offers, archived successes, missed offers and finally upcoming ones.
    """
    try:
        return service.dashboard(person_id, today)
    except ServiceError as exc:
        raise exc.to_http()


@router.get("/recommendations")
def get_recommendations(
    person_id: Optional[int] = Depends(optional_person_id),
    today: date = Depends(reference_date),
    service: InsightService = Depends(get_insight_service),
) -> Dict[str, Any]:
    """
    Ranked spending recommendations, the feasible overlaps behind them and
    the phased master strategy (null when no offer is active).
    """
    try:
        return service.recommendations(person_id, today)
    except ServiceError as exc:
        raise exc.to_http()
