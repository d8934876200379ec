from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from app.dependencies.security import optional_person_id, reference_date
from app.dependencies.services import get_insight_service, get_offer_service
from app.models.offer import OfferRequest
from app.services.errors import ServiceError
from app.services.insight_service import InsightService
from app.services.offer_service import OfferService

router = APIRouter(
    prefix="/api/v1/offers",
    tags=["offers"]
)


@router.get("")
def list_offers(
    person_id: Optional[int] = Depends(optional_person_id),
    service: OfferService = Depends(get_offer_service),
) -> Dict[str, Any]:
    """List offers for the current person, soonest ending first."""
    try:
        return {"offers": service.list_offers(person_id)}
    except ServiceError as exc:
        raise exc.to_http()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_offer(
    request: OfferRequest,
    person_id: Optional[int] = Depends(optional_person_id),
    service: OfferService = Depends(get_offer_service),
) -> Dict[str, Any]:
    """
    Create a new offer.

    Request body:
    {
        "offer": {
            "name": "Online spend bonus",
            "type": "spending",
            "startDate": "2025-09-01",
            "endDate": "2025-11-30",
            "spendingTarget": 750,
            "categories": ["online"],
            "reward": 25,
            "bonusReward": 50,
            "monthlyTracking": true
        }
    }
    """
    try:
        return {"offer": service.create_offer(person_id, request.offer)}
    except ServiceError as exc:
        raise exc.to_http()


@router.get("/{offer_id}")
def get_offer(
    offer_id: int,
    person_id: Optional[int] = Depends(optional_person_id),
    service: OfferService = Depends(get_offer_service),
) -> Dict[str, Any]:
    try:
        return {"offer": service.get_offer(offer_id, person_id)}
    except ServiceError as exc:
        raise exc.to_http()


@router.put("/{offer_id}")
def update_offer(
    offer_id: int,
    request: OfferRequest,
    person_id: Optional[int] = Depends(optional_person_id),
    service: OfferService = Depends(get_offer_service),
) -> Dict[str, Any]:
    """Replace an offer's terms; the body has the same shape as for creation."""
    try:
        return {"offer": service.update_offer(offer_id, person_id, request.offer)}
    except ServiceError as exc:
        raise exc.to_http()


@router.delete("/{offer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_offer(
    offer_id: int,
    person_id: Optional[int] = Depends(optional_person_id),
    service: OfferService = Depends(get_offer_service),
) -> Response:
    try:
        service.delete_offer(offer_id, person_id)
    except ServiceError as exc:
        raise exc.to_http()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{offer_id}/progress")
def get_offer_progress(
    offer_id: int,
    person_id: Optional[int] = Depends(optional_person_id),
    today: date = Depends(reference_date),
    service: InsightService = Depends(get_insight_service),
) -> Dict[str, Any]:
    """
    Progress of one offer as of `today`.

    Query Parameters:
    - today: reference date (YYYY-MM-DD), defaults to the current date
    """
    try:
        return service.offer_progress(offer_id, person_id, today)
    except ServiceError as exc:
        raise exc.to_http()


@router.get("/{offer_id}/transactions")
def get_offer_transactions(
    offer_id: int,
    person_id: Optional[int] = Depends(optional_person_id),
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    service: InsightService = Depends(get_insight_service),
) -> Dict[str, Any]:
    """
    Transactions that count toward the offer.

    Query Parameters:
    - start, end: narrow the result to a sub-window of the offer
    """
    try:
        return {"transactions": service.offer_transactions(offer_id, person_id, start, end)}
    except ServiceError as exc:
        raise exc.to_http()
