from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Response, status

from app.dependencies.security import optional_person_id
from app.dependencies.services import get_insight_service, get_transaction_service
from app.models.transaction import TransactionRequest
from app.services.errors import ServiceError
from app.services.insight_service import InsightService
from app.services.transaction_service import TransactionService

router = APIRouter(
    prefix="/api/v1/transactions",
    tags=["transactions"]
)


@router.post("", status_code=201)
def create_transaction(
    request: TransactionRequest,
    person_id: Optional[int] = Depends(optional_person_id),
    service: TransactionService = Depends(get_transaction_service),
) -> Dict[str, Any]:
    """
    Record a transaction.

    Request body:
    {
        "transaction": {
            "amount": 65.00,
            "merchant": "Bookshop Online",
            "categories": ["online", "books"],
            "description": "Paperbacks",
            "date": "2025-09-12"
        }
    }
    """
    try:
        return {"transaction": service.create_transaction(person_id, request.transaction)}
    except ServiceError as exc:
        raise exc.to_http()


@router.get("")
def list_transactions(
    person_id: Optional[int] = Depends(optional_person_id),
    sort: str = "date_desc",
    service: TransactionService = Depends(get_transaction_service),
) -> Dict[str, Any]:
    """
    List the ledger for the current person.

    Query Parameters:
    - sort: Sort order. Options: "date_desc" (default), "date_asc", "none"
    """
    sort_value = sort.lower()
    if sort_value == "none":
        sort_desc = None
    else:
        sort_desc = sort_value != "date_asc"

    try:
        return {"transactions": service.get_transactions(person_id, sort_by_date_desc=sort_desc)}
    except ServiceError as exc:
        raise exc.to_http()


@router.get("/{transaction_id}")
def get_transaction(
    transaction_id: int,
    person_id: Optional[int] = Depends(optional_person_id),
    service: TransactionService = Depends(get_transaction_service),
) -> Dict[str, Any]:
    try:
        return {"transaction": service.get_transaction(transaction_id, person_id)}
    except ServiceError as exc:
        raise exc.to_http()


@router.put("/{transaction_id}")
def update_transaction(
    transaction_id: int,
    request: TransactionRequest,
    person_id: Optional[int] = Depends(optional_person_id),
    service: TransactionService = Depends(get_transaction_service),
) -> Dict[str, Any]:
    try:
        return {"transaction": service.update_transaction(transaction_id, person_id, request.transaction)}
    except ServiceError as exc:
        raise exc.to_http()


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(
    transaction_id: int,
    person_id: Optional[int] = Depends(optional_person_id),
    service: TransactionService = Depends(get_transaction_service),
) -> Response:
    try:
        service.delete_transaction(transaction_id, person_id)
    except ServiceError as exc:
        raise exc.to_http()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{transaction_id}/matching-offers")
def get_matching_offers(
    transaction_id: int,
    person_id: Optional[int] = Depends(optional_person_id),
    service: InsightService = Depends(get_insight_service),
) -> Dict[str, Any]:
    """Offers this transaction counts toward."""
    try:
        return {"offers": service.matching_offers(transaction_id, person_id)}
    except ServiceError as exc:
        raise exc.to_http()
