from typing import Any, Dict

from fastapi import APIRouter, Depends, Response, status

from app.dependencies.services import get_person_service
from app.models.person import PersonCreate
from app.services.errors import ServiceError
from app.services.person_service import PersonService

router = APIRouter(
    prefix="/api/v1/people",
    tags=["people"]
)


@router.get("")
def list_people(service: PersonService = Depends(get_person_service)) -> Dict[str, Any]:
    """List every person (single-user setups have none)."""
    return {"people": service.list_people()}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_person(payload: PersonCreate, service: PersonService = Depends(get_person_service)) -> Dict[str, Any]:
    """
    Add a person.

    Request body:
    {
        "name": "Alex"
    }
    """
    return {"person": service.create_person(payload)}


@router.get("/{person_id}")
def get_person(person_id: int, service: PersonService = Depends(get_person_service)) -> Dict[str, Any]:
    try:
        return {"person": service.get_person(person_id)}
    except ServiceError as exc:
        raise exc.to_http()


@router.delete("/{person_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_person(person_id: int, service: PersonService = Depends(get_person_service)) -> Response:
    """Delete a person together with their offers and transactions."""
    try:
        service.delete_person(person_id)
    except ServiceError as exc:
        raise exc.to_http()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
