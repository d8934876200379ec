from datetime import date
from typing import Optional

from fastapi import HTTPException, Query, Request, status


def _error_payload(code: str, message: str, details: dict) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
        }
    }


def parse_person_id(raw_person_id: str) -> int:
    value = (raw_person_id or "").strip()
    if value.isdigit():
        return int(value)
    if value.startswith("p_") and value[2:].isdigit():
        return int(value[2:])
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=_error_payload(
            "VALIDATION_ERROR",
            "x-person-id header must be an integer or p_<integer> format.",
            {"header": "x-person-id", "value": raw_person_id},
        ),
    )


def optional_person_id(
    request: Request,
    person_id: Optional[int] = Query(default=None),
) -> Optional[int]:
    """
    Person context from the person_id query parameter or the x-person-id
    header. None means single-user mode: nothing is filtered by owner.
    """
    if person_id is not None:
        return person_id
    header = (request.headers.get("x-person-id") or "").strip()
    if not header:
        return None
    return parse_person_id(header)


def reference_date(today: Optional[date] = Query(default=None)) -> date:
    """The `today` query parameter, defaulting to the server's current date."""
    return today or date.today()
