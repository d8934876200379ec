from dataclasses import dataclass, field
from typing import Any, Dict

from fastapi import HTTPException


@dataclass
class ServiceError(Exception):
    """Consistent service-layer exception with HTTP-friendly metadata."""

    status_code: int
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def not_found(cls, entity: str, entity_id: Any) -> "ServiceError":
        return cls(404, "NOT_FOUND", f"{entity} not found.", {"id": entity_id})

    @classmethod
    def malformed(cls, exc) -> "ServiceError":
        """Wrap an engine MalformedRecordError raised while reading stored records."""
        return cls(
            422,
            "MALFORMED_RECORD",
            str(exc),
            {"field": exc.field, "reason": exc.reason},
        )

    def payload(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }

    def to_http(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.payload())

    def __str__(self) -> str:  # pragma: no cover - convenience for logging
        return f"{self.status_code} {self.code}: {self.message} | {self.details}"
