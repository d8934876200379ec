import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.person import Person, PersonCreate
from app.services.errors import ServiceError

logger = logging.getLogger(__name__)


class PersonService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def list_people(self) -> List[Dict[str, Any]]:
        rows = self.db.query(Person).order_by(Person.id.asc()).all()
        return [row.to_dict() for row in rows]

    def get_person(self, person_id: int) -> Dict[str, Any]:
        return self._get(person_id).to_dict()

    def _get(self, person_id: int) -> Person:
        person = self.db.query(Person).filter(Person.id == person_id).first()
        if not person:
            raise ServiceError.not_found("Person", person_id)
        return person

    def ensure_exists(self, person_id: Optional[int]) -> Optional[int]:
        """None means single-user mode: no per-person filter."""
        if person_id is None:
            return None
        self._get(person_id)
        return person_id

    def create_person(self, payload: PersonCreate) -> Dict[str, Any]:
        record = Person(name=payload.name)
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        logger.info("Created person %s", record.id)
        return record.to_dict()

    def delete_person(self, person_id: int) -> None:
        person = self._get(person_id)
        self.db.delete(person)
        self.db.commit()
        logger.info("Deleted person %s with their offers and transactions", person_id)
