import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.offer import OfferCreate, OfferRecord
from app.services.errors import ServiceError
from app.services.person_service import PersonService
from offer_engine.errors import MalformedRecordError
from offer_engine.models import Offer
from offer_engine.parsing import offer_from_dict

logger = logging.getLogger(__name__)


class OfferService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.people = PersonService(db)

    def _query(self, person_id: Optional[int]):
        query = self.db.query(OfferRecord)
        if person_id is not None:
            query = query.filter(OfferRecord.person_id == person_id)
        return query

    def _get(self, offer_id: int, person_id: Optional[int]) -> OfferRecord:
        record = self._query(person_id).filter(OfferRecord.id == offer_id).first()
        if not record:
            raise ServiceError.not_found("Offer", offer_id)
        return record

    def _resolve_owner(self, person_id: Optional[int], payload: OfferCreate) -> Optional[int]:
        owner = person_id if person_id is not None else payload.person_id
        return self.people.ensure_exists(owner)

    def list_offers(self, person_id: Optional[int]) -> List[Dict[str, Any]]:
        rows = self._query(person_id).order_by(OfferRecord.end_date.asc(), OfferRecord.id.asc()).all()
        return [row.to_dict() for row in rows]

    def get_offer(self, offer_id: int, person_id: Optional[int]) -> Dict[str, Any]:
        return self._get(offer_id, person_id).to_dict()

    def create_offer(self, person_id: Optional[int], payload: OfferCreate) -> Dict[str, Any]:
        fields = payload.to_record_fields()
        fields["person_id"] = self._resolve_owner(person_id, payload)
        record = OfferRecord(**fields)
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        logger.info("Created offer %s (%s)", record.id, record.type.value)
        return record.to_dict()

    def update_offer(self, offer_id: int, person_id: Optional[int], payload: OfferCreate) -> Dict[str, Any]:
        record = self._get(offer_id, person_id)
        fields = payload.to_record_fields()
        fields["person_id"] = record.person_id if payload.person_id is None else self._resolve_owner(None, payload)
        for name, value in fields.items():
            setattr(record, name, value)
        self.db.commit()
        self.db.refresh(record)
        return record.to_dict()

    def delete_offer(self, offer_id: int, person_id: Optional[int]) -> None:
        record = self._get(offer_id, person_id)
        self.db.delete(record)
        self.db.commit()

    def engine_offers(self, person_id: Optional[int]) -> List[Offer]:
        """Stored offers as engine records; a malformed row fails the whole query."""
        try:
            return [offer_from_dict(row) for row in self.list_offers(person_id)]
        except MalformedRecordError as exc:
            logger.warning("Malformed offer record: %s", exc)
            raise ServiceError.malformed(exc) from exc

    def engine_offer(self, offer_id: int, person_id: Optional[int]) -> Offer:
        try:
            return offer_from_dict(self.get_offer(offer_id, person_id))
        except MalformedRecordError as exc:
            logger.warning("Malformed offer record %s: %s", offer_id, exc)
            raise ServiceError.malformed(exc) from exc
