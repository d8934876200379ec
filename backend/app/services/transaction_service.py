import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.transaction import TransactionCreate, TransactionRecord
from app.services.errors import ServiceError
from app.services.person_service import PersonService
from offer_engine.errors import MalformedRecordError
from offer_engine.models import Transaction
from offer_engine.parsing import transaction_from_dict

logger = logging.getLogger(__name__)


class TransactionService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.people = PersonService(db)

    def _query(self, person_id: Optional[int]):
        query = self.db.query(TransactionRecord)
        if person_id is not None:
            query = query.filter(TransactionRecord.person_id == person_id)
        return query

    def _get(self, transaction_id: int, person_id: Optional[int]) -> TransactionRecord:
        record = self._query(person_id).filter(TransactionRecord.id == transaction_id).first()
        if not record:
            raise ServiceError.not_found("Transaction", transaction_id)
        return record

    def create_transaction(self, person_id: Optional[int], payload: TransactionCreate) -> Dict[str, Any]:
        owner = person_id if person_id is not None else payload.person_id
        record = TransactionRecord(
            person_id=self.people.ensure_exists(owner),
            date=payload.transaction_date or date.today(),
            amount=payload.amount,
            merchant=payload.merchant,
            categories=payload.categories,
            description=payload.description,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record.to_dict()

    def get_transactions(self, person_id: Optional[int], sort_by_date_desc: Optional[bool] = True) -> List[Dict[str, Any]]:
        query = self._query(person_id)
        if sort_by_date_desc is True:
            query = query.order_by(TransactionRecord.date.desc(), TransactionRecord.id.desc())
        elif sort_by_date_desc is False:
            query = query.order_by(TransactionRecord.date.asc(), TransactionRecord.id.asc())
        return [row.to_dict() for row in query.all()]

    def get_transaction(self, transaction_id: int, person_id: Optional[int]) -> Dict[str, Any]:
        return self._get(transaction_id, person_id).to_dict()

    def update_transaction(self, transaction_id: int, person_id: Optional[int], payload: TransactionCreate) -> Dict[str, Any]:
        record = self._get(transaction_id, person_id)
        if payload.person_id is not None:
            record.person_id = self.people.ensure_exists(payload.person_id)
        record.date = payload.transaction_date or record.date
        record.amount = payload.amount
        record.merchant = payload.merchant
        record.categories = payload.categories
        record.description = payload.description
        self.db.commit()
        self.db.refresh(record)
        return record.to_dict()

    def delete_transaction(self, transaction_id: int, person_id: Optional[int]) -> None:
        record = self._get(transaction_id, person_id)
        self.db.delete(record)
        self.db.commit()

    def engine_transactions(self, person_id: Optional[int]) -> List[Transaction]:
        try:
            return [transaction_from_dict(row) for row in self.get_transactions(person_id, sort_by_date_desc=False)]
        except MalformedRecordError as exc:
            logger.warning("Malformed transaction record: %s", exc)
            raise ServiceError.malformed(exc) from exc

    def engine_transaction(self, transaction_id: int, person_id: Optional[int]) -> Transaction:
        try:
            return transaction_from_dict(self.get_transaction(transaction_id, person_id))
        except MalformedRecordError as exc:
            raise ServiceError.malformed(exc) from exc
