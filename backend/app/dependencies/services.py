from fastapi import Depends
from sqlalchemy.orm import Session

from app.dependencies.db import get_db
from app.services.insight_service import InsightService
from app.services.merchant_service import MerchantService
from app.services.offer_service import OfferService
from app.services.person_service import PersonService
from app.services.transaction_service import TransactionService


def get_person_service(db: Session = Depends(get_db)) -> PersonService:
    return PersonService(db)


def get_offer_service(db: Session = Depends(get_db)) -> OfferService:
    return OfferService(db)


def get_transaction_service(db: Session = Depends(get_db)) -> TransactionService:
    return TransactionService(db)


def get_merchant_service(db: Session = Depends(get_db)) -> MerchantService:
    return MerchantService(db)


def get_insight_service(db: Session = Depends(get_db)) -> InsightService:
    # Engine limits come from Settings (MAX_OVERLAP_OFFERS, URGENT_DAYS)
    return InsightService(db)
