import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.services.errors import ServiceError
from app.services.offer_service import OfferService
from app.services.serializers import to_jsonable
from app.services.transaction_service import TransactionService
from offer_engine.eligibility import matching_offers_for_transaction, matching_transactions_for_offer
from offer_engine.progress import compute_progress, summarize_offers
from offer_engine.recommender import get_optimal_spending_recommendations

logger = logging.getLogger(__name__)


class InsightService:
    """
    Read-only engine queries over one person's stored offers and ledger.

    Every call loads a fresh snapshot and recomputes from scratch; nothing
    derived is stored.
    """

    def __init__(self, db: Session, config: Optional[dict] = None) -> None:
        self.db = db
        self.offers = OfferService(db)
        self.transactions = TransactionService(db)
        self.config = config if config is not None else settings.engine_config()

    def _snapshot(self, person_id: Optional[int]):
        self.offers.people.ensure_exists(person_id)
        return self.offers.engine_offers(person_id), self.transactions.engine_transactions(person_id)

    def progress(self, person_id: Optional[int], today: date) -> List[Dict[str, Any]]:
        offers, transactions = self._snapshot(person_id)
        return [to_jsonable(compute_progress(offer, transactions, today)) for offer in offers]

    def offer_progress(self, offer_id: int, person_id: Optional[int], today: date) -> Dict[str, Any]:
        offer = self.offers.engine_offer(offer_id, person_id)
        transactions = self.transactions.engine_transactions(person_id)
        return {
            "offer": to_jsonable(offer),
            "progress": to_jsonable(compute_progress(offer, transactions, today)),
        }

    def offer_transactions(
        self,
        offer_id: int,
        person_id: Optional[int],
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """Eligible transactions of an offer, optionally narrowed to [start, end]."""
        offer = self.offers.engine_offer(offer_id, person_id)
        start = start or offer.start_date
        end = end or offer.end_date
        if start > end:
            raise ServiceError(
                400,
                "VALIDATION_ERROR",
                "start must be on or before end.",
                {"start": start.isoformat(), "end": end.isoformat()},
            )
        transactions = self.transactions.engine_transactions(person_id)
        return to_jsonable(matching_transactions_for_offer(offer, transactions, start, end))

    def dashboard(self, person_id: Optional[int], today: date) -> Dict[str, Any]:
        offers, transactions = self._snapshot(person_id)
        summaries = summarize_offers(offers, transactions, today)
        return {
            "today": today.isoformat(),
            "offers": [
                {
                    "offer": to_jsonable(s.offer),
                    "progress": to_jsonable(s.progress),
                    "transaction_count": len(s.transactions),
                    "is_complete": s.is_complete,
                    "current_month_complete": s.current_month_complete,
                    "has_actionable_months": s.has_actionable_months,
                    "expired": s.expired,
                    "not_started": s.not_started,
                    "days_until_expiration": s.days_until_expiration,
                    "priority_bucket": s.priority_bucket,
                }
                for s in summaries
            ],
        }

    def recommendations(self, person_id: Optional[int], today: date) -> Dict[str, Any]:
        offers, transactions = self._snapshot(person_id)
        result = get_optimal_spending_recommendations(offers, transactions, today, self.config)
        logger.info(
            "Recommendations for person %s on %s: %d recommendations, %d overlaps",
            person_id,
            today.isoformat(),
            len(result.recommendations),
            len(result.overlaps),
        )
        return to_jsonable(result)

    def matching_offers(self, transaction_id: int, person_id: Optional[int]) -> List[Dict[str, Any]]:
        transaction = self.transactions.engine_transaction(transaction_id, person_id)
        offers = self.offers.engine_offers(person_id)
        return [to_jsonable(offer) for offer in matching_offers_for_transaction(transaction, offers)]
