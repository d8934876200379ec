from .eligibility import is_eligible, matching_offers_for_transaction
from .errors import MalformedRecordError, OfferEngineError
from .parsing import offer_from_dict, transaction_from_dict
from .progress import compute_progress, summarize_offers
from .recommender import get_optimal_spending_recommendations

__all__ = [
    "is_eligible",
    "matching_offers_for_transaction",
    "MalformedRecordError",
    "OfferEngineError",
    "offer_from_dict",
    "transaction_from_dict",
    "compute_progress",
    "summarize_offers",
    "get_optimal_spending_recommendations",
]
