from .errors import ServiceError
from .insight_service import InsightService
from .merchant_service import MerchantService
from .offer_service import OfferService
from .person_service import PersonService
from .transaction_service import TransactionService

__all__ = [
    "ServiceError",
    "InsightService",
    "MerchantService",
    "OfferService",
    "PersonService",
    "TransactionService",
]
