from .person import Person, PersonCreate
from .offer import OfferRecord, OfferCreate, OfferRequest, OfferType, TierSchema
from .transaction import TransactionRecord, TransactionCreate, TransactionRequest

__all__ = [
    "Person",
    "PersonCreate",
    "OfferRecord",
    "OfferCreate",
    "OfferRequest",
    "OfferType",
    "TierSchema",
    "TransactionRecord",
    "TransactionCreate",
    "TransactionRequest",
]
