"""
The single eligibility predicate shared by progress, overlap search and
transaction-to-offer lookups.
"""

from datetime import date
from typing import Iterable, List

from offer_engine.dates import in_window
from offer_engine.models import Offer, Transaction


def is_eligible(transaction: Transaction, offer: Offer) -> bool:
    """
    Does the transaction count toward the offer?

    Three independent conditions, all required:
    - the transaction date lies in [start_date, end_date] (inclusive)
    - the categories intersect, or the offer has no categories
    - the amount meets offer.min_transaction, when one is set
    """
    if not in_window(transaction.date, offer.start_date, offer.end_date):
        return False

    if offer.categories and offer.categories.isdisjoint(transaction.categories):
        return False

    if offer.min_transaction and transaction.amount < offer.min_transaction:
        return False

    return True


def eligible_transactions(offer: Offer, transactions: Iterable[Transaction]) -> List[Transaction]:
    return [txn for txn in transactions if is_eligible(txn, offer)]


def matching_offers_for_transaction(transaction: Transaction, offers: Iterable[Offer]) -> List[Offer]:
    """Offers the transaction counts toward, in input order."""
    return [offer for offer in offers if is_eligible(transaction, offer)]


def matching_transactions_for_offer(
    offer: Offer,
    transactions: Iterable[Transaction],
    start: date,
    end: date,
) -> List[Transaction]:
    """Eligible transactions restricted to the sub-window [start, end]."""
    return [
        txn for txn in transactions
        if in_window(txn.date, start, end) and is_eligible(txn, offer)
    ]
