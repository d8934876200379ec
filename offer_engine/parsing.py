"""
Build engine records from stored JSON records.

The store writes camelCase keys; snake_case keys are accepted too so that
API payloads and ORM rows can be passed straight through.
"""

import math
from typing import Any, FrozenSet, Mapping, Optional

from offer_engine.dates import parse_date
from offer_engine.errors import MalformedRecordError
from offer_engine.models import (
    ComboTerms,
    Offer,
    PercentBackTerms,
    SpendingTerms,
    Tier,
    TieredTerms,
    Transaction,
    TransactionTerms,
)

OFFER_TYPES = ("spending", "transactions", "percent-back", "combo")


def _snake(key: str) -> str:
    return "".join("_" + c.lower() if c.isupper() else c for c in key)


def _get(raw: Mapping[str, Any], key: str, default=None):
    """Look a camelCase key up, falling back to its snake_case spelling."""
    if key in raw and raw[key] is not None:
        return raw[key]
    snake = _snake(key)
    if snake in raw and raw[snake] is not None:
        return raw[snake]
    return default


def _number(raw: Mapping[str, Any], key: str) -> Optional[float]:
    value = _get(raw, key)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise MalformedRecordError(key, value, "expected a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedRecordError(key, value, "expected a number") from None
    if not math.isfinite(number):
        raise MalformedRecordError(key, value, "expected a finite number")
    return number


def _count(raw: Mapping[str, Any], key: str) -> Optional[int]:
    value = _number(raw, key)
    if value is None:
        return None
    if value != int(value):
        raise MalformedRecordError(key, value, "expected a whole number")
    return int(value)


def parse_categories(raw: Mapping[str, Any]) -> FrozenSet[str]:
    """
    Lowercase category labels from `categories` (list or comma separated
    string) or the legacy single `category` field.
    """
    value = _get(raw, "categories")
    if value is None:
        value = _get(raw, "category")
    if value is None:
        return frozenset()
    if isinstance(value, str):
        value = value.split(",")
    try:
        labels = [str(label).strip().lower() for label in value]
    except TypeError:
        raise MalformedRecordError("categories", value, "expected a list of labels") from None
    return frozenset(label for label in labels if label)


def _parse_tiers(raw: Mapping[str, Any]):
    value = _get(raw, "tiers")
    if not value:
        return ()
    tiers = []
    for entry in value:
        if not isinstance(entry, Mapping):
            raise MalformedRecordError("tiers", entry, "expected {threshold, reward}")
        threshold = _number(entry, "threshold")
        reward = _number(entry, "reward")
        if threshold is None or reward is None:
            raise MalformedRecordError("tiers", entry, "threshold and reward are required")
        tiers.append(Tier(threshold=threshold, reward=reward))
    return tuple(sorted(tiers, key=lambda t: t.threshold))


def _infer_type(raw: Mapping[str, Any]) -> str:
    if _get(raw, "percentBack") is not None:
        return "percent-back"
    has_spending = _get(raw, "spendingTarget") is not None
    has_count = _get(raw, "transactionTarget") is not None
    if has_spending and has_count:
        return "combo"
    if has_count:
        return "transactions"
    return "spending"


def _parse_terms(raw: Mapping[str, Any]):
    offer_type = _get(raw, "type") or _infer_type(raw)
    if offer_type not in OFFER_TYPES:
        raise MalformedRecordError("type", offer_type, f"expected one of {', '.join(OFFER_TYPES)}")

    tiers = _parse_tiers(raw)
    if tiers and offer_type in ("spending", "transactions"):
        return TieredTerms(measure=offer_type, tiers=tiers)

    if offer_type == "spending":
        return SpendingTerms(target=_number(raw, "spendingTarget"))
    if offer_type == "transactions":
        return TransactionTerms(target=_count(raw, "transactionTarget"))
    if offer_type == "combo":
        return ComboTerms(
            spending_target=_number(raw, "spendingTarget"),
            transaction_target=_count(raw, "transactionTarget"),
        )
    return PercentBackTerms(
        percent=_number(raw, "percentBack"),
        max_back=_number(raw, "maxBack"),
        min_spend_threshold=_number(raw, "minSpendThreshold"),
    )


def offer_from_dict(raw: Mapping[str, Any]) -> Offer:
    """
    Build an Offer from a stored record.

    Raises:
        MalformedRecordError: for unparseable dates or numbers, an unknown
            type, or a window that starts after it ends
    """
    start_date = parse_date(_get(raw, "startDate"), "startDate")
    end_date = parse_date(_get(raw, "endDate"), "endDate")
    if start_date > end_date:
        raise MalformedRecordError("startDate", start_date.isoformat(), "starts after endDate")

    min_transaction = _number(raw, "minTransaction")
    return Offer(
        id=_get(raw, "id"),
        name=_get(raw, "name", ""),
        start_date=start_date,
        end_date=end_date,
        terms=_parse_terms(raw),
        categories=parse_categories(raw),
        min_transaction=min_transaction if min_transaction else None,
        reward=_number(raw, "reward") or 0.0,
        bonus_reward=_number(raw, "bonusReward"),
        monthly_tracking=bool(_get(raw, "monthlyTracking", False)),
        description=_get(raw, "description", ""),
        person_id=_get(raw, "personId"),
    )


def transaction_from_dict(raw: Mapping[str, Any]) -> Transaction:
    """Build a Transaction from a stored record."""
    amount = _number(raw, "amount")
    if amount is None:
        raise MalformedRecordError("amount", _get(raw, "amount"), "amount is required")

    return Transaction(
        id=_get(raw, "id"),
        date=parse_date(_get(raw, "date"), "date"),
        amount=amount,
        merchant=_get(raw, "merchant", ""),
        categories=parse_categories(raw),
        description=_get(raw, "description", ""),
        person_id=_get(raw, "personId"),
    )
