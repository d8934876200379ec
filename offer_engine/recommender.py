"""
Recommendation engine for overlapping offers.
Turns feasible overlaps into ranked, non-redundant spending plans and
orchestrates the full recommendation query.
"""

import logging
from datetime import date
from typing import Iterable, List, Sequence

from offer_engine.dates import days_remaining
from offer_engine.models import (
    PRIORITY_HIGH,
    PRIORITY_MEDIUM,
    PRIORITY_ULTRA_HIGH,
    STATUS_ACTIVE,
    STATUS_UPCOMING,
    Compatibility,
    Deadline,
    Offer,
    Overlap,
    Recommendation,
    SpendingRecommendations,
    TrackedOffer,
    Transaction,
)
from offer_engine.needs import URGENT_DAYS, estimate_savings, needs_for, transaction_plan
from offer_engine.overlaps import DEFAULT_CONFIG, find_overlaps
from offer_engine.planner import plan
from offer_engine.progress import compute_progress

logger = logging.getLogger(__name__)


# Recommendation policy configuration
RECOMMENDATION_CONFIG = {
    "urgent_days": URGENT_DAYS,
}

PRIORITY_RANK = {
    PRIORITY_ULTRA_HIGH: 3,
    PRIORITY_HIGH: 2,
    PRIORITY_MEDIUM: 1,
}


def _default_config() -> dict:
    config = DEFAULT_CONFIG.copy()
    config.update(RECOMMENDATION_CONFIG)
    return config


def select_active_offers(
    offers: Iterable[Offer],
    transactions: Sequence[Transaction],
    today: date,
) -> List[TrackedOffer]:
    """
    Offers still worth working on: active or upcoming, and not fully complete
    (for monthly offers, at least one month incomplete).
    """
    active = []
    for offer in offers:
        progress = compute_progress(offer, transactions, today)
        if progress.status in (STATUS_ACTIVE, STATUS_UPCOMING) and not progress.fully_complete:
            active.append(TrackedOffer(offer=offer, progress=progress))
    return active


def _urgent_deadlines(offers: Sequence[TrackedOffer], today: date, urgent_days: int) -> List[Deadline]:
    deadlines = []
    for tracked in offers:
        left = days_remaining(tracked.offer.end_date, today)
        if left < urgent_days:
            deadlines.append(
                Deadline(
                    offer_id=tracked.id,
                    offer_name=tracked.name,
                    date=tracked.offer.end_date,
                    days_remaining=left,
                )
            )
    deadlines.sort(key=lambda d: d.date)
    return deadlines


def _completed_months(offers: Sequence[TrackedOffer]) -> List[str]:
    completed = {}
    for tracked in offers:
        for month in tracked.progress.months:
            if month.completed:
                completed[month.key] = month.month
    return [completed[key] for key in sorted(completed)]


def _overlap_recommendation(overlap: Overlap, today: date, urgent_days: int):
    needs = needs_for(overlap.offers, overlap.start, overlap.end, today)
    if not any(need.needed for need in needs):
        return None

    compatibility = overlap.compatibility
    spending_plan = transaction_plan(needs, compatibility, today, urgent_days)
    return Recommendation(
        offer_ids=overlap.offer_ids,
        offer_names=tuple(t.name for t in overlap.offers),
        priority=PRIORITY_ULTRA_HIGH if overlap.offer_count > 2 else PRIORITY_HIGH,
        period_start=overlap.start,
        period_end=overlap.end,
        categories=tuple(sorted(compatibility.categories)),
        min_transaction=compatibility.min_transaction,
        plan=spending_plan,
        needs=needs,
        savings=estimate_savings(needs, [t.offer for t in overlap.offers], spending_plan),
        urgent_deadlines=_urgent_deadlines(overlap.offers, today, urgent_days),
        completed_months=_completed_months(overlap.offers),
    )


def _single_offer_recommendation(tracked: TrackedOffer, today: date, urgent_days: int):
    offer = tracked.offer
    start = max(today, offer.start_date)
    needs = needs_for([tracked], start, offer.end_date, today)
    if not needs[0].needed:
        return None

    compatibility = Compatibility(
        categories=offer.categories,
        min_transaction=offer.min_transaction or 0.0,
    )
    return Recommendation(
        offer_ids=(offer.id,),
        offer_names=(offer.name,),
        priority=PRIORITY_MEDIUM,
        period_start=start,
        period_end=offer.end_date,
        categories=tuple(sorted(offer.categories)),
        min_transaction=compatibility.min_transaction,
        plan=transaction_plan(needs, compatibility, today, urgent_days),
        needs=needs,
        savings=None,
        urgent_deadlines=_urgent_deadlines([tracked], today, urgent_days),
        completed_months=_completed_months([tracked]),
    )


def prune_subsets(recommendations: List[Recommendation]) -> List[Recommendation]:
    """
    Drop every recommendation whose offers are all covered by a recommendation
    with strictly more offers. The survivors form an antichain under set
    inclusion of their offer ids.
    """
    id_sets = [set(rec.offer_ids) for rec in recommendations]
    survivors = []
    for rec, ids in zip(recommendations, id_sets):
        covered = any(
            len(other) > len(ids) and ids <= other
            for other in id_sets
        )
        if not covered:
            survivors.append(rec)
    return survivors


def _sort_key(rec: Recommendation):
    dollars_saved = rec.savings.dollars_saved if rec.savings else 0.0
    return (-PRIORITY_RANK.get(rec.priority, 0), -rec.offer_count, -dollars_saved)


def generate_recommendations(
    overlaps: Sequence[Overlap],
    active_offers: Sequence[TrackedOffer],
    today: date,
    config: dict = None,
) -> List[Recommendation]:
    """
    Build the ranked recommendation list.

    Rules:
    - One recommendation per overlap in which some offer still has a need
    - Recommendations covered by a larger one are discarded
    - Offers left uncovered get a single-offer recommendation when they
      still need something
    - Order: ultra-high > high > medium, then more offers, then more saved
    """
    if config is None:
        config = _default_config()
    urgent_days = config.get("urgent_days", URGENT_DAYS)

    recommendations = []
    for overlap in overlaps:
        rec = _overlap_recommendation(overlap, today, urgent_days)
        if rec is not None:
            recommendations.append(rec)

    recommendations = prune_subsets(recommendations)

    covered = {offer_id for rec in recommendations for offer_id in rec.offer_ids}
    for tracked in active_offers:
        if tracked.id in covered:
            continue
        rec = _single_offer_recommendation(tracked, today, urgent_days)
        if rec is not None:
            recommendations.append(rec)

    recommendations.sort(key=_sort_key)
    return recommendations


def get_optimal_spending_recommendations(
    offers: Iterable[Offer],
    transactions: Iterable[Transaction],
    today: date,
    config: dict = None,
) -> SpendingRecommendations:
    """
    Run the whole recommendation query against a snapshot of the ledger.

    Args:
        offers: every offer known for the person
        transactions: the full ledger
        today: reference date; nothing reads the clock
        config: optional config dict (uses defaults if not provided)

    Returns:
        SpendingRecommendations with the ranked recommendations, all
        feasible overlaps and the master strategy (None when no offer is
        active).
    """
    if config is None:
        config = _default_config()

    offers = list(offers)
    transactions = list(transactions)
    active = select_active_offers(offers, transactions, today)
    logger.debug("%d of %d offers are active and incomplete", len(active), len(offers))

    if not active:
        return SpendingRecommendations(recommendations=[], overlaps=[], master_strategy=None)

    overlaps = find_overlaps(active, today, config)
    recommendations = generate_recommendations(overlaps, active, today, config)
    logger.debug("Generated %d recommendations from %d overlaps", len(recommendations), len(overlaps))

    master_strategy = plan(active, overlaps, today, config)
    return SpendingRecommendations(
        recommendations=recommendations,
        overlaps=overlaps,
        master_strategy=master_strategy,
    )
