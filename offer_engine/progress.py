"""
Offer progress computation from the transaction ledger.
Deterministic and unit-testable: `today` is always passed in.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from offer_engine.dates import days_until, month_key, month_label, month_windows
from offer_engine.eligibility import eligible_transactions
from offer_engine.models import (
    STATUS_ACTIVE,
    STATUS_EXPIRED,
    STATUS_UPCOMING,
    ComboTerms,
    MonthProgress,
    Offer,
    OfferProgress,
    OfferSummary,
    PercentBackTerms,
    SpendingTerms,
    TieredTerms,
    Tier,
    Transaction,
    TransactionTerms,
)

logger = logging.getLogger(__name__)


@dataclass
class _Evaluation:
    completed: bool = False
    partially_completed: bool = False
    tier_reached: Optional[Tier] = None
    earned_reward: float = 0.0
    progress: float = 0.0


def offer_status(offer: Offer, today: date) -> str:
    """'expired' after end_date, 'active' inside the window, else 'upcoming'."""
    if today > offer.end_date:
        return STATUS_EXPIRED
    if offer.start_date <= today:
        return STATUS_ACTIVE
    return STATUS_UPCOMING


def tier_reached(offer: Offer, spending: float, transaction_count: int) -> Optional[Tier]:
    """
    Highest tier whose threshold is met, or None.

    The measured value is the transaction count for transaction offers and
    spending otherwise.
    """
    if not isinstance(offer.terms, TieredTerms):
        return None

    value = transaction_count if offer.terms.measure == "transactions" else spending
    reached = None
    for tier in offer.terms.tiers:
        if value >= tier.threshold:
            reached = tier
    return reached


def _percent(value: float, target: float) -> float:
    if target <= 0:
        return 100.0
    return min(100.0, value / target * 100.0)


def _evaluate(offer: Offer, spending: float, count: int) -> _Evaluation:
    """Apply the offer's completion logic to one spending/count pair."""
    terms = offer.terms
    result = _Evaluation()

    if isinstance(terms, TieredTerms):
        value = count if terms.measure == "transactions" else spending
        highest = terms.highest_tier
        result.progress = _percent(value, highest.threshold)
        reached = tier_reached(offer, spending, count)
        if reached is not None:
            result.tier_reached = reached
            result.earned_reward = reached.reward
            if reached.threshold == highest.threshold:
                result.completed = True
            else:
                result.partially_completed = True

    elif isinstance(terms, SpendingTerms):
        if terms.target:
            result.completed = spending >= terms.target
            result.progress = _percent(spending, terms.target)

    elif isinstance(terms, TransactionTerms):
        if terms.target:
            result.completed = count >= terms.target
            result.progress = _percent(count, terms.target)

    elif isinstance(terms, ComboTerms):
        checks = []
        fractions = []
        if terms.spending_target:
            checks.append(spending >= terms.spending_target)
            fractions.append(_percent(spending, terms.spending_target))
        if terms.transaction_target:
            checks.append(count >= terms.transaction_target)
            fractions.append(_percent(count, terms.transaction_target))
        if checks:
            result.completed = all(checks)
            result.partially_completed = any(checks) and not result.completed
            result.progress = min(fractions)

    elif isinstance(terms, PercentBackTerms):
        return _evaluate_percent_back(terms, spending)

    if result.completed and not isinstance(terms, TieredTerms):
        result.earned_reward = offer.reward
    return result


def _evaluate_percent_back(terms: PercentBackTerms, spending: float) -> _Evaluation:
    # The threshold is a floor: below it nothing accrues, above it the full
    # spending earns the rate.
    result = _Evaluation()
    threshold = terms.min_spend_threshold or 0.0
    if terms.percent and spending >= threshold:
        earned = spending * terms.percent / 100.0
        if terms.max_back:
            earned = min(earned, terms.max_back)
        result.earned_reward = round(earned, 2)

    if terms.max_back:
        result.completed = result.earned_reward >= terms.max_back
        result.progress = _percent(result.earned_reward, terms.max_back)
    elif threshold:
        result.progress = _percent(spending, threshold)
    result.partially_completed = result.earned_reward > 0 and not result.completed
    return result


def compute_progress(offer: Offer, transactions: Iterable[Transaction], today: date) -> OfferProgress:
    """
    Compute an offer's progress against the ledger.

    Args:
        offer: the offer to evaluate
        transactions: the full ledger; ineligible entries are filtered out
        today: reference date for the status

    Returns:
        OfferProgress. Monthly offers get one MonthProgress per calendar
        month of the window, each clipped to the window.

    Example:
        >>> progress = compute_progress(offer, [], date(2025, 10, 1))
        >>> progress.completed
        False
    """
    status = offer_status(offer, today)
    eligible = eligible_transactions(offer, transactions)
    total_spending = round(sum(txn.amount for txn in eligible), 2)
    total_transactions = len(eligible)

    if not offer.monthly_tracking:
        evaluation = _evaluate(offer, total_spending, total_transactions)
        return OfferProgress(
            offer_id=offer.id,
            status=status,
            monthly=False,
            total_spending=total_spending,
            total_transactions=total_transactions,
            completed=evaluation.completed,
            partially_completed=evaluation.partially_completed,
            progress=evaluation.progress,
            tier_reached=evaluation.tier_reached,
            earned_reward=evaluation.earned_reward,
        )

    months: List[MonthProgress] = []
    for start, end in month_windows(offer.start_date, offer.end_date):
        in_month = [txn for txn in eligible if start <= txn.date <= end]
        spending = round(sum(txn.amount for txn in in_month), 2)
        evaluation = _evaluate(offer, spending, len(in_month))
        months.append(
            MonthProgress(
                month=month_label(start),
                key=month_key(start),
                start=start,
                end=end,
                spending=spending,
                transaction_count=len(in_month),
                completed=evaluation.completed,
                partially_completed=evaluation.partially_completed,
                tier_reached=evaluation.tier_reached,
                earned_reward=evaluation.earned_reward,
            )
        )

    total_completed = sum(1 for m in months if m.completed)
    all_completed = bool(months) and total_completed == len(months)
    bonus_earned = offer.bonus_reward if offer.bonus_reward and all_completed else 0.0

    return OfferProgress(
        offer_id=offer.id,
        status=status,
        monthly=True,
        total_spending=total_spending,
        total_transactions=total_transactions,
        completed=all_completed,
        partially_completed=not all_completed and any(m.completed or m.partially_completed for m in months),
        progress=total_completed / len(months) * 100.0 if months else 0.0,
        tier_reached=None,
        earned_reward=sum(m.earned_reward for m in months) + bonus_earned,
        months=months,
        total_completed=total_completed,
        bonus_earned=bonus_earned,
    )


def potential_reward(offer: Offer, progress: OfferProgress) -> float:
    """
    Reward still on the table for an offer.

    Per-period value is the highest tier reward for tiered offers, max_back
    for percent-back offers and `reward` otherwise. Monthly offers multiply
    it by the number of incomplete months. The bonus is always added.
    """
    if isinstance(offer.terms, TieredTerms):
        unit = max(t.reward for t in offer.terms.tiers)
    elif isinstance(offer.terms, PercentBackTerms):
        unit = offer.terms.max_back or 0.0
    else:
        unit = offer.reward or 0.0

    if offer.monthly_tracking:
        unit *= sum(1 for m in progress.months if not m.completed)
    return unit + (offer.bonus_reward or 0.0)


def _priority_bucket(summary: OfferSummary) -> int:
    # 1 active-urgent, 2 active-lower-priority, 3 archived success,
    # 4 missed, 5 upcoming
    if summary.offer.monthly_tracking and not summary.has_actionable_months:
        return 3 if summary.is_complete else 4
    if not summary.expired and not summary.not_started:
        if not summary.is_complete and not summary.current_month_complete:
            return 1
        return 2
    if summary.expired:
        return 3 if summary.is_complete else 4
    return 5


def summarize_offers(
    offers: Iterable[Offer],
    transactions: Iterable[Transaction],
    today: date,
) -> List[OfferSummary]:
    """
    Every offer with its progress and eligible transactions, ordered for a
    dashboard: priority bucket first, then soonest expiration.
    """
    transactions = list(transactions)
    summaries = []

    for offer in offers:
        progress = compute_progress(offer, transactions, today)
        current_month_complete = False
        has_actionable_months = True

        if offer.monthly_tracking:
            current = progress.month_for(today)
            current_month_complete = bool(current and current.completed)
            has_actionable_months = any(
                not m.completed and m.end >= today for m in progress.months
            )

        summary = OfferSummary(
            offer=offer,
            progress=progress,
            transactions=eligible_transactions(offer, transactions),
            is_complete=progress.fully_complete,
            current_month_complete=current_month_complete,
            has_actionable_months=has_actionable_months,
            expired=today > offer.end_date,
            not_started=today < offer.start_date,
            days_until_expiration=days_until(offer.end_date, today),
            priority_bucket=0,
        )
        summary.priority_bucket = _priority_bucket(summary)
        summaries.append(summary)

    summaries.sort(key=lambda s: (s.priority_bucket, s.days_until_expiration))
    logger.debug("Summarized %d offers", len(summaries))
    return summaries
