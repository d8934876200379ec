"""
Remaining-need arithmetic shared by the recommendation generator and the
master strategy planner.
"""

import math
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from offer_engine.dates import days_remaining, intersect_windows
from offer_engine.models import (
    ComboTerms,
    Compatibility,
    MonthlyTarget,
    MonthNeed,
    Offer,
    PercentBackTerms,
    RemainingNeeds,
    Savings,
    SpendingTerms,
    TieredTerms,
    TrackedOffer,
    TransactionPlan,
    TransactionTerms,
)

URGENT_DAYS = 7


def shortfall(offer: Offer, spending: float, transaction_count: int) -> Tuple[float, int]:
    """
    Spending and transactions still missing for the offer to complete,
    given what has been recorded so far in the same period.

    Percent-back offers are "complete" once the cap is earned, so they need
    the spending that earns max_back (or at least the minimum threshold).
    Offers without a usable target need nothing.
    """
    terms = offer.terms
    spend_goal = 0.0
    count_goal = 0

    if isinstance(terms, TieredTerms):
        if terms.measure == "transactions":
            count_goal = math.ceil(terms.highest_tier.threshold)
        else:
            spend_goal = terms.highest_tier.threshold
    elif isinstance(terms, SpendingTerms):
        spend_goal = terms.target or 0.0
    elif isinstance(terms, TransactionTerms):
        count_goal = terms.target or 0
    elif isinstance(terms, ComboTerms):
        spend_goal = terms.spending_target or 0.0
        count_goal = terms.transaction_target or 0
    elif isinstance(terms, PercentBackTerms):
        if terms.max_back and terms.percent:
            spend_goal = terms.max_back / (terms.percent / 100.0)
        spend_goal = max(spend_goal, terms.min_spend_threshold or 0.0)

    spending_remaining = round(max(0.0, spend_goal - spending), 2)
    transactions_remaining = max(0, count_goal - transaction_count)
    return spending_remaining, transactions_remaining


def remaining_needs(
    tracked: TrackedOffer,
    period_start: date,
    period_end: date,
    today: date,
) -> RemainingNeeds:
    """
    What the offer still requires within [period_start, period_end].

    Monthly offers are examined month by month using the progress already
    computed for them; completed months and months outside the period are
    skipped. Other offers need their whole remaining shortfall if their
    window touches the period and they are not complete.
    """
    offer = tracked.offer
    progress = tracked.progress
    needs = RemainingNeeds(offer_id=offer.id, type=offer.type)

    if offer.monthly_tracking:
        for month in progress.months:
            if month.completed:
                continue
            window = intersect_windows((month.start, month.end), (period_start, period_end))
            if window is None:
                continue

            spending_remaining, transactions_remaining = shortfall(
                offer, month.spending, month.transaction_count
            )
            if spending_remaining > 0 or transactions_remaining > 0:
                needs.monthly_breakdown.append(
                    MonthNeed(
                        month=month.month,
                        key=month.key,
                        start=window[0],
                        end=window[1],
                        spending_remaining=spending_remaining,
                        transactions_remaining=transactions_remaining,
                        days_remaining=days_remaining(window[1], today),
                    )
                )
                needs.spending_remaining += spending_remaining
                needs.transactions_remaining += transactions_remaining
                needs.needed = True
        needs.spending_remaining = round(needs.spending_remaining, 2)
        return needs

    window = intersect_windows((offer.start_date, offer.end_date), (period_start, period_end))
    if window is not None and not progress.completed:
        needs.spending_remaining, needs.transactions_remaining = shortfall(
            offer, progress.total_spending, progress.total_transactions
        )
        needs.needed = needs.spending_remaining > 0 or needs.transactions_remaining > 0
    return needs


def transaction_plan(
    needs: Sequence[RemainingNeeds],
    compatibility: Compatibility,
    today: date,
    urgent_days: int = URGENT_DAYS,
) -> TransactionPlan:
    """
    Cheapest single pattern of transactions that satisfies every need.

    Shared transactions count toward every offer, so the totals are the
    largest requirement rather than the sum. Monthly targets are merged per
    calendar month the same way. Spending needs at least one transaction,
    and when a minimum transaction applies the spending must cover every
    required transaction at that minimum.
    """
    months: Dict[str, MonthlyTarget] = {}
    total_spending = 0.0
    total_transactions = 0

    for need in needs:
        if not need.needed:
            continue
        total_spending = max(total_spending, need.spending_remaining)
        total_transactions = max(total_transactions, need.transactions_remaining)

        for month in need.monthly_breakdown:
            target = months.get(month.key)
            if target is None:
                target = MonthlyTarget(
                    month=month.month,
                    key=month.key,
                    start=month.start,
                    end=month.end,
                    spending_needed=0.0,
                    transactions_needed=0,
                    days_remaining=month.days_remaining,
                    urgent=month.days_remaining < urgent_days,
                )
                months[month.key] = target
            target.spending_needed = max(target.spending_needed, month.spending_remaining)
            target.transactions_needed = max(target.transactions_needed, month.transactions_remaining)

    if total_spending > 0:
        total_transactions = max(total_transactions, 1)
    if compatibility.min_transaction > 0:
        total_spending = max(total_spending, total_transactions * compatibility.min_transaction)

    avg_per_transaction = 0.0
    if total_transactions > 0 and total_spending > 0:
        avg_per_transaction = round(total_spending / total_transactions, 2)

    return TransactionPlan(
        total_spending=round(total_spending, 2),
        total_transactions=total_transactions,
        avg_per_transaction=avg_per_transaction,
        monthly=sorted(months.values(), key=lambda m: m.key),
    )


def _dollar_equivalent(need: RemainingNeeds, offer: Offer) -> float:
    return max(need.spending_remaining, need.transactions_remaining * (offer.min_transaction or 0.0))


def _transaction_equivalent(need: RemainingNeeds, offer: Offer) -> int:
    if need.transactions_remaining > 0:
        return need.transactions_remaining
    return 1 if need.spending_remaining > 0 else 0


def estimate_savings(
    needs: Sequence[RemainingNeeds],
    offers: Sequence[Offer],
    plan: TransactionPlan,
) -> Optional[Savings]:
    """
    Spending and transactions avoided by following the shared plan instead
    of completing each offer on its own.

    Separately, each offer costs its own shortfall; a transaction-count need
    is valued at the offer's minimum transaction. Together, the plan's totals
    apply once. Returns None when nothing is saved.
    """
    separate_spending = 0.0
    separate_transactions = 0
    for need, offer in zip(needs, offers):
        if not need.needed:
            continue
        separate_spending += _dollar_equivalent(need, offer)
        separate_transactions += _transaction_equivalent(need, offer)

    dollars_saved = round(max(0.0, separate_spending - plan.total_spending), 2)
    transactions_saved = max(0, separate_transactions - plan.total_transactions)
    if dollars_saved <= 0 and transactions_saved <= 0:
        return None

    return Savings(
        dollars_saved=dollars_saved,
        transactions_saved=transactions_saved,
        separate_spending=round(separate_spending, 2),
        together_spending=plan.total_spending,
        separate_transactions=separate_transactions,
        together_transactions=plan.total_transactions,
    )


def needs_for(
    offers: Sequence[TrackedOffer],
    period_start: date,
    period_end: date,
    today: date,
) -> List[RemainingNeeds]:
    return [remaining_needs(t, period_start, period_end, today) for t in offers]


def describe_plan(plan: TransactionPlan, categories: Sequence[str], min_transaction: float) -> str:
    """
    One-line instruction for a plan.

    Example:
        Spend $200.00 across 3 transactions of at least $50.00 each in online
    """
    if plan.total_transactions == 0 and plan.total_spending == 0:
        return "Nothing left to do"

    noun = "transaction" if plan.total_transactions == 1 else "transactions"
    if plan.total_spending > 0:
        text = f"Spend ${plan.total_spending:.2f} across {plan.total_transactions} {noun}"
    else:
        text = f"Make {plan.total_transactions} {noun}"
    if min_transaction:
        text += f" of at least ${min_transaction:.2f} each"
    text += f" in {', '.join(categories)}" if categories else " in any category"
    return text
