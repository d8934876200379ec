"""
Master strategy planner.
Greedy set-cover over the feasible overlaps: one phase per selected overlap,
then one phase per offer no selected overlap covers.
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Sequence

from offer_engine.dates import days_remaining, days_until, intersect_windows
from offer_engine.models import (
    Compatibility,
    CoverageSelection,
    MasterStrategy,
    OfferId,
    Overlap,
    Phase,
    ScoredOverlap,
    TrackedOffer,
)
from offer_engine.needs import URGENT_DAYS, needs_for, transaction_plan
from offer_engine.progress import potential_reward

logger = logging.getLogger(__name__)


def overlap_score(overlap: Overlap) -> float:
    """More offers and a tighter window both score higher."""
    return overlap.offer_count * (365 / max(overlap.window_days, 1))


def select_overlaps(
    active_offers: Sequence[TrackedOffer],
    overlaps: Sequence[Overlap],
) -> CoverageSelection:
    """
    Greedy maximum-coverage selection.

    Overlaps are visited by descending score; one is kept when it covers at
    least one offer not covered by an overlap kept before it. This is the
    usual set-cover approximation, not an optimum.
    """
    if not active_offers:
        return CoverageSelection(selected=[], uncovered=[], total_coverage=0, efficiency=0)

    scored = [ScoredOverlap(overlap=o, score=overlap_score(o)) for o in overlaps if o.offers]
    # sort is stable, so equal scores keep the overlap order (largest first)
    scored.sort(key=lambda s: -s.score)

    selected = []
    covered = set()
    for candidate in scored:
        new_ids = tuple(i for i in candidate.overlap.offer_ids if i not in covered)
        if not new_ids:
            continue
        candidate.new_offer_ids = new_ids
        selected.append(candidate)
        covered.update(candidate.overlap.offer_ids)

    uncovered = [t for t in active_offers if t.id not in covered]
    return CoverageSelection(
        selected=selected,
        uncovered=uncovered,
        total_coverage=len(covered),
        efficiency=sum(s.overlap.offer_count for s in selected) + len(uncovered),
    )


def _current_month_complete(offers: Sequence[TrackedOffer], today: date) -> bool:
    for tracked in offers:
        if not tracked.offer.monthly_tracking:
            continue
        current = tracked.progress.month_for(today)
        if current is not None and current.completed:
            return True
    return False


def _remaining_months(offers: Sequence[TrackedOffer], start: date, end: date, today: date) -> Dict[OfferId, List[str]]:
    remaining = {}
    for tracked in offers:
        if not tracked.offer.monthly_tracking:
            continue
        labels = [
            m.month
            for m in tracked.progress.months
            if not m.completed
            and m.end >= today
            and intersect_windows((m.start, m.end), (start, end)) is None
        ]
        if labels:
            remaining[tracked.id] = labels
    return remaining


def _build_phase(
    kind: str,
    offers: Sequence[TrackedOffer],
    start: date,
    end: date,
    compatibility: Compatibility,
    today: date,
    urgent_days: int,
) -> Phase:
    needs = needs_for(offers, start, end, today)
    complete = not any(need.needed for need in needs)
    return Phase(
        number=0,
        kind=kind,
        offer_ids=tuple(t.id for t in offers),
        offer_names=tuple(t.name for t in offers),
        start=start,
        end=end,
        categories=tuple(sorted(compatibility.categories)),
        min_transaction=compatibility.min_transaction,
        plan=transaction_plan(needs, compatibility, today, urgent_days),
        needs=needs,
        complete=complete,
        not_started=start > today,
        expired=end < today,
        days_until_expiration=days_until(end, today),
        days_until_start=(start - today).days,
        urgent=not complete and days_remaining(end, today) < urgent_days,
        current_month_complete=_current_month_complete(offers, today),
        remaining_months=_remaining_months(offers, start, end, today),
    )


def phase_priority(phase: Phase) -> float:
    """
    Ordering rank for overlap phases, lowest first.

    1   open and incomplete
    2   open and complete
    3.5 current month done but later months still open
    5   expired and complete
    6   expired and incomplete (missed)
    """
    if phase.current_month_complete and not phase.complete:
        return 3.5
    if not phase.expired:
        return 2 if phase.complete else 1
    return 5 if phase.complete else 6


def plan(
    active_offers: Sequence[TrackedOffer],
    overlaps: Sequence[Overlap],
    today: date,
    config: dict = None,
) -> Optional[MasterStrategy]:
    """
    Build the phased master strategy.

    Args:
        active_offers: offers that are active or upcoming and not fully complete
        overlaps: feasible overlaps among those offers
        today: reference date
        config: optional config dict; reads "urgent_days"

    Returns:
        MasterStrategy, or None when there are no active offers
    """
    if not active_offers:
        return None

    urgent_days = (config or {}).get("urgent_days", URGENT_DAYS)
    selection = select_overlaps(active_offers, overlaps)

    overlap_phases = [
        _build_phase(
            "overlap",
            s.overlap.offers,
            s.overlap.start,
            s.overlap.end,
            s.overlap.compatibility,
            today,
            urgent_days,
        )
        for s in selection.selected
    ]
    overlap_phases.sort(key=lambda p: (phase_priority(p), p.days_until_expiration))

    individual_phases = []
    for tracked in selection.uncovered:
        offer = tracked.offer
        compatibility = Compatibility(
            categories=offer.categories,
            min_transaction=offer.min_transaction or 0.0,
        )
        individual_phases.append(
            _build_phase(
                "individual",
                [tracked],
                max(today, offer.start_date),
                offer.end_date,
                compatibility,
                today,
                urgent_days,
            )
        )
    individual_phases.sort(key=lambda p: p.days_until_expiration)

    phases = overlap_phases + individual_phases
    for number, phase in enumerate(phases, start=1):
        phase.number = number

    total_potential_reward = round(
        sum(potential_reward(t.offer, t.progress) for t in active_offers), 2
    )
    logger.debug(
        "Master strategy: %d overlap phases, %d individual phases",
        len(overlap_phases),
        len(individual_phases),
    )

    return MasterStrategy(
        offer_count=len(active_offers),
        offer_ids=tuple(t.id for t in active_offers),
        offer_names=tuple(t.name for t in active_offers),
        phases=phases,
        selection=selection,
        total_potential_reward=total_potential_reward,
    )
