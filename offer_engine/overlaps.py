"""
Overlap search: which groups of active offers can be advanced by the same
transactions at the same time.

The search enumerates subsets of the active offers and is exponential in
their number. Offers are capped (DEFAULT_CONFIG["max_overlap_offers"]) and
any subset containing a pair that can never overlap is pruned before it is
built.
"""

import logging
from datetime import date
from typing import Iterator, List, Optional, Sequence, Set, Tuple

from offer_engine.models import Compatibility, Offer, Overlap, TrackedOffer

logger = logging.getLogger(__name__)


DEFAULT_CONFIG = {
    # Realistically fewer than 15 offers run concurrently; 2^15 subsets is
    # the most the search will consider.
    "max_overlap_offers": 15,
}


def combine_compatibility(offers: Sequence[Offer]) -> Optional[Compatibility]:
    """
    Category and minimum-amount requirements for one transaction to count
    toward every offer, or None when no transaction can.

    Rules:
    - No offer restricts categories: any category works
    - One offer restricts categories: its categories
    - Several restrict: the intersection of their categories; empty means
      the combination is infeasible
    - The minimum transaction is the largest minimum in the group
    """
    restrictive = [offer.categories for offer in offers if offer.categories]

    if not restrictive:
        categories = frozenset()
    elif len(restrictive) == 1:
        categories = frozenset(restrictive[0])
    else:
        categories = frozenset.intersection(*restrictive)
        if not categories:
            return None

    min_transaction = max((offer.min_transaction or 0.0) for offer in offers)
    return Compatibility(categories=categories, min_transaction=min_transaction)


def offer_combinations(
    n: int,
    blocked: Optional[Set[Tuple[int, int]]] = None,
    min_size: int = 2,
) -> Iterator[Tuple[int, ...]]:
    """
    Yield index combinations of range(n) with at least min_size members.

    Combinations are grown depth-first over an index array; an index is only
    appended when it forms no blocked pair with the indices already chosen,
    so no superset of a blocked pair is ever produced.

    Example:
        >>> sorted(offer_combinations(3))
        [(0, 1), (0, 1, 2), (0, 2), (1, 2)]
    """
    blocked = blocked or set()
    stack: List[Tuple[int, ...]] = [(i,) for i in reversed(range(n))]

    while stack:
        combo = stack.pop()
        if len(combo) >= min_size:
            yield combo
        for nxt in reversed(range(combo[-1] + 1, n)):
            if any((i, nxt) in blocked for i in combo):
                continue
            stack.append(combo + (nxt,))


def _window(tracked: TrackedOffer, today: date) -> Tuple[date, date]:
    return max(tracked.offer.start_date, today), tracked.offer.end_date


def _cap_offers(offers: List[TrackedOffer], config: dict) -> List[TrackedOffer]:
    limit = config.get("max_overlap_offers", DEFAULT_CONFIG["max_overlap_offers"])
    if limit is None or len(offers) <= limit:
        return offers

    logger.warning(
        "Overlap search limited to %d of %d active offers (soonest ending kept)",
        limit,
        len(offers),
    )
    ranked = sorted(offers, key=lambda t: (t.offer.end_date, str(t.id)))[:limit]
    keep = {id(t) for t in ranked}
    return [t for t in offers if id(t) in keep]


def find_overlaps(
    active_offers: Sequence[TrackedOffer],
    today: date,
    config: dict = None,
) -> List[Overlap]:
    """
    Find every feasible combination of two or more active offers.

    Args:
        active_offers: offers that are active or upcoming and not fully complete
        today: windows are clipped so they never start in the past
        config: optional config dict (uses DEFAULT_CONFIG if not provided)

    Returns:
        Overlaps sorted by offer count, largest first. Within one size the
        combinations keep the input order of the offers.
    """
    if config is None:
        config = DEFAULT_CONFIG

    offers = _cap_offers(list(active_offers), config)
    n = len(offers)
    windows = [_window(t, today) for t in offers]

    # A pair that cannot overlap makes every superset infeasible too: date
    # windows intersect as a group iff they intersect pairwise, and an empty
    # category intersection stays empty.
    blocked = set()
    for i in range(n):
        for j in range(i + 1, n):
            if max(windows[i][0], windows[j][0]) > min(windows[i][1], windows[j][1]):
                blocked.add((i, j))
            elif combine_compatibility([offers[i].offer, offers[j].offer]) is None:
                blocked.add((i, j))

    overlaps = []
    for combo in offer_combinations(n, blocked):
        start = max(windows[i][0] for i in combo)
        end = min(windows[i][1] for i in combo)
        if start > end:
            continue

        members = tuple(offers[i] for i in combo)
        compatibility = combine_compatibility([t.offer for t in members])
        if compatibility is None:
            continue

        overlaps.append((combo, Overlap(offers=members, start=start, end=end, compatibility=compatibility)))

    overlaps.sort(key=lambda item: (-len(item[0]), item[0]))
    logger.debug("Found %d feasible overlaps among %d offers", len(overlaps), n)
    return [overlap for _, overlap in overlaps]
