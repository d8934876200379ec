"""
Data models for the offer engine.
All models are dataclasses; offers and transactions are frozen snapshots,
everything else is derived and recomputed on every query.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import ClassVar, Dict, FrozenSet, List, Optional, Tuple, Union


OfferId = Union[int, str]

STATUS_UPCOMING = "upcoming"
STATUS_ACTIVE = "active"
STATUS_EXPIRED = "expired"

PRIORITY_ULTRA_HIGH = "ultra-high"
PRIORITY_HIGH = "high"
PRIORITY_MEDIUM = "medium"


@dataclass(frozen=True)
class Tier:
    """A reward step: reaching `threshold` (dollars or transactions) earns `reward`."""
    threshold: float
    reward: float


# ---------------------------------------------------------------------------
# Offer terms: one variant per offer type
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SpendingTerms:
    """Spend at least `target` dollars. A missing target never completes."""
    kind: ClassVar[str] = "spending"
    target: Optional[float] = None


@dataclass(frozen=True)
class TransactionTerms:
    """Make at least `target` eligible transactions."""
    kind: ClassVar[str] = "transactions"
    target: Optional[int] = None


@dataclass(frozen=True)
class TieredTerms:
    """
    Best-threshold-met rewards measured on spending or transaction count.

    Fields:
    - measure: 'spending' | 'transactions'
    - tiers: tiers sorted by ascending threshold
    """
    measure: str
    tiers: Tuple[Tier, ...]

    @property
    def kind(self) -> str:
        return self.measure

    @property
    def highest_tier(self) -> Tier:
        return self.tiers[-1]


@dataclass(frozen=True)
class PercentBackTerms:
    """
    Earn `percent`% of eligible spending, capped at `max_back`.
    Nothing accrues until spending reaches `min_spend_threshold`.
    """
    kind: ClassVar[str] = "percent-back"
    percent: Optional[float] = None
    max_back: Optional[float] = None
    min_spend_threshold: Optional[float] = None


@dataclass(frozen=True)
class ComboTerms:
    """Both a spending target and a transaction-count target must be met."""
    kind: ClassVar[str] = "combo"
    spending_target: Optional[float] = None
    transaction_target: Optional[int] = None


OfferTerms = Union[SpendingTerms, TransactionTerms, TieredTerms, PercentBackTerms, ComboTerms]


@dataclass(frozen=True)
class Offer:
    """
    A reward contract.

    Fields:
    - id: stable identifier
    - start_date / end_date: inclusive calendar window
    - terms: the variant that drives completion logic
    - categories: lowercase labels; empty means any transaction qualifies
    - min_transaction: a transaction must meet or exceed it to count
    - reward: base reward (per month for monthly offers)
    - bonus_reward: paid once when every month of a monthly offer completes
    - monthly_tracking: evaluate completion per calendar month
    """
    id: OfferId
    name: str
    start_date: date
    end_date: date
    terms: OfferTerms
    categories: FrozenSet[str] = frozenset()
    min_transaction: Optional[float] = None
    reward: float = 0.0
    bonus_reward: Optional[float] = None
    monthly_tracking: bool = False
    description: str = ""
    person_id: Optional[int] = None

    @property
    def type(self) -> str:
        return self.terms.kind

    @property
    def tiered(self) -> bool:
        return isinstance(self.terms, TieredTerms)


@dataclass(frozen=True)
class Transaction:
    """A ledger entry. `amount` is positive, `categories` lowercase labels."""
    id: OfferId
    date: date
    amount: float
    merchant: str = ""
    categories: FrozenSet[str] = frozenset()
    description: str = ""
    person_id: Optional[int] = None


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

@dataclass
class MonthProgress:
    month: str  # "September 2025"
    key: str  # "2025-09"
    start: date
    end: date
    spending: float
    transaction_count: int
    completed: bool
    partially_completed: bool
    tier_reached: Optional[Tier]
    earned_reward: float


@dataclass
class OfferProgress:
    """
    Derived progress of one offer against the ledger.

    For monthly offers `months` holds one entry per calendar month of the
    window, `completed` means every month completed and `earned_reward`
    includes the bonus when it was earned.
    """
    offer_id: OfferId
    status: str
    monthly: bool
    total_spending: float
    total_transactions: int
    completed: bool
    partially_completed: bool
    progress: float
    tier_reached: Optional[Tier]
    earned_reward: float
    months: List[MonthProgress] = field(default_factory=list)
    total_completed: int = 0
    bonus_earned: float = 0.0

    @property
    def fully_complete(self) -> bool:
        if self.monthly:
            return bool(self.months) and not self.has_incomplete_month
        return self.completed

    @property
    def has_incomplete_month(self) -> bool:
        return any(not m.completed for m in self.months)

    def month_for(self, d: date) -> Optional[MonthProgress]:
        for month in self.months:
            if month.start <= d <= month.end:
                return month
        return None


@dataclass(frozen=True)
class TrackedOffer:
    """An offer paired with the progress computed for it at query time."""
    offer: Offer
    progress: OfferProgress

    @property
    def id(self) -> OfferId:
        return self.offer.id

    @property
    def name(self) -> str:
        return self.offer.name


@dataclass
class OfferSummary:
    """Dashboard row: an offer, its progress and its priority bucket."""
    offer: Offer
    progress: OfferProgress
    transactions: List[Transaction]
    is_complete: bool
    current_month_complete: bool
    has_actionable_months: bool
    expired: bool
    not_started: bool
    days_until_expiration: int
    priority_bucket: int


# ---------------------------------------------------------------------------
# Overlaps and recommendations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Compatibility:
    """
    What a single transaction must look like to count toward every offer.

    Empty `categories` means any category qualifies.
    """
    categories: FrozenSet[str]
    min_transaction: float

    @property
    def unrestricted(self) -> bool:
        return not self.categories


@dataclass(frozen=True)
class Overlap:
    offers: Tuple[TrackedOffer, ...]
    start: date
    end: date
    compatibility: Compatibility

    @property
    def offer_count(self) -> int:
        return len(self.offers)

    @property
    def offer_ids(self) -> Tuple[OfferId, ...]:
        return tuple(t.id for t in self.offers)

    @property
    def window_days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass
class MonthNeed:
    month: str
    key: str
    start: date
    end: date
    spending_remaining: float
    transactions_remaining: int
    days_remaining: int


@dataclass
class RemainingNeeds:
    """What an offer still requires inside a period."""
    offer_id: OfferId
    type: str
    needed: bool = False
    spending_remaining: float = 0.0
    transactions_remaining: int = 0
    monthly_breakdown: List[MonthNeed] = field(default_factory=list)


@dataclass
class MonthlyTarget:
    month: str
    key: str
    start: date
    end: date
    spending_needed: float
    transactions_needed: int
    days_remaining: int
    urgent: bool


@dataclass
class TransactionPlan:
    total_spending: float
    total_transactions: int
    avg_per_transaction: float
    monthly: List[MonthlyTarget] = field(default_factory=list)


@dataclass
class Savings:
    """Dollars and transactions avoided by satisfying offers together."""
    dollars_saved: float
    transactions_saved: int
    separate_spending: float
    together_spending: float
    separate_transactions: int
    together_transactions: int


@dataclass
class Deadline:
    offer_id: OfferId
    offer_name: str
    date: date
    days_remaining: int


@dataclass
class Recommendation:
    """One actionable spending plan covering one or more offers."""
    offer_ids: Tuple[OfferId, ...]
    offer_names: Tuple[str, ...]
    priority: str
    period_start: date
    period_end: date
    categories: Tuple[str, ...]
    min_transaction: float
    plan: TransactionPlan
    needs: List[RemainingNeeds]
    savings: Optional[Savings] = None
    urgent_deadlines: List[Deadline] = field(default_factory=list)
    completed_months: List[str] = field(default_factory=list)

    @property
    def offer_count(self) -> int:
        return len(self.offer_ids)


# ---------------------------------------------------------------------------
# Master strategy
# ---------------------------------------------------------------------------

@dataclass
class ScoredOverlap:
    overlap: Overlap
    score: float
    new_offer_ids: Tuple[OfferId, ...] = ()


@dataclass
class CoverageSelection:
    selected: List[ScoredOverlap]
    uncovered: List[TrackedOffer]
    total_coverage: int
    efficiency: int


@dataclass
class Phase:
    """
    One step of the master strategy.

    Fields:
    - kind: 'overlap' | 'individual'
    - plan: transactions/spending needed during [start, end]
    - remaining_months: per monthly offer, open months outside this phase
    """
    number: int
    kind: str
    offer_ids: Tuple[OfferId, ...]
    offer_names: Tuple[str, ...]
    start: date
    end: date
    categories: Tuple[str, ...]
    min_transaction: float
    plan: TransactionPlan
    needs: List[RemainingNeeds]
    complete: bool
    not_started: bool
    expired: bool
    days_until_expiration: int
    days_until_start: int
    urgent: bool
    current_month_complete: bool = False
    remaining_months: Dict[OfferId, List[str]] = field(default_factory=dict)


@dataclass
class MasterStrategy:
    offer_count: int
    offer_ids: Tuple[OfferId, ...]
    offer_names: Tuple[str, ...]
    phases: List[Phase]
    selection: CoverageSelection
    total_potential_reward: float


@dataclass
class SpendingRecommendations:
    recommendations: List[Recommendation]
    overlaps: List[Overlap]
    master_strategy: Optional[MasterStrategy]
