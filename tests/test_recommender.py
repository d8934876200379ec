"""
Unit tests for offer_engine/recommender.py
Tests ranking, redundancy pruning, single-offer fallbacks and savings.
"""

from datetime import date
from itertools import combinations, product

import pytest
from offer_engine.models import (
    Offer,
    SpendingTerms,
    Transaction,
    TransactionTerms,
)
from offer_engine.needs import describe_plan
from offer_engine.recommender import (
    get_optimal_spending_recommendations,
    prune_subsets,
)


TODAY = date(2025, 10, 1)


def make_offer(offer_id, terms=None, categories=(), min_transaction=None,
               start=date(2025, 9, 1), end=date(2025, 12, 31), **kwargs):
    return Offer(
        id=offer_id,
        name=f"Offer {offer_id}",
        start_date=start,
        end_date=end,
        terms=terms or SpendingTerms(target=100.0),
        categories=frozenset(categories),
        min_transaction=min_transaction,
        **kwargs,
    )


def txn(txn_id, on, amount, *categories):
    return Transaction(id=txn_id, date=on, amount=amount, categories=frozenset(categories))


class TestOverlapSavingsScenario:
    """
    Offer A needs $200 more online; offer B needs 3 more online transactions
    of at least $50. One plan covers both.
    """

    @pytest.fixture
    def result(self):
        offers = [
            make_offer("A", SpendingTerms(200.0), ["online"]),
            make_offer("B", TransactionTerms(3), ["online"], min_transaction=50.0),
        ]
        return get_optimal_spending_recommendations(offers, [], TODAY)

    def test_single_combined_recommendation(self, result):
        """Both offers end up in one high-priority recommendation."""
        assert len(result.recommendations) == 1
        rec = result.recommendations[0]
        assert rec.offer_ids == ("A", "B")
        assert rec.priority == "high"
        assert rec.categories == ("online",)
        assert rec.min_transaction == 50.0

    def test_plan_covers_both_offers(self, result):
        """The shared plan satisfies the larger need of each offer."""
        plan = result.recommendations[0].plan

        assert plan.total_spending == 200.0
        assert plan.total_transactions == 3
        assert plan.avg_per_transaction == pytest.approx(66.67)

    def test_plan_description(self, result):
        """Verify the one-line instruction for the shared plan."""
        rec = result.recommendations[0]

        assert describe_plan(rec.plan, rec.categories, rec.min_transaction) == (
            "Spend $200.00 across 3 transactions of at least $50.00 each in online"
        )

    def test_savings_against_separate_completion(self, result):
        """Savings compare the shared plan with completing each offer alone."""
        savings = result.recommendations[0].savings

        assert savings.separate_spending == 350.0
        assert savings.together_spending == 200.0
        assert savings.dollars_saved == 150.0
        assert savings.transactions_saved == 1

    def test_master_strategy_has_one_overlap_phase(self, result):
        """The strategy covers both offers in one overlap phase."""
        strategy = result.master_strategy

        assert strategy.offer_count == 2
        assert [p.kind for p in strategy.phases] == ["overlap"]
        assert strategy.selection.uncovered == []


class TestRecommendations:
    """Tests for get_optimal_spending_recommendations."""

    def test_no_active_offers(self):
        """Expired offers give an empty result."""
        expired = make_offer(1, start=date(2025, 1, 1), end=date(2025, 3, 31))

        result = get_optimal_spending_recommendations([expired], [], TODAY)

        assert result.recommendations == []
        assert result.overlaps == []
        assert result.master_strategy is None

    def test_completed_offers_are_skipped(self):
        """Fully completed offers get no recommendation."""
        done = make_offer(1, SpendingTerms(100.0))
        open_offer = make_offer(2, SpendingTerms(300.0))
        ledger = [txn(1, date(2025, 9, 10), 150.0)]

        result = get_optimal_spending_recommendations([done, open_offer], ledger, TODAY)

        assert [r.offer_ids for r in result.recommendations] == [(2,)]
        assert result.recommendations[0].priority == "medium"
        # the ledger entry counts toward offer 2 as well
        assert result.recommendations[0].plan.total_spending == 150.0

    def test_disjoint_categories_get_separate_recommendations(self):
        """Offers that cannot combine get one medium recommendation each."""
        offers = [make_offer(1, categories=["online"]), make_offer(2, categories=["travel"])]

        result = get_optimal_spending_recommendations(offers, [], TODAY)

        assert result.overlaps == []
        assert sorted(r.offer_ids for r in result.recommendations) == [(1,), (2,)]
        assert all(r.priority == "medium" for r in result.recommendations)
        assert all(r.savings is None for r in result.recommendations)

    def test_ranking_order(self):
        """Larger overlaps rank above single-offer recommendations."""
        offers = [
            make_offer(1, categories=["online"]),
            make_offer(2, categories=["online"]),
            make_offer(3, categories=["online"]),
            make_offer(4, categories=["travel"]),
        ]

        result = get_optimal_spending_recommendations(offers, [], TODAY)

        assert [r.priority for r in result.recommendations] == ["ultra-high", "medium"]
        assert result.recommendations[0].offer_ids == (1, 2, 3)
        assert result.recommendations[1].offer_ids == (4,)

    def test_recommendations_form_an_antichain(self):
        """No recommendation is a subset of another and every offer is covered."""
        offers = [
            make_offer(1, categories=["online", "dining"]),
            make_offer(2, categories=["online"]),
            make_offer(3, categories=["dining"]),
            make_offer(4),
            make_offer(5, end=date(2025, 10, 20)),
        ]

        result = get_optimal_spending_recommendations(offers, [], TODAY)

        id_sets = [set(r.offer_ids) for r in result.recommendations]
        for a, b in combinations(id_sets, 2):
            assert not a < b and not b < a
        covered = set().union(*id_sets)
        assert covered == {1, 2, 3, 4, 5}

    def test_urgent_deadlines_are_reported(self):
        """Offers ending within a week are listed as urgent."""
        offers = [make_offer(1, end=date(2025, 10, 5)), make_offer(2)]

        result = get_optimal_spending_recommendations(offers, [], TODAY)

        deadlines = result.recommendations[0].urgent_deadlines
        assert [(d.offer_id, d.days_remaining) for d in deadlines] == [(1, 5)]

    def test_monthly_offer_breakdown(self):
        """Monthly offers are planned month by month after completed months."""
        offer = make_offer(
            1,
            SpendingTerms(750.0),
            ["online"],
            start=date(2025, 9, 1),
            end=date(2025, 11, 30),
            reward=25.0,
            monthly_tracking=True,
        )
        ledger = [txn(1, date(2025, 9, 5), 800.0, "online")]

        result = get_optimal_spending_recommendations([offer], ledger, date(2025, 10, 15))

        rec = result.recommendations[0]
        assert rec.period_start == date(2025, 10, 15)
        assert rec.completed_months == ["September 2025"]
        assert [(m.month, m.spending_needed) for m in rec.plan.monthly] == [
            ("October 2025", 750.0),
            ("November 2025", 750.0),
        ]
        assert rec.plan.monthly[0].days_remaining == 17
        assert rec.needs[0].spending_remaining == 1500.0

    def test_same_inputs_same_result(self):
        """Repeated calls with the same inputs agree."""
        offers = [
            make_offer(1, categories=["online"]),
            make_offer(2, TransactionTerms(2), min_transaction=20.0),
            make_offer(3, categories=["travel"], end=date(2025, 10, 10)),
        ]
        ledger = [txn(1, date(2025, 9, 20), 40.0, "online")]

        first = get_optimal_spending_recommendations(offers, ledger, TODAY)
        second = get_optimal_spending_recommendations(offers, ledger, TODAY)

        assert first == second


class TestPruneSubsets:
    """Tests for prune_subsets."""

    def test_subsets_of_larger_recommendations_are_dropped(self):
        """Recommendations contained in a larger one are dropped."""
        class Rec:
            def __init__(self, *ids):
                self.offer_ids = ids

        recs = [Rec(1, 2, 3), Rec(1, 2), Rec(3, 4), Rec(4)]

        survivors = prune_subsets(recs)

        assert [r.offer_ids for r in survivors] == [(1, 2, 3), (3, 4)]


CATEGORY_CHOICES = ((), ("a",), ("b",))


class TestRecommendationProperties:
    """Checks over every category assignment of four concurrent offers."""

    @pytest.mark.parametrize("assignment", list(product(CATEGORY_CHOICES, repeat=4)))
    def test_antichain_and_coverage(self, assignment):
        """
        Whatever the categories, no surviving recommendation is a subset of
        another and every offer that still needs something is covered.
        """
        # Arrange: offer 3 ends before offer 4 starts, so they never combine
        windows = [
            (date(2025, 9, 1), date(2025, 12, 31)),
            (date(2025, 9, 15), date(2025, 11, 30)),
            (date(2025, 9, 1), date(2025, 10, 31)),
            (date(2025, 11, 1), date(2025, 12, 31)),
        ]
        offers = [
            make_offer(i + 1, categories=categories, start=start, end=end)
            for i, (categories, (start, end)) in enumerate(zip(assignment, windows))
        ]

        # Act
        result = get_optimal_spending_recommendations(offers, [], TODAY)

        # Assert
        id_sets = [set(r.offer_ids) for r in result.recommendations]
        for a, b in combinations(id_sets, 2):
            assert not a < b and not b < a
        assert len({frozenset(s) for s in id_sets}) == len(id_sets)
        assert set().union(*id_sets) == {1, 2, 3, 4}
