"""
Tests for the Tally Engine.
"""

import pytest
from datetime import date

from budget_core.ledger import close, close_instance, close_occurrence, split_occurrence
from budget_core.models import Instance, InstanceKind, MonthlyData, SectionTally
from budget_core.occurrences import create_adhoc, generate
from budget_core.tally import (
    EMPTY_TALLY,
    category_subtotal,
    category_subtotals,
    combine,
    combine_all,
    effective,
    month_tallies,
    payoff_tally,
    regular_tally,
    remaining,
    section_tally,
)


def make_instance(amounts, closed=(), kind=InstanceKind.BILL, **kwargs) -> Instance:
    """One occurrence per amount, on consecutive days; indexes in `closed` are closed."""
    occurrences = [
        generate([date(2025, 1, index + 1)], amount)[0]
        for index, amount in enumerate(amounts)
    ]
    occurrences = [
        close(occ, occ.expected_date) if index in closed else occ
        for index, occ in enumerate(occurrences)
    ]
    all_done = bool(occurrences) and all(o.is_closed for o in occurrences)
    return Instance(
        kind=kind,
        name=kwargs.pop("name", "Bill"),
        month="2025-01",
        expected_amount=kwargs.pop("expected_amount", sum(amounts)),
        occurrences=occurrences,
        is_closed=all_done,
        closed_date=date(2025, 1, 31) if all_done else None,
        **kwargs,
    )


class TestInstanceAggregates:
    """effective() and remaining()."""

    def test_effective_sums_closed_only(self):
        """Open occurrences are not counted."""
        assert effective(make_instance([1000, 2000, 3000], closed={0, 2})) == 4000

    def test_effective_empty_and_all_open(self):
        """No closed occurrences means zero."""
        assert effective(make_instance([])) == 0
        assert effective(make_instance([1000, 2000])) == 0

    def test_remaining(self):
        """Expected minus effective."""
        assert remaining(make_instance([1000, 2000], closed={0})) == 2000

    def test_remaining_zero_when_closed(self):
        """A closed instance has nothing remaining, even if underpaid."""
        instance = make_instance([1000, 2000], closed={0, 1}, expected_amount=5000)
        assert instance.is_closed
        assert remaining(instance) == 0

    def test_remaining_clamped_on_overpayment(self):
        """Overpayment never shows as negative remaining."""
        instance = make_instance([4000, 2000], closed={0}, expected_amount=3000)
        assert remaining(instance) == 0


class TestCombine:
    """Tally algebra."""

    A = SectionTally(expected=100, actual=40, remaining=60)
    B = SectionTally(expected=7, actual=9, remaining=0)
    C = SectionTally(expected=250, actual=0, remaining=250)

    def test_commutative(self):
        """Order of operands does not matter."""
        assert combine(self.A, self.B) == combine(self.B, self.A)

    def test_associative(self):
        """Grouping does not matter."""
        assert combine(combine(self.A, self.B), self.C) == combine(self.A, combine(self.B, self.C))

    @pytest.mark.parametrize("tally", [A, B, C, EMPTY_TALLY])
    def test_identity(self, tally):
        """The zero tally is the identity."""
        assert combine(tally, EMPTY_TALLY) == tally
        assert combine(EMPTY_TALLY, tally) == tally

    def test_combine_all(self):
        """combine_all folds left from the identity."""
        assert combine_all(self.A, self.B, self.C) == SectionTally(expected=357, actual=49, remaining=310)
        assert combine_all() == EMPTY_TALLY


class TestSections:
    """Section tallies and partitions."""

    def test_section_tally(self):
        """Componentwise sums over instances."""
        tally = section_tally([
            make_instance([1000, 2000], closed={0}),
            make_instance([500], closed={0}),
        ])
        assert tally == SectionTally(expected=3500, actual=1500, remaining=2000)

    def test_empty_section(self):
        """No instances, all zeros."""
        assert section_tally([]) == EMPTY_TALLY

    def test_adhoc_only_section(self):
        """Ad-hoc instances contribute actual only."""
        tally = section_tally([
            make_instance([1500, 900], closed={0}, is_adhoc=True),
            make_instance([300], closed={0}, is_adhoc=True),
        ])
        assert tally.expected == 0
        assert tally.remaining == 0
        assert tally.actual == 1800

    def test_partitions(self):
        """Regular, ad-hoc and payoff instances land in their own tallies."""
        regular = make_instance([1000])
        adhoc = make_instance([200], closed={0}, is_adhoc=True)
        payoff = make_instance(
            [5000, 3000], closed={0}, is_payoff_bill=True, payoff_source_id="visa"
        )
        instances = [regular, adhoc, payoff]

        assert regular_tally(instances) == SectionTally(expected=1000, actual=0, remaining=1000)
        assert payoff_tally(instances) == SectionTally(expected=8000, actual=5000, remaining=3000)

    def test_month_tallies(self):
        """Totals combine the partitions."""
        data = MonthlyData(
            month="2025-01",
            bill_instances=[
                make_instance([1000, 1000], closed={0}),
                make_instance([250], closed={0}, is_adhoc=True),
                make_instance([4000], is_payoff_bill=True, payoff_source_id="visa"),
            ],
            income_instances=[
                make_instance([300000], closed={0}, kind=InstanceKind.INCOME),
                make_instance([2000], closed={0}, kind=InstanceKind.INCOME, is_adhoc=True),
            ],
        )
        tallies = month_tallies(data)

        assert tallies.bills == SectionTally(expected=2000, actual=1000, remaining=1000)
        assert tallies.adhoc_bills == SectionTally(expected=0, actual=250, remaining=0)
        assert tallies.payoff_bills == SectionTally(expected=4000, actual=0, remaining=4000)
        assert tallies.total_expenses == SectionTally(expected=6000, actual=1250, remaining=5000)
        assert tallies.total_income == SectionTally(expected=300000, actual=302000, remaining=0)

    def test_split_does_not_change_section_totals(self):
        """Conservation carries through to the tally."""
        instance = make_instance([30000])
        before = section_tally([instance])

        after_split = split_occurrence(instance, instance.occurrences[0].id, 10000, date(2025, 1, 5))
        after = section_tally([after_split])

        assert after.expected == before.expected
        assert after.actual == 10000
        assert after.remaining == 20000


class TestCategorySubtotals:
    """Presentation aggregates."""

    def test_category_subtotal(self):
        """Expected and actual only."""
        subtotal = category_subtotal([make_instance([1000, 500], closed={1})])
        assert subtotal.expected == 1500
        assert subtotal.actual == 500

    def test_grouped_by_category(self):
        """Instances group by category_id."""
        instances = [
            make_instance([1000], category_id="home"),
            make_instance([200], closed={0}, category_id="home"),
            make_instance([50]),
        ]
        groups = category_subtotals(instances)
        assert groups["home"].expected == 1200
        assert groups["home"].actual == 200
        assert groups[None].expected == 50

    def test_closing_whole_instance_moves_remaining_to_actual(self):
        """Closing everything leaves nothing remaining."""
        instance = make_instance([700, 300])
        closed = close_instance(instance, date(2025, 1, 20))
        tally = section_tally([closed])
        assert tally == SectionTally(expected=1000, actual=1000, remaining=0)

    def test_adhoc_occurrence_on_regular_instance(self):
        """An extra charge raises the expected total once added to the set."""
        instance = make_instance([1000])
        extra = create_adhoc(date(2025, 1, 15), 250)
        updated = instance.model_copy(update={
            "occurrences": instance.occurrences + [extra],
            "expected_amount": 1250,
        })
        updated = close_occurrence(updated, extra.id, date(2025, 1, 15))
        assert section_tally([updated]) == SectionTally(expected=1250, actual=250, remaining=1000)
