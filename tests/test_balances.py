"""
Tests for the balance aggregator.
"""

import random

import pytest
from decimal import Decimal

from tripsync.ledger import aggregate, compute_splits, summarize_expenses
from tripsync.models.ledger import Expense, ExpenseStatus, SplitPolicy


def _expense(payer, amount, participants, category=None):
    amount = Decimal(amount)
    return Expense(
        payer_id=payer,
        amount=amount,
        splits=compute_splits(amount, SplitPolicy.EQUAL, participants),
        category=category,
    )


class TestAggregate:
    """Tests for aggregate()."""

    def test_payer_credited_participants_debited(self):
        balances = aggregate([_expense("A", "90.00", ["A", "B", "C"])])
        by_id = {b.participant_id: b for b in balances}

        assert by_id["A"].paid == Decimal("90.00")
        assert by_id["A"].owed == Decimal("30.00")
        assert by_id["A"].net == Decimal("60.00")
        assert by_id["B"].net == Decimal("-30.00")
        assert by_id["C"].net == Decimal("-30.00")

    def test_output_sorted_by_participant_id(self):
        balances = aggregate([
            _expense("carol", "10.00", ["carol", "alice"]),
            _expense("bob", "10.00", ["bob"]),
        ])
        assert [b.participant_id for b in balances] == ["alice", "bob", "carol"]

    def test_one_sided_participants_appear(self):
        """Someone who only paid, or only owes, still gets a balance."""
        balances = aggregate([_expense("A", "20.00", ["B", "C"])])
        by_id = {b.participant_id: b for b in balances}

        assert by_id["A"].owed == Decimal("0")
        assert by_id["A"].net == Decimal("20.00")
        assert by_id["B"].paid == Decimal("0")
        assert by_id["B"].net == Decimal("-10.00")

    def test_rejected_expenses_skipped(self):
        kept = _expense("A", "30.00", ["A", "B"])
        rejected = _expense("B", "500.00", ["A", "B"]).with_status(ExpenseStatus.REJECTED)

        balances = aggregate([kept, rejected])
        by_id = {b.participant_id: b for b in balances}

        assert by_id["A"].net == Decimal("15.00")
        assert by_id["B"].net == Decimal("-15.00")

    def test_no_expenses(self):
        assert aggregate([]) == []

    def test_nets_sum_to_zero_for_generated_expenses(self):
        """Money is conserved: what's paid is what's owed."""
        rng = random.Random(2024)
        people = [f"p{i}" for i in range(8)]

        for _ in range(50):
            expenses = []
            for _ in range(rng.randint(1, 20)):
                participants = rng.sample(people, rng.randint(1, len(people)))
                amount = Decimal(rng.randint(1, 100_000)) / 100
                expenses.append(_expense(rng.choice(people), amount, participants))

            balances = aggregate(expenses)

            assert abs(sum(b.net for b in balances)) <= Decimal("0.01")


class TestSummarizeExpenses:
    """Tests for summarize_expenses()."""

    def test_totals_by_category_and_payer(self):
        summary = summarize_expenses([
            _expense("A", "100.00", ["A", "B"], category="lodging"),
            _expense("B", "40.00", ["A", "B"], category="food"),
            _expense("A", "10.00", ["A", "B"]),
            _expense("B", "999.00", ["A"]).with_status(ExpenseStatus.REJECTED),
        ])

        assert summary.total_expenses == Decimal("150.00")
        assert summary.expense_count == 3
        assert summary.by_category == {
            "lodging": Decimal("100.00"),
            "food": Decimal("40.00"),
            "other": Decimal("10.00"),
        }
        assert summary.by_payer == {"A": Decimal("110.00"), "B": Decimal("40.00")}

    def test_empty(self):
        summary = summarize_expenses([])
        assert summary.total_expenses == Decimal("0")
        assert summary.expense_count == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
