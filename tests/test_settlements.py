"""
Tests for the settlement optimizer and the settlement validator.
"""

import random

import pytest
from decimal import Decimal

from tripsync.ledger import (
    optimize,
    settlement_stats,
    transaction_savings,
    validate_claim,
    verify,
)
from tripsync.models.ledger import Balance, ClaimIssue, Settlement, SettlementStatus


def _balances(**nets):
    return [Balance.from_net(pid, Decimal(net)) for pid, net in nets.items()]


def _pairs(settlements):
    return [(s.from_participant_id, s.to_participant_id, s.amount) for s in settlements]


def _random_balances(rng, count):
    cents = [rng.randint(-50_000, 50_000) for _ in range(count - 1)]
    # Keep generated nets clear of the +/- epsilon band
    nets = [Decimal(c) / 100 if abs(c) > 1 else Decimal("0") for c in cents]
    nets.append(-sum(nets, Decimal("0")))
    return [Balance.from_net(f"p{i}", net) for i, net in enumerate(nets)]


class TestOptimize:
    """Tests for optimize()."""

    def test_one_creditor_two_debtors(self):
        """A +60, B -30, C -30: both debtors pay A."""
        balances = _balances(A="60", B="-30", C="-30")

        settlements = optimize(balances)

        assert _pairs(settlements) == [
            ("B", "A", Decimal("30.00")),
            ("C", "A", Decimal("30.00")),
        ]
        assert all(s.status == SettlementStatus.SUGGESTED for s in settlements)
        assert verify(balances, settlements) is True

    def test_largest_pairs_first(self):
        balances = _balances(A="50", B="10", C="-30", D="-30")

        assert _pairs(optimize(balances)) == [
            ("C", "A", Decimal("30.00")),
            ("D", "A", Decimal("20.00")),
            ("D", "B", Decimal("10.00")),
        ]

    def test_ties_keep_input_order(self):
        balances = _balances(X="-20", A="10", B="10")

        assert _pairs(optimize(balances)) == [
            ("X", "A", Decimal("10.00")),
            ("X", "B", Decimal("10.00")),
        ]

    def test_settled_balances_produce_nothing(self):
        assert optimize(_balances(A="0", B="0.01", C="-0.01")) == []
        assert optimize([]) == []

    def test_amounts_rounded_to_cents(self):
        balances = _balances(A="10.005", B="-10.005")

        settlements = optimize(balances)

        assert _pairs(settlements) == [("B", "A", Decimal("10.01"))]
        assert verify(balances, settlements) is True

    def test_generated_balances_settle(self):
        """Applying the suggestions zeroes every balance."""
        rng = random.Random(7)
        for _ in range(200):
            balances = _random_balances(rng, rng.randint(2, 10))
            assert verify(balances, optimize(balances)) is True

    def test_never_more_than_creditors_times_debtors(self):
        rng = random.Random(11)
        for _ in range(200):
            balances = _random_balances(rng, rng.randint(2, 10))
            creditors = sum(1 for b in balances if b.net > Decimal("0.01"))
            debtors = sum(1 for b in balances if b.net < Decimal("-0.01"))

            assert len(optimize(balances)) <= creditors * debtors

    def test_output_is_reproducible(self):
        rng = random.Random(3)
        balances = _random_balances(rng, 8)
        assert _pairs(optimize(balances)) == _pairs(optimize(balances))


class TestVerify:
    """Tests for verify()."""

    def test_missing_settlement_fails(self):
        balances = _balances(A="60", B="-30", C="-30")
        partial = optimize(balances)[:1]
        assert verify(balances, partial) is False

    def test_does_not_mutate_balances(self):
        balances = _balances(A="60", B="-30", C="-30")
        verify(balances, optimize(balances))
        assert [b.net for b in balances] == [Decimal("60"), Decimal("-30"), Decimal("-30")]

    def test_custom_epsilon(self):
        balances = _balances(A="10", B="-10")
        short = [Settlement(from_participant_id="B", to_participant_id="A", amount=Decimal("9.95"))]

        assert verify(balances, short) is False
        assert verify(balances, short, epsilon=Decimal("0.05")) is True


class TestValidateClaim:
    """Tests for validate_claim(). Mismatches are reported, never raised."""

    @pytest.fixture
    def suggested(self):
        return optimize(_balances(A="60", B="-30", C="-30"))

    def test_matching_claim(self, suggested):
        result = validate_claim("B", "A", Decimal("30.00"), suggested)
        assert result.valid is True
        assert result.issue is None
        assert result.expected_amount == Decimal("30.00")

    def test_within_epsilon_is_valid(self, suggested):
        assert validate_claim("B", "A", Decimal("30.01"), suggested).valid is True

    def test_amount_mismatch(self, suggested):
        result = validate_claim("B", "A", Decimal("25.00"), suggested)
        assert result.valid is False
        assert result.issue == ClaimIssue.AMOUNT_MISMATCH
        assert result.message == "Amount mismatch. Expected 30.00, got 25.00"
        assert result.expected_amount == Decimal("30.00")

    def test_no_matching_settlement(self, suggested):
        result = validate_claim("A", "B", Decimal("30.00"), suggested)
        assert result.valid is False
        assert result.issue == ClaimIssue.NO_MATCHING_SETTLEMENT
        assert result.message == "No settlement found from A to B"


class TestTransactionSavings:
    """Tests for transaction_savings()."""

    def test_savings_against_naive_count(self):
        balances = _balances(A="50", B="10", C="-30", D="-30")
        savings = transaction_savings(balances, optimize(balances))

        assert savings.naive_count == 4
        assert savings.optimized_count == 3
        assert savings.saved == 1
        assert savings.savings_percentage == 25.0

    def test_nothing_to_settle(self):
        savings = transaction_savings([], [])
        assert savings.naive_count == 0
        assert savings.savings_percentage == 0.0


class TestSettlementStats:
    """Tests for settlement_stats()."""

    def test_stats(self):
        settlements = [
            Settlement(from_participant_id="B", to_participant_id="A", amount=Decimal(a))
            for a in ("30.00", "30.00", "40.00")
        ]
        stats = settlement_stats(settlements)

        assert stats.total_transactions == 3
        assert stats.total_amount == Decimal("100.00")
        assert stats.average_amount == Decimal("33.33")
        assert stats.max_amount == Decimal("40.00")
        assert stats.min_amount == Decimal("30.00")

    def test_empty(self):
        stats = settlement_stats([])
        assert stats.total_transactions == 0
        assert stats.total_amount == Decimal("0")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
