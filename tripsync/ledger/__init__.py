"""Expense ledger package: splits, balances, settlements."""

from tripsync.ledger.balances import aggregate, summarize_expenses
from tripsync.ledger.settlements import optimize, settlement_stats
from tripsync.ledger.splits import (
    EmptyParticipantSetError,
    InvalidAmountError,
    InvalidPercentageError,
    NonMemberSplitError,
    SplitError,
    SplitMismatchError,
    UnknownSplitPolicyError,
    ZeroParticipantsError,
    compute_splits,
    ensure_trip_members,
    parse_split_policy,
    validate_expense_split,
)
from tripsync.ledger.validator import (
    transaction_savings,
    validate_claim,
    verify,
)

__all__ = [
    # Split calculator
    "compute_splits",
    "ensure_trip_members",
    "parse_split_policy",
    "validate_expense_split",
    # Exceptions
    "EmptyParticipantSetError",
    "InvalidAmountError",
    "InvalidPercentageError",
    "NonMemberSplitError",
    "SplitError",
    "SplitMismatchError",
    "UnknownSplitPolicyError",
    "ZeroParticipantsError",
    # Aggregation and settlement
    "aggregate",
    "optimize",
    "settlement_stats",
    "summarize_expenses",
    "transaction_savings",
    "validate_claim",
    "verify",
]
