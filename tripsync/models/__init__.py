"""
Data Models Package

This package contains all Pydantic models used in TripSync.
All data flowing through the ledger and voting engines must conform to these schemas.
"""

from tripsync.models.ledger import (
    CENT,
    EPSILON,
    Balance,
    ClaimIssue,
    ClaimValidationResult,
    Expense,
    ExpenseStatus,
    ExpenseSummary,
    PaymentClaim,
    Settlement,
    SettlementStats,
    SettlementStatus,
    SettlementSummary,
    Split,
    SplitOverride,
    SplitPolicy,
    SplitValidationResult,
    TransactionSavings,
    TripMember,
)
from tripsync.models.voting import (
    RANK_POINTS,
    ApprovalResult,
    ApprovalVoter,
    FormattedResult,
    Proposal,
    ProposalCategory,
    ProposalStatus,
    RankedChoiceResult,
    RankedVoter,
    SingleChoiceResult,
    SingleChoiceVoter,
    TallyReport,
    TallyResult,
    Vote,
    VotingMethod,
)
from tripsync.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CENT",
    "EPSILON",
    "Balance",
    "ClaimIssue",
    "ClaimValidationResult",
    "Expense",
    "ExpenseStatus",
    "ExpenseSummary",
    "PaymentClaim",
    "Settlement",
    "SettlementStats",
    "SettlementStatus",
    "SettlementSummary",
    "Split",
    "SplitOverride",
    "SplitPolicy",
    "SplitValidationResult",
    "TransactionSavings",
    "TripMember",
    # Voting models
    "RANK_POINTS",
    "ApprovalResult",
    "ApprovalVoter",
    "FormattedResult",
    "Proposal",
    "ProposalCategory",
    "ProposalStatus",
    "RankedChoiceResult",
    "RankedVoter",
    "SingleChoiceResult",
    "SingleChoiceVoter",
    "TallyReport",
    "TallyResult",
    "Vote",
    "VotingMethod",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
