"""
Ledger Data Models for TripSync

These models define the schemas for everything flowing through the
expense ledger: splits, expenses, derived balances and settlements.

DESIGN DECISION: Money is Decimal everywhere, rounded to cents.
Floating point never touches an amount; percentages and averages that
are only ever displayed are the one place floats appear.

Balances are derived and never persisted. Expenses are immutable once
created except for their status. Settlements are append-only.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    computed_field,
    model_validator,
)


# Tolerance for monetary equality checks (one currency minor unit)
EPSILON = Decimal("0.01")
CENT = Decimal("0.01")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class SplitPolicy(str, Enum):
    """
    Rule for dividing an expense amount across participants.

    Values match the tags stored on persisted expense records.
    """
    EQUAL = "equal"
    PERCENTAGE = "percentage"
    EXACT_AMOUNT = "amount"
    OPT_IN = "opt_in"


class ExpenseStatus(str, Enum):
    """Expense review status. The only mutable part of an expense."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SettlementStatus(str, Enum):
    """
    Settlement lifecycle.

    SUGGESTED settlements come from the optimizer and are never stored.
    CONFIRMED settlements are recorded by an explicit payment confirmation.
    """
    SUGGESTED = "suggested"
    CONFIRMED = "confirmed"


class ClaimIssue(str, Enum):
    """Why a payment claim disagrees with the recomputed settlements."""
    NO_MATCHING_SETTLEMENT = "no_matching_settlement"
    AMOUNT_MISMATCH = "amount_mismatch"


# =============================================================================
# SPLIT INPUTS AND OUTPUTS
# =============================================================================

class TripMember(BaseModel):
    """
    A trip participant as seen by the split calculator.

    default_percentage is the member's standing share of trip costs,
    used by the percentage policy when no per-expense percentages are given.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    participant_id: str = Field(..., min_length=1)
    default_percentage: Optional[Decimal] = Field(
        default=None,
        ge=0,
        le=100,
        description="Default share of trip costs, in percent"
    )


class SplitOverride(BaseModel):
    """
    Caller-supplied split entry for one participant.

    Percentage splits read `percentage`, exact-amount splits read `amount`,
    opt-in splits only look at `participant_id`.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    participant_id: str = Field(..., min_length=1)
    amount: Optional[Decimal] = Field(default=None, ge=0)
    percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)


class Split(BaseModel):
    """One participant's share of an expense."""
    model_config = ConfigDict(frozen=True)

    participant_id: str = Field(..., min_length=1)
    amount: Decimal = Field(
        ...,
        description="Amount this participant owes"
    )
    percentage: Optional[Decimal] = Field(
        default=None,
        description="Owed share in percent, if known"
    )


class SplitValidationResult(BaseModel):
    """Result of checking a proposed split before an expense is created."""

    valid: bool
    error: Optional[str] = None


# =============================================================================
# EXPENSES
# =============================================================================

class Expense(BaseModel):
    """
    A recorded group expense together with its splits.

    CRITICAL: Expense and splits are created together and never edited.
    Use with_status() to move through review; everything else is frozen.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    trip_id: Optional[str] = None
    payer_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    split_policy: SplitPolicy = SplitPolicy.EQUAL
    splits: list[Split] = Field(..., min_length=1)
    status: ExpenseStatus = ExpenseStatus.PENDING
    category: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_split_total(self, info: ValidationInfo) -> 'Expense':
        """
        Splits must add up to the expense amount.

        Pass context={"epsilon": ...} to validate against a configured tolerance.
        """
        epsilon = (info.context or {}).get("epsilon", EPSILON)
        total = sum((split.amount for split in self.splits), Decimal("0"))
        if abs(total - self.amount) > epsilon:
            raise ValueError(
                f"Splits sum to {total} but expense amount is {self.amount}"
            )
        return self

    def with_status(self, status: ExpenseStatus) -> 'Expense':
        return self.model_copy(update={"status": status})


class ExpenseSummary(BaseModel):
    """Totals over a trip's non-rejected expenses."""

    total_expenses: Decimal = Decimal("0")
    expense_count: int = Field(default=0, ge=0)
    by_category: dict[str, Decimal] = Field(default_factory=dict)
    by_payer: dict[str, Decimal] = Field(default_factory=dict)


# =============================================================================
# BALANCES AND SETTLEMENTS
# =============================================================================

class Balance(BaseModel):
    """
    A participant's net position in a trip.

    Positive net: the group owes this participant.
    Negative net: this participant owes the group.
    """
    model_config = ConfigDict(frozen=True)

    participant_id: str = Field(..., min_length=1)
    paid: Decimal = Decimal("0")
    owed: Decimal = Decimal("0")

    @computed_field
    @property
    def net(self) -> Decimal:
        return self.paid - self.owed

    @classmethod
    def from_net(cls, participant_id: str, net: Decimal) -> 'Balance':
        """Build a balance carrying only a net position."""
        net = Decimal(str(net))
        if net >= 0:
            return cls(participant_id=participant_id, paid=net)
        return cls(participant_id=participant_id, owed=-net)


class Settlement(BaseModel):
    """
    A one-way payment between two participants.

    Suggested settlements come out of the optimizer. Confirmed settlements
    record that a payment was made outside the system; no money moves here.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    from_participant_id: str = Field(..., min_length=1)
    to_participant_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    status: SettlementStatus = SettlementStatus.SUGGESTED
    currency: Optional[str] = None

    # Only set on confirmed payments
    payment_method: Optional[str] = Field(default=None, max_length=100)
    payment_reference: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_parties(self) -> 'Settlement':
        if self.from_participant_id == self.to_participant_id:
            raise ValueError("A settlement cannot pay the same participant")
        return self


class PaymentClaim(BaseModel):
    """A participant's statement that they paid someone."""
    model_config = ConfigDict(str_strip_whitespace=True)

    from_participant_id: str = Field(..., min_length=1)
    to_participant_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = None


class ClaimValidationResult(BaseModel):
    """
    Advisory check of a payment claim against recomputed settlements.

    An invalid result never blocks recording the payment.
    """

    valid: bool
    issue: Optional[ClaimIssue] = None
    message: Optional[str] = None
    expected_amount: Optional[Decimal] = None


class TransactionSavings(BaseModel):
    """Optimized settlement count against the naive debtors x creditors bound."""

    naive_count: int = Field(ge=0)
    optimized_count: int = Field(ge=0)
    saved: int
    savings_percentage: float


class SettlementStats(BaseModel):
    """Descriptive statistics over a settlement list."""

    total_transactions: int = Field(default=0, ge=0)
    total_amount: Decimal = Decimal("0")
    average_amount: Decimal = Decimal("0")
    max_amount: Decimal = Decimal("0")
    min_amount: Decimal = Decimal("0")


class SettlementSummary(BaseModel):
    """Everything a trip's settle-up view needs, computed from one snapshot."""

    trip_id: str
    balances: list[Balance] = Field(default_factory=list)
    suggested_settlements: list[Settlement] = Field(default_factory=list)
    existing_settlements: list[Settlement] = Field(default_factory=list)
    total_expenses: Decimal = Decimal("0")
    stats: SettlementStats = Field(default_factory=SettlementStats)
    savings: TransactionSavings
