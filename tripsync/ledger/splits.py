"""
Split Calculator

Turns an expense amount, a split policy and a participant set into
per-participant owed amounts.

POLICIES:
- EQUAL: amount / n for every trip member
- PERCENTAGE: per-expense percentages, or each member's default percentage
- EXACT_AMOUNT: caller supplies every participant's amount
- OPT_IN: equal split among only the participants who opted in

RULE: the last participant (in input order) absorbs the rounding remainder,
so the splits of an equal, opt-in or percentage expense always add up to the
amount exactly. Shares are rounded DOWN to the cent before that, which keeps
the remainder non-negative.

IMPORTANT: Nothing here is silently corrected. A split that doesn't add up
is rejected with the reason, for the user to fix.
"""

from decimal import ROUND_DOWN, Decimal
from typing import Optional, Sequence, Union

from tripsync.models.ledger import (
    CENT,
    EPSILON,
    Split,
    SplitOverride,
    SplitPolicy,
    SplitValidationResult,
    TripMember,
)


class SplitError(Exception):
    """Base exception for split calculation errors."""

    error_code = "split_error"


class ZeroParticipantsError(SplitError):
    """Expense has nobody to split between."""

    error_code = "zero_participants"

    def __init__(self):
        super().__init__("Cannot split an expense among zero participants")


class EmptyParticipantSetError(SplitError):
    """Opt-in expense where nobody opted in."""

    error_code = "empty_participant_set"

    def __init__(self):
        super().__init__("At least one participant must opt in for an opt-in split")


class InvalidPercentageError(SplitError):
    """Percentages don't add up to 100."""

    error_code = "invalid_percentage"

    def __init__(self, total: Decimal):
        self.total = total
        super().__init__(f"Percentages must sum to 100, got {total}")


class SplitMismatchError(SplitError):
    """Exact split amounts don't add up to the expense amount."""

    error_code = "split_mismatch"

    def __init__(self, expected: Decimal, actual: Decimal, message: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(
            message
            or f"Split amounts must sum to the expense amount. Expected {expected}, got {actual}"
        )


class InvalidAmountError(SplitError):
    """Expense amount finer than the currency's smallest unit."""

    error_code = "invalid_amount"

    def __init__(self, amount: Decimal, places: int):
        self.amount = amount
        super().__init__(f"Amount {amount} has more than {places} decimal places")


class NonMemberSplitError(SplitError):
    """A split names someone who isn't a trip member."""

    error_code = "non_member_split"

    def __init__(self, participant_id: str):
        self.participant_id = participant_id
        super().__init__(f"Participant {participant_id} is not a trip member")


class UnknownSplitPolicyError(SplitError):
    """Split policy tag we don't know how to apply."""

    error_code = "unknown_split_policy"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid split type: {value}")


_POLICY_ALIASES = {
    "equal": SplitPolicy.EQUAL,
    "percentage": SplitPolicy.PERCENTAGE,
    "amount": SplitPolicy.EXACT_AMOUNT,
    "exact": SplitPolicy.EXACT_AMOUNT,
    "exact_amount": SplitPolicy.EXACT_AMOUNT,
    "opt_in": SplitPolicy.OPT_IN,
    "opt-in": SplitPolicy.OPT_IN,
}

MemberLike = Union[TripMember, str]
OverrideLike = Union[SplitOverride, str]


def parse_split_policy(value: Union[SplitPolicy, str]) -> SplitPolicy:
    """Map a stored or user-supplied policy tag onto SplitPolicy."""
    if isinstance(value, SplitPolicy):
        return value
    policy = _POLICY_ALIASES.get(str(value).strip().lower())
    if policy is None:
        raise UnknownSplitPolicyError(value)
    return policy


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _as_member(member: MemberLike) -> TripMember:
    if isinstance(member, TripMember):
        return member
    return TripMember(participant_id=member)


def _as_override(override: OverrideLike) -> SplitOverride:
    if isinstance(override, SplitOverride):
        return override
    return SplitOverride(participant_id=override)


def _quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def _split_evenly(
    amount: Decimal,
    participant_ids: Sequence[str],
    quantum: Decimal,
) -> list[Split]:
    count = len(participant_ids)
    share = (amount / count).quantize(quantum, rounding=ROUND_DOWN)
    percentage = (Decimal(100) / count).quantize(CENT)

    splits = [
        Split(participant_id=pid, amount=share, percentage=percentage)
        for pid in participant_ids[:-1]
    ]
    # Last participant absorbs the remainder
    splits.append(Split(
        participant_id=participant_ids[-1],
        amount=amount - share * (count - 1),
        percentage=percentage,
    ))
    return splits


def _split_by_percentages(
    amount: Decimal,
    entries: Sequence[tuple[str, Decimal]],
    quantum: Decimal,
    epsilon: Decimal,
) -> list[Split]:
    total = sum((pct for _, pct in entries), Decimal("0"))
    if abs(total - 100) > epsilon:
        raise InvalidPercentageError(total)

    splits = []
    allocated = Decimal("0")
    for pid, pct in entries[:-1]:
        share = (amount * pct / 100).quantize(quantum, rounding=ROUND_DOWN)
        allocated += share
        splits.append(Split(participant_id=pid, amount=share, percentage=pct))

    last_id, last_pct = entries[-1]
    splits.append(Split(
        participant_id=last_id,
        amount=amount - allocated,
        percentage=last_pct,
    ))
    return splits


def compute_splits(
    amount: Decimal,
    policy: Union[SplitPolicy, str],
    participants: Sequence[MemberLike],
    overrides: Optional[Sequence[OverrideLike]] = None,
    *,
    epsilon: Decimal = EPSILON,
    places: int = 2,
) -> list[Split]:
    """
    Compute who owes what for one expense.

    Args:
        amount: Positive expense amount in whole units of `places`
        policy: SplitPolicy or its stored tag ("equal", "amount", ...)
        participants: Trip members, in the order splits are assigned
        overrides: Per-participant percentages, amounts, or opt-in set
        epsilon: Tolerance for the sum checks
        places: Decimal places shares are rounded to

    Returns:
        One Split per participant, in input order

    Raises:
        ZeroParticipantsError, InvalidAmountError, EmptyParticipantSetError,
        InvalidPercentageError, SplitMismatchError, UnknownSplitPolicyError
    """
    amount = _as_decimal(amount)
    policy = parse_split_policy(policy)
    members = [_as_member(m) for m in participants]
    entries = [_as_override(o) for o in overrides or []]
    quantum = _quantum(places)

    if not members:
        raise ZeroParticipantsError()

    if amount != amount.quantize(quantum):
        raise InvalidAmountError(amount, places)

    if policy is SplitPolicy.EQUAL:
        return _split_evenly(amount, [m.participant_id for m in members], quantum)

    elif policy is SplitPolicy.PERCENTAGE:
        if entries:
            percentages = [
                (e.participant_id, e.percentage or Decimal("0")) for e in entries
            ]
        elif any(m.default_percentage is not None for m in members):
            percentages = [
                (m.participant_id, m.default_percentage or Decimal("0")) for m in members
            ]
        else:
            # No percentages anywhere: fall back to an equal split
            return _split_evenly(amount, [m.participant_id for m in members], quantum)
        return _split_by_percentages(amount, percentages, quantum, epsilon)

    elif policy is SplitPolicy.EXACT_AMOUNT:
        if not entries:
            raise SplitMismatchError(
                expected=amount,
                actual=Decimal("0"),
                message="Custom amounts are required for an exact-amount split",
            )
        for e in entries:
            # Sub-unit shares can't be settled in whole cents
            if e.amount is not None and e.amount != e.amount.quantize(quantum):
                raise SplitMismatchError(
                    expected=amount,
                    actual=e.amount,
                    message=(
                        f"Split amount {e.amount} for {e.participant_id} "
                        f"has more than {places} decimal places"
                    ),
                )
        total = sum((e.amount or Decimal("0") for e in entries), Decimal("0"))
        # Amounts are cents: a full cent off is already a mismatch
        if abs(total - amount) >= epsilon:
            raise SplitMismatchError(expected=amount, actual=total)
        return [
            Split(
                participant_id=e.participant_id,
                amount=e.amount or Decimal("0"),
                percentage=((e.amount or Decimal("0")) / amount * 100).quantize(CENT),
            )
            for e in entries
        ]

    elif policy is SplitPolicy.OPT_IN:
        opted_in = list(dict.fromkeys(e.participant_id for e in entries))
        if not opted_in:
            raise EmptyParticipantSetError()
        return _split_evenly(amount, opted_in, quantum)

    raise UnknownSplitPolicyError(policy)


def ensure_trip_members(
    splits: Sequence[Split],
    participants: Sequence[MemberLike],
) -> None:
    """Raise NonMemberSplitError if any split participant is not in `participants`."""
    member_ids = {_as_member(m).participant_id for m in participants}
    for split in splits:
        if split.participant_id not in member_ids:
            raise NonMemberSplitError(split.participant_id)


def validate_expense_split(
    amount: Decimal,
    policy: Union[SplitPolicy, str],
    participants: Sequence[MemberLike],
    overrides: Optional[Sequence[OverrideLike]] = None,
    *,
    epsilon: Decimal = EPSILON,
) -> SplitValidationResult:
    """
    Check a proposed split without raising.

    Verifies the policy can be applied, the splits add up, and every
    split participant is a trip member.
    """
    try:
        splits = compute_splits(
            amount, policy, participants, overrides, epsilon=epsilon
        )
    except SplitError as e:
        return SplitValidationResult(valid=False, error=str(e))

    amount = _as_decimal(amount)
    total = sum((s.amount for s in splits), Decimal("0"))
    if abs(total - amount) > epsilon:
        return SplitValidationResult(
            valid=False,
            error=f"Splits sum to {total} but total is {amount}",
        )

    try:
        ensure_trip_members(splits, participants)
    except NonMemberSplitError as e:
        return SplitValidationResult(valid=False, error=str(e))

    return SplitValidationResult(valid=True)
