"""
Settlement Validator

Two checks, with very different weight:

VERIFY (correctness):
Replays settlements against a copy of the balances and confirms every
participant ends within epsilon of zero.

VALIDATE CLAIM (advisory):
Compares a payment someone says they made against a freshly recomputed
settlement list. A mismatch is reported, never enforced: real payments
are partial or rounded differently often enough that blocking them
would do more harm than good.

transaction_savings() is reporting only.
"""

from decimal import Decimal
from typing import Iterable, Sequence

from tripsync.models.ledger import (
    EPSILON,
    Balance,
    ClaimIssue,
    ClaimValidationResult,
    Settlement,
    TransactionSavings,
)


def verify(
    balances: Iterable[Balance],
    settlements: Iterable[Settlement],
    *,
    epsilon: Decimal = EPSILON,
) -> bool:
    """Check that applying the settlements leaves every balance at ~0."""
    final_balances = {b.participant_id: b.net for b in balances}

    for settlement in settlements:
        payer = settlement.from_participant_id
        payee = settlement.to_participant_id
        # Paying raises the debtor's net; receiving lowers the creditor's
        final_balances[payer] = final_balances.get(payer, Decimal("0")) + settlement.amount
        final_balances[payee] = final_balances.get(payee, Decimal("0")) - settlement.amount

    return all(abs(net) <= epsilon for net in final_balances.values())


def validate_claim(
    from_id: str,
    to_id: str,
    amount: Decimal,
    recomputed_settlements: Sequence[Settlement],
    *,
    epsilon: Decimal = EPSILON,
) -> ClaimValidationResult:
    """
    Validate a payment claim against what the optimizer suggests.

    Returns an invalid result (never raises) when no settlement goes from
    `from_id` to `to_id`, or when the amounts differ by more than epsilon.
    """
    amount = amount if isinstance(amount, Decimal) else Decimal(str(amount))

    matching = next(
        (
            s for s in recomputed_settlements
            if s.from_participant_id == from_id and s.to_participant_id == to_id
        ),
        None,
    )

    if matching is None:
        return ClaimValidationResult(
            valid=False,
            issue=ClaimIssue.NO_MATCHING_SETTLEMENT,
            message=f"No settlement found from {from_id} to {to_id}",
        )

    if abs(matching.amount - amount) > epsilon:
        return ClaimValidationResult(
            valid=False,
            issue=ClaimIssue.AMOUNT_MISMATCH,
            message=f"Amount mismatch. Expected {matching.amount}, got {amount}",
            expected_amount=matching.amount,
        )

    return ClaimValidationResult(valid=True, expected_amount=matching.amount)


def transaction_savings(
    balances: Iterable[Balance],
    settlements: Sequence[Settlement],
    *,
    epsilon: Decimal = EPSILON,
) -> TransactionSavings:
    """
    Compare the settlement count with the naive approach.

    Naive: in the worst case every debtor pays every creditor directly.
    """
    balances = list(balances)
    debtors = [b for b in balances if b.net < -epsilon]
    creditors = [b for b in balances if b.net > epsilon]

    naive_count = len(debtors) * len(creditors)
    optimized_count = len(settlements)
    saved = naive_count - optimized_count
    savings_percentage = (saved / naive_count) * 100 if naive_count > 0 else 0.0

    return TransactionSavings(
        naive_count=naive_count,
        optimized_count=optimized_count,
        saved=saved,
        savings_percentage=savings_percentage,
    )
