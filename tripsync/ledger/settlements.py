"""
Settlement Optimizer

Turns net balances into a short list of payments that zeroes them out.

ALGORITHM (greedy largest-creditor / largest-debtor netting):
1. Drop participants whose |net| is within epsilon
2. Split the rest into creditors (net > 0) and debtors (owing, as magnitude)
3. Sort both descending; ties keep input order
4. Pair the current largest creditor with the current largest debtor and
   transfer min(creditor remaining, debtor remaining), rounded to cents
5. Move past whichever side drops below epsilon
6. Stop when either side runs out

This is an approximation. Finding the true minimum number of transfers is
NP-hard in general; the greedy result is reproducible and never needs more
than creditors x debtors transfers.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from tripsync.models.ledger import (
    EPSILON,
    Balance,
    Settlement,
    SettlementStats,
)


def optimize(
    balances: Iterable[Balance],
    *,
    epsilon: Decimal = EPSILON,
    places: int = 2,
) -> list[Settlement]:
    """
    Minimize the number of transfers needed to settle debts.

    Returns suggested (unconfirmed) settlements, debtor -> creditor.
    """
    quantum = Decimal(1).scaleb(-places)
    balances = list(balances)

    creditors = [(b.participant_id, b.net) for b in balances if b.net > epsilon]
    # Store debts as positive magnitudes
    debtors = [(b.participant_id, -b.net) for b in balances if b.net < -epsilon]

    # sort() is stable, including with reverse=True
    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)

    settlements = []
    cred_idx = 0
    debt_idx = 0

    while cred_idx < len(creditors) and debt_idx < len(debtors):
        creditor_id, cred_amount = creditors[cred_idx]
        debtor_id, debt_amount = debtors[debt_idx]

        amount = min(cred_amount, debt_amount).quantize(quantum, rounding=ROUND_HALF_UP)

        if amount <= 0:
            # Remaining difference is below the rounding unit: slack
            if cred_amount <= debt_amount:
                cred_idx += 1
            else:
                debt_idx += 1
            continue

        settlements.append(Settlement(
            from_participant_id=debtor_id,
            to_participant_id=creditor_id,
            amount=amount,
        ))

        creditors[cred_idx] = (creditor_id, cred_amount - amount)
        debtors[debt_idx] = (debtor_id, debt_amount - amount)

        if creditors[cred_idx][1] < epsilon:
            cred_idx += 1
        if debtors[debt_idx][1] < epsilon:
            debt_idx += 1

    return settlements


def settlement_stats(settlements: Sequence[Settlement]) -> SettlementStats:
    """Count and total/average/max/min amount of a settlement list."""
    if not settlements:
        return SettlementStats()

    amounts = [s.amount for s in settlements]
    total = sum(amounts, Decimal("0"))

    return SettlementStats(
        total_transactions=len(amounts),
        total_amount=total,
        average_amount=(total / len(amounts)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        max_amount=max(amounts),
        min_amount=min(amounts),
    )
