"""
Balance Aggregator

Reduces a trip's expenses into one net balance per participant:
the payer is credited the full amount, every split participant is
debited their share. Balance = Total Paid - Total Owed.

Balances are always recomputed from the live expense set, never stored.
Input is assumed to be single-currency.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable

from tripsync.models.ledger import (
    Balance,
    Expense,
    ExpenseStatus,
    ExpenseSummary,
)


def _live(expenses: Iterable[Expense]) -> list[Expense]:
    return [e for e in expenses if e.status is not ExpenseStatus.REJECTED]


def aggregate(expenses: Iterable[Expense]) -> list[Balance]:
    """
    Compute net balances from expenses.

    Rejected expenses are skipped. Participants who only paid or only owe
    still appear, with the other total at zero. Output is sorted by
    participant id.
    """
    paid: dict[str, Decimal] = defaultdict(Decimal)
    owed: dict[str, Decimal] = defaultdict(Decimal)

    for expense in _live(expenses):
        paid[expense.payer_id] += expense.amount
        for split in expense.splits:
            owed[split.participant_id] += split.amount

    return [
        Balance(
            participant_id=pid,
            paid=paid.get(pid, Decimal("0")),
            owed=owed.get(pid, Decimal("0")),
        )
        for pid in sorted(set(paid) | set(owed))
    ]


def summarize_expenses(expenses: Iterable[Expense]) -> ExpenseSummary:
    """Totals over non-rejected expenses, by category and by payer."""
    live = _live(expenses)

    by_category: dict[str, Decimal] = defaultdict(Decimal)
    by_payer: dict[str, Decimal] = defaultdict(Decimal)
    for expense in live:
        by_category[expense.category or "other"] += expense.amount
        by_payer[expense.payer_id] += expense.amount

    return ExpenseSummary(
        total_expenses=sum((e.amount for e in live), Decimal("0")),
        expense_count=len(live),
        by_category=dict(by_category),
        by_payer=dict(by_payer),
    )
