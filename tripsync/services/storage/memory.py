"""
In-Memory Storage

Dict-backed implementations of the storage interfaces. Used by the test
suite and for running the flows locally without a database.
"""

from typing import Iterable, Optional, Union
from uuid import UUID

from tripsync.models.audit import AuditEvent
from tripsync.models.ledger import Expense, ExpenseStatus, Settlement, TripMember
from tripsync.models.voting import Proposal, ProposalCategory, ProposalStatus, Vote
from tripsync.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    TripStorageInterface,
)


class InMemoryTripStorage(TripStorageInterface):
    """Trip storage held in plain dicts."""

    def __init__(self):
        self._members: dict[str, list[TripMember]] = {}
        self._expenses: dict[str, list[Expense]] = {}
        self._settlements: dict[str, list[Settlement]] = {}
        self._proposals: dict[str, Proposal] = {}

    # Seeding helpers (not part of the interface)

    def add_trip(
        self,
        trip_id: str,
        members: Iterable[Union[TripMember, str]],
    ) -> None:
        self._members[trip_id] = [
            m if isinstance(m, TripMember) else TripMember(participant_id=m)
            for m in members
        ]
        self._expenses.setdefault(trip_id, [])
        self._settlements.setdefault(trip_id, [])

    def add_proposal(self, proposal: Proposal) -> None:
        if proposal.trip_id not in self._members:
            raise NotFoundError(f"Trip {proposal.trip_id} not found")
        self._proposals[proposal.id] = proposal.model_copy(deep=True)

    def _require_trip(self, trip_id: str) -> None:
        if trip_id not in self._members:
            raise NotFoundError(f"Trip {trip_id} not found")

    async def get_members(self, trip_id: str) -> list[TripMember]:
        self._require_trip(trip_id)
        return list(self._members[trip_id])

    async def count_members(self, trip_id: str) -> int:
        self._require_trip(trip_id)
        return len(self._members[trip_id])

    async def list_expenses(
        self,
        trip_id: str,
        include_rejected: bool = False,
    ) -> list[Expense]:
        self._require_trip(trip_id)
        return [
            e for e in self._expenses[trip_id]
            if include_rejected or e.status is not ExpenseStatus.REJECTED
        ]

    async def save_expense(self, trip_id: str, expense: Expense) -> bool:
        self._require_trip(trip_id)
        if any(e.id == expense.id for e in self._expenses[trip_id]):
            raise DuplicateError(f"Expense {expense.id} already exists")
        self._expenses[trip_id].append(expense)
        return True

    async def update_expense_status(
        self,
        trip_id: str,
        expense_id: UUID,
        status: ExpenseStatus,
    ) -> Expense:
        self._require_trip(trip_id)
        expenses = self._expenses[trip_id]
        for index, expense in enumerate(expenses):
            if expense.id == expense_id:
                expenses[index] = expense.with_status(status)
                return expenses[index]
        raise NotFoundError(f"Expense {expense_id} not found")

    async def list_settlements(self, trip_id: str) -> list[Settlement]:
        self._require_trip(trip_id)
        return list(reversed(self._settlements[trip_id]))

    async def append_settlement(self, trip_id: str, settlement: Settlement) -> bool:
        self._require_trip(trip_id)
        self._settlements[trip_id].append(settlement)
        return True

    async def get_proposal(self, proposal_id: str) -> Optional[Proposal]:
        proposal = self._proposals.get(proposal_id)
        return proposal.model_copy(deep=True) if proposal else None

    async def list_proposals(
        self,
        trip_id: str,
        category: Optional[ProposalCategory] = None,
        status: Optional[ProposalStatus] = None,
    ) -> list[Proposal]:
        self._require_trip(trip_id)
        return [
            p.model_copy(deep=True)
            for p in self._proposals.values()
            if p.trip_id == trip_id
            and (category is None or p.category is category)
            and (status is None or p.status is status)
        ]

    async def save_votes(self, proposal_id: str, votes: list[Vote]) -> bool:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise NotFoundError(f"Proposal {proposal_id} not found")
        self._proposals[proposal_id] = proposal.model_copy(update={"votes": list(votes)})
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
