"""
Abstract Storage Interface

DESIGN DECISION: The ledger and voting engines never touch a database.
The persistence layer is an external collaborator reached only through
this interface, so the engines stay pure and any backend (SQL, document
store, in-memory for tests) can sit behind it.

Writes follow fetch-then-recompute-then-write. Two writes by the same
participant racing each other resolve last-write-wins.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from tripsync.models.audit import AuditEvent
from tripsync.models.ledger import Expense, ExpenseStatus, Settlement, TripMember
from tripsync.models.voting import Proposal, ProposalCategory, ProposalStatus, Vote


class TripStorageInterface(ABC):
    """
    Abstract interface for trip data.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def get_members(self, trip_id: str) -> list[TripMember]:
        """
        Get a trip's active members, in join order.

        Raises:
            NotFoundError: If the trip doesn't exist
        """
        pass

    @abstractmethod
    async def count_members(self, trip_id: str) -> int:
        """Count active members (eligible voters) of a trip."""
        pass

    @abstractmethod
    async def list_expenses(
        self,
        trip_id: str,
        include_rejected: bool = False,
    ) -> list[Expense]:
        """
        List a trip's expenses with their splits embedded.

        Args:
            trip_id: The trip
            include_rejected: Also return rejected expenses

        Returns:
            Expenses in creation order
        """
        pass

    @abstractmethod
    async def save_expense(self, trip_id: str, expense: Expense) -> bool:
        """
        Save a new expense and its splits atomically.

        Raises:
            DuplicateError: If an expense with this id exists
        """
        pass

    @abstractmethod
    async def update_expense_status(
        self,
        trip_id: str,
        expense_id: UUID,
        status: ExpenseStatus,
    ) -> Expense:
        """
        Replace a stored expense's review status. Nothing else changes.

        Returns:
            The updated expense

        Raises:
            NotFoundError: If the trip or expense doesn't exist
        """
        pass

    @abstractmethod
    async def list_settlements(self, trip_id: str) -> list[Settlement]:
        """List recorded settlements, newest first."""
        pass

    @abstractmethod
    async def append_settlement(self, trip_id: str, settlement: Settlement) -> bool:
        """Append a confirmed settlement. Settlements are never deleted."""
        pass

    @abstractmethod
    async def get_proposal(self, proposal_id: str) -> Optional[Proposal]:
        """Get a proposal with its votes embedded, or None."""
        pass

    @abstractmethod
    async def list_proposals(
        self,
        trip_id: str,
        category: Optional[ProposalCategory] = None,
        status: Optional[ProposalStatus] = None,
    ) -> list[Proposal]:
        """
        List a trip's proposals with votes embedded.

        Args:
            trip_id: The trip
            category: Only proposals in this category
            status: Only proposals with this status
        """
        pass

    @abstractmethod
    async def save_votes(self, proposal_id: str, votes: list[Vote]) -> bool:
        """
        Replace the full vote list of a proposal.

        Raises:
            NotFoundError: If the proposal doesn't exist
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event to the log."""
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for one request, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
