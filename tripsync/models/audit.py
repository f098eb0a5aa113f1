"""
Audit Models for TripSync

Every action that changes a trip's money or decisions is logged:
expenses recorded, payments confirmed, votes cast. Rejections are
logged too, so a user asking "why was my vote refused?" has an answer.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from tripsync.models.ledger import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Expenses
    EXPENSE_RECORDED = "expense_recorded"
    EXPENSE_STATUS_CHANGED = "expense_status_changed"
    SPLIT_REJECTED = "split_rejected"

    # Settlements
    BALANCES_COMPUTED = "balances_computed"
    SETTLEMENTS_SUGGESTED = "settlements_suggested"
    SETTLEMENT_CLAIM_MISMATCH = "settlement_claim_mismatch"
    SETTLEMENT_RECORDED = "settlement_recorded"

    # Voting
    VOTE_RECORDED = "vote_recorded"
    VOTE_REJECTED = "vote_rejected"
    VOTES_TALLIED = "votes_tallied"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'settlement', 'proposal')"
    )
    entity_id: Optional[str] = None
    trip_id: Optional[str] = None

    # Correlation - for tracking related events in one request
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "trip_id": self.trip_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_recorded(trip_id, expense_id, ...)
        event = AuditEventBuilder.vote_rejected(trip_id, proposal_id, ...)
    """

    @staticmethod
    def expense_recorded(
        trip_id: str,
        expense_id: UUID,
        payer_id: str,
        amount: Decimal,
        policy: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            entity_type="expense",
            entity_id=str(expense_id),
            trip_id=trip_id,
            correlation_id=correlation_id,
            description=f"Expense recorded: {amount} paid by {payer_id}",
            details={
                "payer_id": payer_id,
                "amount": str(amount),
                "split_policy": policy,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_status_changed(
        trip_id: str,
        expense_id: UUID,
        old_status: str,
        new_status: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_STATUS_CHANGED,
            entity_type="expense",
            entity_id=str(expense_id),
            trip_id=trip_id,
            correlation_id=correlation_id,
            description=f"Expense status changed: {old_status} -> {new_status}",
            details={
                "old_status": old_status,
                "new_status": new_status,
            },
            is_user_action=True,
        )

    @staticmethod
    def split_rejected(
        trip_id: str,
        policy: str,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPLIT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            trip_id=trip_id,
            correlation_id=correlation_id,
            description=f"Expense split rejected ({policy})",
            details={"split_policy": policy},
            error_code=error_code,
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def balances_computed(
        trip_id: str,
        participant_count: int,
        expense_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCES_COMPUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="trip",
            entity_id=trip_id,
            trip_id=trip_id,
            correlation_id=correlation_id,
            description=(
                f"Balances computed for {participant_count} participants "
                f"from {expense_count} expenses"
            ),
            details={
                "participant_count": participant_count,
                "expense_count": expense_count,
            },
        )

    @staticmethod
    def settlements_suggested(
        trip_id: str,
        settlement_count: int,
        naive_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENTS_SUGGESTED,
            entity_type="trip",
            entity_id=trip_id,
            trip_id=trip_id,
            correlation_id=correlation_id,
            description=f"{settlement_count} settlements suggested",
            details={
                "settlement_count": settlement_count,
                "naive_count": naive_count,
            },
        )

    @staticmethod
    def settlement_claim_mismatch(
        trip_id: str,
        from_id: str,
        to_id: str,
        amount: Decimal,
        issue: str,
        message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_CLAIM_MISMATCH,
            severity=AuditSeverity.WARNING,
            entity_type="settlement",
            trip_id=trip_id,
            correlation_id=correlation_id,
            description="Payment claim differs from suggested settlements",
            details={
                "from_participant_id": from_id,
                "to_participant_id": to_id,
                "amount": str(amount),
            },
            error_code=issue,
            error_message=message,
        )

    @staticmethod
    def settlement_recorded(
        trip_id: str,
        settlement_id: UUID,
        from_id: str,
        to_id: str,
        amount: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_RECORDED,
            entity_type="settlement",
            entity_id=str(settlement_id),
            trip_id=trip_id,
            correlation_id=correlation_id,
            description=f"Payment recorded: {from_id} -> {to_id} {amount}",
            details={
                "from_participant_id": from_id,
                "to_participant_id": to_id,
                "amount": str(amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def vote_recorded(
        trip_id: str,
        proposal_id: str,
        voter_id: str,
        method: str,
        vote_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VOTE_RECORDED,
            entity_type="proposal",
            entity_id=proposal_id,
            trip_id=trip_id,
            correlation_id=correlation_id,
            description=f"{method.capitalize()} vote recorded for {voter_id}",
            details={
                "voter_id": voter_id,
                "voting_method": method,
                "vote_count": vote_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def vote_rejected(
        trip_id: str,
        proposal_id: str,
        voter_id: str,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VOTE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="proposal",
            entity_id=proposal_id,
            trip_id=trip_id,
            correlation_id=correlation_id,
            description=f"Vote rejected for {voter_id}",
            details={"voter_id": voter_id},
            error_code=error_code,
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def votes_tallied(
        trip_id: str,
        proposal_id: str,
        method: str,
        result_count: int,
        voting_closed: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VOTES_TALLIED,
            severity=AuditSeverity.DEBUG,
            entity_type="proposal",
            entity_id=proposal_id,
            trip_id=trip_id,
            correlation_id=correlation_id,
            description=f"Votes tallied: {method} returned {result_count} results",
            details={
                "voting_method": method,
                "result_count": result_count,
                "voting_closed": voting_closed,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
