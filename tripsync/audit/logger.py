"""
Audit Logger

DESIGN DECISION: Every change to a trip's money or decisions is logged,
and so is every rejection. This provides:
1. Traceability of who recorded what
2. An explanation when a vote or split is refused
3. A record of payment claims that disagreed with the suggested settlements

The audit logger:
- Is async so it can sit next to async storage calls
- Never raises if persisting an event fails
- Supports correlation IDs to trace the events of one request
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from tripsync.config import AppSettings, get_settings
from tripsync.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from tripsync.services.storage import AuditStorageInterface


def _configure_structlog(renderer) -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(app_settings: Optional[AppSettings] = None) -> None:
    """
    Set up stdlib root logging and pick the structlog renderer.

    Call this once from the host application. Importing this module only
    configures structlog and leaves the root logger alone.
    """
    app_settings = app_settings or get_settings().app
    level = getattr(logging, app_settings.log_level)

    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)

    _configure_structlog(
        structlog.processors.JSONRenderer()
        if app_settings.log_json
        else structlog.dev.ConsoleRenderer()
    )


_configure_structlog(structlog.processors.JSONRenderer())


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity is AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity is AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Audit persistence must never break the request
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_recorded(
        self,
        trip_id: str,
        expense_id: UUID,
        payer_id: str,
        amount: Decimal,
        policy: str,
        correlation_id: UUID,
    ) -> None:
        """Log a recorded expense."""
        await self.log(AuditEventBuilder.expense_recorded(
            trip_id=trip_id,
            expense_id=expense_id,
            payer_id=payer_id,
            amount=amount,
            policy=policy,
            correlation_id=correlation_id,
        ))

    async def log_expense_status_changed(
        self,
        trip_id: str,
        expense_id: UUID,
        old_status: str,
        new_status: str,
        correlation_id: UUID,
    ) -> None:
        """Log an expense approved or rejected after review."""
        await self.log(AuditEventBuilder.expense_status_changed(
            trip_id=trip_id,
            expense_id=expense_id,
            old_status=old_status,
            new_status=new_status,
            correlation_id=correlation_id,
        ))

    async def log_split_rejected(
        self,
        trip_id: str,
        policy: str,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a split the calculator refused."""
        await self.log(AuditEventBuilder.split_rejected(
            trip_id=trip_id,
            policy=policy,
            error_code=error_code,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_balances_computed(
        self,
        trip_id: str,
        participant_count: int,
        expense_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.balances_computed(
            trip_id=trip_id,
            participant_count=participant_count,
            expense_count=expense_count,
            correlation_id=correlation_id,
        ))

    async def log_settlements_suggested(
        self,
        trip_id: str,
        settlement_count: int,
        naive_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.settlements_suggested(
            trip_id=trip_id,
            settlement_count=settlement_count,
            naive_count=naive_count,
            correlation_id=correlation_id,
        ))

    async def log_settlement_claim_mismatch(
        self,
        trip_id: str,
        from_id: str,
        to_id: str,
        amount: Decimal,
        issue: str,
        message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a payment claim that disagrees with the suggested settlements."""
        await self.log(AuditEventBuilder.settlement_claim_mismatch(
            trip_id=trip_id,
            from_id=from_id,
            to_id=to_id,
            amount=amount,
            issue=issue,
            message=message,
            correlation_id=correlation_id,
        ))

    async def log_settlement_recorded(
        self,
        trip_id: str,
        settlement_id: UUID,
        from_id: str,
        to_id: str,
        amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log a confirmed payment."""
        await self.log(AuditEventBuilder.settlement_recorded(
            trip_id=trip_id,
            settlement_id=settlement_id,
            from_id=from_id,
            to_id=to_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_vote_recorded(
        self,
        trip_id: str,
        proposal_id: str,
        voter_id: str,
        method: str,
        vote_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log an accepted vote."""
        await self.log(AuditEventBuilder.vote_recorded(
            trip_id=trip_id,
            proposal_id=proposal_id,
            voter_id=voter_id,
            method=method,
            vote_count=vote_count,
            correlation_id=correlation_id,
        ))

    async def log_vote_rejected(
        self,
        trip_id: str,
        proposal_id: str,
        voter_id: str,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a refused vote."""
        await self.log(AuditEventBuilder.vote_rejected(
            trip_id=trip_id,
            proposal_id=proposal_id,
            voter_id=voter_id,
            error_code=error_code,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_votes_tallied(
        self,
        trip_id: str,
        proposal_id: str,
        method: str,
        result_count: int,
        voting_closed: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.votes_tallied(
            trip_id=trip_id,
            proposal_id=proposal_id,
            method=method,
            result_count=result_count,
            voting_closed=voting_closed,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request and pass it through all
    subsequent operations.
    """
    return uuid4()
