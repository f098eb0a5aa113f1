"""
Tests for the audit logger.

The logger always logs locally and never raises if persisting fails.
"""

import importlib
import logging

import pytest
from decimal import Decimal
from uuid import uuid4

import tripsync.audit.logger
from tripsync.audit import AuditLogger, configure_logging, create_correlation_id
from tripsync.config import AppSettings
from tripsync.models.audit import AuditEvent, AuditEventType, AuditSeverity
from tripsync.services.storage import InMemoryAuditStorage, StorageError


class FailingAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event: AuditEvent) -> bool:
        raise StorageError("audit backend unavailable")


@pytest.fixture
def storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(storage):
    return AuditLogger(storage)


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_log_persists_event(self, audit_logger, storage):
        event = AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description="boom",
        )

        assert await audit_logger.log(event) is True
        assert storage.events == [event]

    @pytest.mark.asyncio
    async def test_log_without_storage(self):
        event = AuditEvent(event_type=AuditEventType.VOTES_TALLIED, description="tally")
        assert await AuditLogger().log(event) is True

    @pytest.mark.asyncio
    async def test_storage_failure_is_swallowed(self):
        audit_logger = AuditLogger(FailingAuditStorage())
        event = AuditEvent(event_type=AuditEventType.VOTE_RECORDED, description="vote")

        assert await audit_logger.log(event) is False

    @pytest.mark.asyncio
    async def test_helpers_build_typed_events(self, audit_logger, storage):
        correlation_id = create_correlation_id()

        await audit_logger.log_expense_recorded(
            trip_id="trip-1",
            expense_id=uuid4(),
            payer_id="alice",
            amount=Decimal("90.00"),
            policy="equal",
            correlation_id=correlation_id,
        )
        await audit_logger.log_split_rejected(
            trip_id="trip-1",
            policy="amount",
            error_code="split_mismatch",
            error_message="Expected 100.00, got 99.99",
            correlation_id=correlation_id,
        )
        await audit_logger.log_expense_status_changed(
            trip_id="trip-1",
            expense_id=uuid4(),
            old_status="pending",
            new_status="rejected",
            correlation_id=correlation_id,
        )
        await audit_logger.log_settlement_claim_mismatch(
            trip_id="trip-1",
            from_id="bob",
            to_id="alice",
            amount=Decimal("25.00"),
            issue="amount_mismatch",
            message="Amount mismatch. Expected 30.00, got 25.00",
            correlation_id=correlation_id,
        )
        await audit_logger.log_error(
            error_type="unexpected",
            error_message="boom",
            correlation_id=uuid4(),
        )

        related = await storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in related] == [
            AuditEventType.EXPENSE_RECORDED,
            AuditEventType.SPLIT_REJECTED,
            AuditEventType.EXPENSE_STATUS_CHANGED,
            AuditEventType.SETTLEMENT_CLAIM_MISMATCH,
        ]
        assert related[1].error_code == "split_mismatch"
        assert related[3].severity == AuditSeverity.WARNING

        recent = await storage.get_recent_events(limit=1)
        assert recent[0].event_type == AuditEventType.SYSTEM_ERROR


class TestLoggingSetup:
    """Tests for structlog configuration."""

    def test_console_renderer(self):
        configure_logging(AppSettings(log_json=False, log_level="DEBUG"))
        configure_logging(AppSettings())

    def test_import_leaves_root_logger_alone(self, monkeypatch):
        """Only an explicit configure_logging call touches stdlib logging."""
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

        importlib.reload(tripsync.audit.logger)

        assert calls == []

    def test_configure_logging_sets_root_level(self):
        root = logging.getLogger()
        previous = root.level
        try:
            configure_logging(AppSettings(log_level="WARNING"))
            assert root.level == logging.WARNING
        finally:
            root.setLevel(previous)

    def test_correlation_ids_are_unique(self):
        assert create_correlation_id() != create_correlation_id()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
