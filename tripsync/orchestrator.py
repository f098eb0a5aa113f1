"""
Main Orchestrator for TripSync

This module ties the pure reducers to storage and defines the
end-to-end flows for:
1. Ledger (expense → splits → save; expenses → balances → settlements)
2. Voting (ballot → gate → replace → save; votes → tally → report)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Reducers never see storage; they get plain snapshots
- Settings are read here once and passed down explicitly
- Every write and every rejection is audited

Writes are fetch-then-recompute-then-write. Balances and settlement
suggestions are never stored, only recomputed from the live expenses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence, Union
from uuid import UUID

import structlog

from tripsync.audit import AuditLogger, create_correlation_id
from tripsync.config import LedgerSettings, VotingSettings, get_settings
from tripsync.ledger import (
    SplitError,
    aggregate,
    compute_splits,
    ensure_trip_members,
    optimize,
    parse_split_policy,
    settlement_stats,
    summarize_expenses,
    transaction_savings,
    validate_claim,
)
from tripsync.ledger.splits import OverrideLike
from tripsync.models.ledger import (
    ClaimValidationResult,
    Expense,
    ExpenseStatus,
    PaymentClaim,
    Settlement,
    SettlementStatus,
    SettlementSummary,
    SplitPolicy,
    utc_now,
)
from tripsync.models.voting import (
    Proposal,
    ProposalStatus,
    TallyReport,
    Vote,
    VotingMethod,
)
from tripsync.services.storage import (
    InMemoryAuditStorage,
    InMemoryTripStorage,
    NotFoundError,
    StorageError,
    TripStorageInterface,
)
from tripsync.voting import (
    InvalidBallotError,
    VotingError,
    build_choice_vote,
    ensure_voting_open,
    get_user_ranked_votes,
    is_proposal_closed,
    parse_voting_method,
    replace_ranked_ballot,
    replace_vote,
    tally_approval,
    tally_borda_count,
    tally_single_choice,
)

logger = structlog.get_logger(__name__)


async def _log_storage_failure(
    audit_logger: Optional[AuditLogger],
    operation: str,
    error: StorageError,
    correlation_id: UUID,
) -> None:
    if audit_logger:
        await audit_logger.log_error(
            error_type="storage_write_failed",
            error_message=str(error),
            details={"operation": operation, "error_class": type(error).__name__},
            correlation_id=correlation_id,
        )


class LedgerFlow:
    """
    Orchestrates the expense ledger.

    Flow:
    1. Record → compute splits against the trip's members, save atomically
    2. Summarize → aggregate balances, suggest settlements, report savings
    3. Pay → check the claim against fresh suggestions, record it regardless

    A rejected split is never saved and never corrected silently.
    """

    def __init__(
        self,
        storage: TripStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        ledger_settings: Optional[LedgerSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._settings = ledger_settings or get_settings().ledger

    async def record_expense(
        self,
        trip_id: str,
        payer_id: str,
        amount: Decimal,
        policy: Union[SplitPolicy, str] = SplitPolicy.EQUAL,
        overrides: Optional[Sequence[OverrideLike]] = None,
        currency: Optional[str] = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Split and save a new expense.

        Raises:
            SplitError: The split can't be applied or doesn't add up
            NotFoundError: Unknown trip
        """
        correlation_id = correlation_id or create_correlation_id()
        members = await self._storage.get_members(trip_id)

        try:
            split_policy = parse_split_policy(policy)
            splits = compute_splits(
                amount,
                split_policy,
                members,
                overrides,
                epsilon=self._settings.epsilon,
                places=self._settings.currency_places,
            )
            ensure_trip_members(splits, members)
        except SplitError as e:
            if self._audit_logger:
                await self._audit_logger.log_split_rejected(
                    trip_id=trip_id,
                    policy=str(getattr(policy, "value", policy)),
                    error_code=e.error_code,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        expense = Expense.model_validate(
            {
                "trip_id": trip_id,
                "payer_id": payer_id,
                "amount": amount,
                "currency": currency or self._settings.default_currency,
                "split_policy": split_policy,
                "splits": splits,
                "category": category,
                "description": description,
            },
            context={"epsilon": self._settings.epsilon},
        )
        try:
            await self._storage.save_expense(trip_id, expense)
        except StorageError as e:
            await _log_storage_failure(
                self._audit_logger, "save_expense", e, correlation_id
            )
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_recorded(
                trip_id=trip_id,
                expense_id=expense.id,
                payer_id=payer_id,
                amount=expense.amount,
                policy=split_policy.value,
                correlation_id=correlation_id,
            )

        return expense

    async def set_expense_status(
        self,
        trip_id: str,
        expense_id: UUID,
        status: Union[ExpenseStatus, str],
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Approve or reject a recorded expense.

        Rejected expenses drop out of balances and settlement suggestions
        on the next summary. Amount and splits never change.

        Raises:
            NotFoundError: Unknown trip or expense
        """
        correlation_id = correlation_id or create_correlation_id()
        status = ExpenseStatus(status)

        expenses = await self._storage.list_expenses(trip_id, include_rejected=True)
        current = next((e for e in expenses if e.id == expense_id), None)
        if current is None:
            raise NotFoundError(f"Expense {expense_id} not found")

        try:
            updated = await self._storage.update_expense_status(
                trip_id, expense_id, status
            )
        except StorageError as e:
            await _log_storage_failure(
                self._audit_logger, "update_expense_status", e, correlation_id
            )
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_status_changed(
                trip_id=trip_id,
                expense_id=expense_id,
                old_status=current.status.value,
                new_status=updated.status.value,
                correlation_id=correlation_id,
            )

        return updated

    async def _suggest(self, trip_id: str):
        expenses = await self._storage.list_expenses(trip_id)
        balances = aggregate(expenses)
        suggested = optimize(
            balances,
            epsilon=self._settings.epsilon,
            places=self._settings.currency_places,
        )
        return expenses, balances, suggested

    async def summarize(
        self,
        trip_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> SettlementSummary:
        """
        Compute balances and suggested settlements for a trip.

        Already-confirmed settlements are listed alongside, untouched.
        """
        correlation_id = correlation_id or create_correlation_id()

        expenses, balances, suggested = await self._suggest(trip_id)
        existing = await self._storage.list_settlements(trip_id)
        savings = transaction_savings(
            balances, suggested, epsilon=self._settings.epsilon
        )

        if self._audit_logger:
            await self._audit_logger.log_balances_computed(
                trip_id=trip_id,
                participant_count=len(balances),
                expense_count=len(expenses),
                correlation_id=correlation_id,
            )
            await self._audit_logger.log_settlements_suggested(
                trip_id=trip_id,
                settlement_count=savings.optimized_count,
                naive_count=savings.naive_count,
                correlation_id=correlation_id,
            )

        return SettlementSummary(
            trip_id=trip_id,
            balances=balances,
            suggested_settlements=suggested,
            existing_settlements=existing,
            total_expenses=summarize_expenses(expenses).total_expenses,
            stats=settlement_stats(suggested),
            savings=savings,
        )

    async def record_payment(
        self,
        trip_id: str,
        claim: PaymentClaim,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Settlement, ClaimValidationResult]:
        """
        Record a payment made outside the system.

        The claim is validated against freshly recomputed suggestions.
        A mismatch is logged as a warning but never blocks the record.

        Returns:
            (confirmed_settlement, validation)
        """
        correlation_id = correlation_id or create_correlation_id()

        _, _, suggested = await self._suggest(trip_id)
        validation = validate_claim(
            claim.from_participant_id,
            claim.to_participant_id,
            claim.amount,
            suggested,
            epsilon=self._settings.epsilon,
        )

        if not validation.valid:
            logger.warning(
                "settlement_claim_mismatch",
                trip_id=trip_id,
                issue=validation.issue.value,
                message=validation.message,
            )
            if self._audit_logger:
                await self._audit_logger.log_settlement_claim_mismatch(
                    trip_id=trip_id,
                    from_id=claim.from_participant_id,
                    to_id=claim.to_participant_id,
                    amount=claim.amount,
                    issue=validation.issue.value,
                    message=validation.message,
                    correlation_id=correlation_id,
                )

        settlement = Settlement(
            from_participant_id=claim.from_participant_id,
            to_participant_id=claim.to_participant_id,
            amount=claim.amount,
            status=SettlementStatus.CONFIRMED,
            currency=self._settings.default_currency,
            payment_method=claim.payment_method,
            payment_reference=claim.payment_reference,
            notes=claim.notes,
            paid_at=utc_now(),
        )
        try:
            await self._storage.append_settlement(trip_id, settlement)
        except StorageError as e:
            await _log_storage_failure(
                self._audit_logger, "append_settlement", e, correlation_id
            )
            raise

        if self._audit_logger:
            await self._audit_logger.log_settlement_recorded(
                trip_id=trip_id,
                settlement_id=settlement.id,
                from_id=settlement.from_participant_id,
                to_id=settlement.to_participant_id,
                amount=settlement.amount,
                correlation_id=correlation_id,
            )

        return settlement, validation


class VotingFlow:
    """
    Orchestrates proposal voting.

    CRITICAL BOUNDARIES:
    1. The voting gate runs before any vote is built
    2. Ranked ballots replace the voter's whole ranking in the category
    3. Tallies are computed from the stored votes on every read
    """

    def __init__(
        self,
        storage: TripStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        voting_settings: Optional[VotingSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._settings = voting_settings or get_settings().voting

    async def _get_proposal(self, proposal_id: str) -> Proposal:
        proposal = await self._storage.get_proposal(proposal_id)
        if proposal is None:
            raise NotFoundError(f"Proposal {proposal_id} not found")
        return proposal

    async def _category_batch(self, proposal: Proposal) -> list[Proposal]:
        """Open proposals competing with `proposal`, itself included."""
        batch = await self._storage.list_proposals(
            proposal.trip_id,
            category=proposal.category,
            status=ProposalStatus.OPEN,
        )
        if all(p.id != proposal.id for p in batch):
            batch.append(proposal)
        return batch

    async def cast_vote(
        self,
        proposal_id: str,
        voter_id: str,
        *,
        vote_value: Optional[int] = None,
        ranked_proposal_ids: Optional[Sequence[str]] = None,
        voter_name: Optional[str] = None,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Vote]:
        """
        Cast or replace a vote.

        Single-choice and approval proposals take `vote_value` (1 or 0).
        Ranked proposals take `ranked_proposal_ids`, first choice first.

        Returns:
            The voter's votes as stored after this submission

        Raises:
            NotFoundError: Unknown proposal
            VotingClosedError: Proposal not open, or deadline passed
            InvalidBallotError: Submission doesn't fit the voting method
        """
        correlation_id = correlation_id or create_correlation_id()
        proposal = await self._get_proposal(proposal_id)

        try:
            ensure_voting_open(proposal, now)
            method = parse_voting_method(proposal.voting_method)

            if method is VotingMethod.RANKED:
                batch = await self._category_batch(proposal)
                updated = replace_ranked_ballot(
                    [v for p in batch for v in p.votes],
                    voter_id,
                    ranked_proposal_ids or [],
                    [p.id for p in batch],
                    voter_name=voter_name,
                    max_choices=self._settings.max_ranked_choices,
                )
                for p in batch:
                    await self._storage.save_votes(
                        p.id, [v for v in updated if v.proposal_id == p.id]
                    )
                recorded = get_user_ranked_votes(updated, voter_id)
            else:
                if vote_value is None:
                    raise InvalidBallotError("A vote value is required")
                vote = build_choice_vote(proposal.id, voter_id, vote_value, voter_name)
                await self._storage.save_votes(
                    proposal.id, replace_vote(proposal.votes, vote)
                )
                recorded = [vote]
        except VotingError as e:
            if self._audit_logger:
                await self._audit_logger.log_vote_rejected(
                    trip_id=proposal.trip_id,
                    proposal_id=proposal.id,
                    voter_id=voter_id,
                    error_code=e.error_code,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise
        except StorageError as e:
            await _log_storage_failure(self._audit_logger, "save_votes", e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_vote_recorded(
                trip_id=proposal.trip_id,
                proposal_id=proposal.id,
                voter_id=voter_id,
                method=method.value,
                vote_count=len(recorded),
                correlation_id=correlation_id,
            )

        return recorded

    async def results(
        self,
        proposal_id: str,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TallyReport:
        """
        Tally a proposal.

        Ranked and approval results cover every open proposal in the
        proposal's category, best first. Single-choice covers just this one.
        """
        correlation_id = correlation_id or create_correlation_id()
        proposal = await self._get_proposal(proposal_id)
        method = parse_voting_method(proposal.voting_method)
        total_members = await self._storage.count_members(proposal.trip_id)

        if method is VotingMethod.SINGLE:
            results = [tally_single_choice(proposal)]
        elif method is VotingMethod.RANKED:
            results = tally_borda_count(await self._category_batch(proposal))
        else:
            results = tally_approval(await self._category_batch(proposal), total_members)

        voting_closed = is_proposal_closed(proposal, now)

        if self._audit_logger:
            await self._audit_logger.log_votes_tallied(
                trip_id=proposal.trip_id,
                proposal_id=proposal.id,
                method=method.value,
                result_count=len(results),
                voting_closed=voting_closed,
                correlation_id=correlation_id,
            )

        return TallyReport(
            proposal_id=proposal.id,
            title=proposal.title,
            voting_method=method,
            status=proposal.status,
            voting_deadline=proposal.voting_deadline,
            results=results,
            total_members=total_members,
            voting_closed=voting_closed,
        )


def create_app_components(
    storage: Optional[TripStorageInterface] = None,
    persist_audit: bool = True,
) -> tuple[LedgerFlow, VotingFlow]:
    """
    Factory function to create the application flows.

    Args:
        storage: Trip storage backend. Defaults to in-memory storage.
        persist_audit: Keep audit events in in-memory audit storage.
                       Set to False for local-only structured logs.

    Returns:
        (ledger_flow, voting_flow)
    """
    settings = get_settings()
    storage = storage or InMemoryTripStorage()
    audit_logger = AuditLogger(InMemoryAuditStorage() if persist_audit else None)

    ledger_flow = LedgerFlow(
        storage=storage,
        audit_logger=audit_logger,
        ledger_settings=settings.ledger,
    )
    voting_flow = VotingFlow(
        storage=storage,
        audit_logger=audit_logger,
        voting_settings=settings.voting,
    )

    return ledger_flow, voting_flow
