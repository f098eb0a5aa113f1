"""
Ballots: the write side of voting

The tally engine only reads. This module decides whether a vote may be
cast at all, and what a voter's votes look like after a new submission.

RE-VOTE RULES:
- Single-choice and approval: a new vote replaces only that voter's
  previous vote on the same proposal.
- Ranked-choice: a new submission replaces ALL of the voter's ranked votes
  across every proposal in the category batch. Ranks only mean something
  relative to each other, so a partial re-ranking is never merged into an
  old one. A client that resubmits only some proposals drops the others.

VOTING GATE:
A proposal that is not OPEN, or whose deadline has passed, is closed.
Either condition alone blocks new votes.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence, Union

from tripsync.models.voting import Proposal, ProposalStatus, Vote, VotingMethod


class VotingError(Exception):
    """Base exception for voting errors."""

    error_code = "voting_error"


class VotingClosedError(VotingError):
    """Proposal no longer accepts votes."""

    error_code = "voting_closed"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class InvalidVotingTypeError(VotingError):
    """Voting method tag we don't know how to tally."""

    error_code = "invalid_voting_type"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid voting type: {value}")


class InvalidBallotError(VotingError):
    """Submission that doesn't fit the proposal's voting method."""

    error_code = "invalid_ballot"


_METHOD_ALIASES = {
    "single": VotingMethod.SINGLE,
    "single_choice": VotingMethod.SINGLE,
    "ranked": VotingMethod.RANKED,
    "ranked_choice": VotingMethod.RANKED,
    "approval": VotingMethod.APPROVAL,
    "approval_voting": VotingMethod.APPROVAL,
}


def parse_voting_method(value: Union[VotingMethod, str]) -> VotingMethod:
    """Map a stored or user-supplied voting method tag onto VotingMethod."""
    if isinstance(value, VotingMethod):
        return value
    method = _METHOD_ALIASES.get(str(value).strip().lower())
    if method is None:
        raise InvalidVotingTypeError(value)
    return method


# =============================================================================
# VOTING GATE
# =============================================================================

def _aware(moment: datetime) -> datetime:
    # Naive timestamps are treated as UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def is_voting_closed(
    voting_deadline: Optional[datetime],
    now: Optional[datetime] = None,
) -> bool:
    """True when a deadline is set and has passed."""
    if voting_deadline is None:
        return False
    now = _aware(now or datetime.now(timezone.utc))
    return _aware(voting_deadline) < now


def is_proposal_closed(proposal: Proposal, now: Optional[datetime] = None) -> bool:
    return (
        proposal.status is not ProposalStatus.OPEN
        or is_voting_closed(proposal.voting_deadline, now)
    )


def ensure_voting_open(proposal: Proposal, now: Optional[datetime] = None) -> None:
    """
    Raise VotingClosedError unless the proposal accepts votes.

    Status is checked before the deadline so the reason given is the
    more permanent one.
    """
    if proposal.status is not ProposalStatus.OPEN:
        raise VotingClosedError("Voting is closed for this proposal")
    if is_voting_closed(proposal.voting_deadline, now):
        raise VotingClosedError("Voting deadline has passed")


# =============================================================================
# BALLOT CONSTRUCTION AND REPLACEMENT
# =============================================================================

def build_choice_vote(
    proposal_id: str,
    voter_id: str,
    value: Union[bool, int],
    voter_name: Optional[str] = None,
) -> Vote:
    """Build a yes/no (single-choice) or approve/withdraw (approval) vote."""
    if value not in (0, 1):
        raise InvalidBallotError(f"Vote value must be 0 or 1, got {value}")
    return Vote(
        proposal_id=proposal_id,
        voter_id=voter_id,
        voter_name=voter_name,
        vote_value=int(value),
    )


def replace_vote(votes: Iterable[Vote], vote: Vote) -> list[Vote]:
    """Return `votes` with the voter's previous vote on this proposal replaced."""
    kept = [
        v for v in votes
        if not (v.proposal_id == vote.proposal_id and v.voter_id == vote.voter_id)
    ]
    kept.append(vote)
    return kept


def replace_ranked_ballot(
    votes: Iterable[Vote],
    voter_id: str,
    ranked_proposal_ids: Sequence[str],
    eligible_proposal_ids: Iterable[str],
    *,
    voter_name: Optional[str] = None,
    max_choices: int = 3,
) -> list[Vote]:
    """
    Replace a voter's whole ranking for one category batch.

    Args:
        votes: Every vote on the batch's proposals
        voter_id: Who is submitting
        ranked_proposal_ids: Proposal ids, first choice first
        eligible_proposal_ids: Open proposals in the same trip and category
        max_choices: How many proposals may be ranked

    Returns:
        The batch's votes with this voter's ranked votes swapped out

    Raises:
        InvalidBallotError: empty, too long, duplicated, or ineligible ranking
    """
    eligible = set(eligible_proposal_ids)

    if not ranked_proposal_ids:
        raise InvalidBallotError("Rank at least one proposal")
    if len(ranked_proposal_ids) > max_choices:
        raise InvalidBallotError(f"Rank at most {max_choices} proposals")
    if len(set(ranked_proposal_ids)) != len(ranked_proposal_ids):
        raise InvalidBallotError("A proposal can only be ranked once")
    if not eligible.issuperset(ranked_proposal_ids):
        raise InvalidBallotError(
            "One or more proposals not found or not eligible for voting"
        )

    kept = [
        v for v in votes
        if not (
            v.voter_id == voter_id
            and v.rank is not None
            and v.proposal_id in eligible
        )
    ]
    kept.extend(
        Vote(
            proposal_id=proposal_id,
            voter_id=voter_id,
            voter_name=voter_name,
            rank=rank,
        )
        for rank, proposal_id in enumerate(ranked_proposal_ids, start=1)
    )
    return kept


# =============================================================================
# LOOKUPS
# =============================================================================

def has_user_voted(votes: Iterable[Vote], voter_id: str) -> bool:
    return any(v.voter_id == voter_id for v in votes)


def get_user_vote(votes: Iterable[Vote], voter_id: str) -> Optional[Vote]:
    return next((v for v in votes if v.voter_id == voter_id), None)


def get_user_ranked_votes(votes: Iterable[Vote], voter_id: str) -> list[Vote]:
    """A voter's ranked votes, first choice first."""
    return sorted(
        (v for v in votes if v.voter_id == voter_id and v.rank is not None),
        key=lambda v: v.rank,
    )
