"""
Voting Data Models for TripSync

Proposals are candidate plans (a hotel, an activity, a restaurant) that
trip members vote on. Each proposal is tallied with one of three methods:

- SINGLE: a yes/no vote on one proposal
- RANKED: Borda count across every open proposal in a category
- APPROVAL: approve any number of proposals in a category

Result models carry per-voter detail so callers can show who voted how.
"""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tripsync.models.ledger import utc_now


# Borda points awarded per rank position
RANK_POINTS: dict[int, int] = {1: 3, 2: 2, 3: 1}


class VotingMethod(str, Enum):
    """How a proposal's votes are tallied."""
    SINGLE = "single"
    RANKED = "ranked"
    APPROVAL = "approval"


class ProposalStatus(str, Enum):
    """Proposal status. Only OPEN proposals accept votes."""
    DRAFT = "draft"
    OPEN = "open"
    CLOSED = "closed"
    SELECTED = "selected"
    REJECTED = "rejected"


class ProposalCategory(str, Enum):
    """Ranked and approval voting compare proposals within one category."""
    ACCOMMODATION = "accommodation"
    ACTIVITY = "activity"
    TRANSPORTATION = "transportation"
    DINING = "dining"
    OTHER = "other"


class Vote(BaseModel):
    """
    A single vote row.

    Single-choice and approval votes carry vote_value (1 = yes/approve,
    0 = no). Ranked votes carry rank (1st, 2nd or 3rd choice).
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    proposal_id: str = Field(..., min_length=1)
    voter_id: str = Field(..., min_length=1)
    voter_name: Optional[str] = None
    vote_value: Optional[int] = Field(default=None, ge=0, le=1)
    rank: Optional[int] = Field(default=None, ge=1, le=3)
    created_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_payload(self) -> 'Vote':
        if self.vote_value is None and self.rank is None:
            raise ValueError("A vote must carry either a value or a rank")
        return self


class Proposal(BaseModel):
    """A candidate plan trip members vote on."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    trip_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    category: ProposalCategory = ProposalCategory.OTHER
    voting_method: VotingMethod = VotingMethod.SINGLE
    status: ProposalStatus = ProposalStatus.OPEN
    voting_deadline: Optional[datetime] = None
    votes: list[Vote] = Field(default_factory=list)


# =============================================================================
# TALLY RESULTS
# =============================================================================

class SingleChoiceVoter(BaseModel):
    voter_id: str
    voter_name: str
    vote: Literal["yes", "no"]


class RankedVoter(BaseModel):
    voter_id: str
    voter_name: str
    rank: int
    points: int


class ApprovalVoter(BaseModel):
    voter_id: str
    voter_name: str


class SingleChoiceResult(BaseModel):
    """Yes/no outcome for one proposal."""

    proposal_id: str
    title: str
    yes_votes: int = Field(ge=0)
    no_votes: int = Field(ge=0)
    total_votes: int = Field(ge=0)
    percentage: float = Field(
        ...,
        ge=0.0,
        le=100.0,
        description="Yes votes as a percentage of votes cast"
    )
    voters: list[SingleChoiceVoter] = Field(default_factory=list)


class RankedChoiceResult(BaseModel):
    """Borda count outcome for one proposal within its category."""

    proposal_id: str
    title: str
    total_points: int = Field(ge=0)
    first_choice_votes: int = Field(ge=0)
    second_choice_votes: int = Field(ge=0)
    third_choice_votes: int = Field(ge=0)
    total_votes: int = Field(ge=0)
    average_rank: float = Field(
        ...,
        ge=0.0,
        description="Mean rank received (lower is better, 0 with no votes)"
    )
    ranking: int = Field(ge=1, description="Dense position, ties broken")
    voters: list[RankedVoter] = Field(default_factory=list)


class ApprovalResult(BaseModel):
    """Approval count outcome for one proposal within its category."""

    proposal_id: str
    title: str
    approval_count: int = Field(ge=0)
    total_voters: int = Field(ge=0, description="Eligible trip members")
    approval_percentage: float = Field(ge=0.0)
    ranking: int = Field(ge=1, description="Competition rank, ties shared")
    voters: list[ApprovalVoter] = Field(default_factory=list)


TallyResult = Union[SingleChoiceResult, RankedChoiceResult, ApprovalResult]


class FormattedResult(BaseModel):
    """Display-ready summary of one tally result."""

    winner: bool
    summary: str
    details: str


class TallyReport(BaseModel):
    """Results for a proposal, as returned to the request layer."""

    proposal_id: str
    title: str
    voting_method: VotingMethod
    status: ProposalStatus
    voting_deadline: Optional[datetime] = None
    results: list[TallyResult] = Field(default_factory=list)
    total_members: int = Field(ge=0)
    voting_closed: bool
