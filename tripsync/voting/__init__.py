"""Proposal voting package: ballots and tallies."""

from tripsync.voting.ballots import (
    InvalidBallotError,
    InvalidVotingTypeError,
    VotingClosedError,
    VotingError,
    build_choice_vote,
    ensure_voting_open,
    get_user_ranked_votes,
    get_user_vote,
    has_user_voted,
    is_proposal_closed,
    is_voting_closed,
    parse_voting_method,
    replace_ranked_ballot,
    replace_vote,
)
from tripsync.voting.tally import (
    find_tied_winners,
    format_result,
    participation_rate,
    tally_approval,
    tally_borda_count,
    tally_for_proposal,
    tally_single_choice,
)

__all__ = [
    # Exceptions
    "InvalidBallotError",
    "InvalidVotingTypeError",
    "VotingClosedError",
    "VotingError",
    # Ballots
    "build_choice_vote",
    "ensure_voting_open",
    "get_user_ranked_votes",
    "get_user_vote",
    "has_user_voted",
    "is_proposal_closed",
    "is_voting_closed",
    "parse_voting_method",
    "replace_ranked_ballot",
    "replace_vote",
    # Tallies
    "find_tied_winners",
    "format_result",
    "participation_rate",
    "tally_approval",
    "tally_borda_count",
    "tally_for_proposal",
    "tally_single_choice",
]
