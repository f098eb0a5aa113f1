"""
Vote Tally Engine

Three pure reducers, one per voting method. None of them keeps state or
can fail on well-formed input; the voting gate runs before, never here.

SINGLE-CHOICE:
Yes/no counts for one proposal. Percentage = yes / (yes + no).

RANKED-CHOICE (Borda count):
1st choice = 3 points, 2nd = 2, 3rd = 1, summed per proposal. Sorted by
points descending, then average rank ascending. Rankings are dense and
distinct: 1, 2, 3, ... Proposals equal on both keys keep input order.

APPROVAL:
Approval count per proposal. Percentage is over ELIGIBLE voters (trip
members), not votes cast. Equal counts share a competition rank and the
next count skips ahead: counts [5, 5, 3, 1] rank [1, 1, 3, 4].

DESIGN DECISION: Borda and approval rank ties differently on purpose.
Do not unify them.
"""

from typing import Optional, Sequence, Union

from tripsync.models.voting import (
    RANK_POINTS,
    ApprovalResult,
    ApprovalVoter,
    FormattedResult,
    Proposal,
    RankedChoiceResult,
    RankedVoter,
    SingleChoiceResult,
    SingleChoiceVoter,
    TallyResult,
    VotingMethod,
)
from tripsync.voting.ballots import parse_voting_method

UNKNOWN_VOTER = "Unknown"


def tally_single_choice(proposal: Proposal) -> SingleChoiceResult:
    """Calculate yes/no results for one proposal."""
    yes_votes = [v for v in proposal.votes if v.vote_value == 1]
    no_votes = [v for v in proposal.votes if v.vote_value == 0]

    yes_count = len(yes_votes)
    no_count = len(no_votes)
    total_votes = yes_count + no_count
    percentage = (yes_count / total_votes) * 100 if total_votes > 0 else 0.0

    voters = [
        SingleChoiceVoter(
            voter_id=v.voter_id,
            voter_name=v.voter_name or UNKNOWN_VOTER,
            vote="yes",
        )
        for v in yes_votes
    ] + [
        SingleChoiceVoter(
            voter_id=v.voter_id,
            voter_name=v.voter_name or UNKNOWN_VOTER,
            vote="no",
        )
        for v in no_votes
    ]

    return SingleChoiceResult(
        proposal_id=proposal.id,
        title=proposal.title,
        yes_votes=yes_count,
        no_votes=no_count,
        total_votes=total_votes,
        percentage=percentage,
        voters=voters,
    )


def tally_borda_count(proposals: Sequence[Proposal]) -> list[RankedChoiceResult]:
    """Rank a category's proposals by Borda count."""
    scored = []
    for proposal in proposals:
        ranked = [v for v in proposal.votes if v.rank in RANK_POINTS]
        total_votes = len(ranked)
        scored.append({
            "proposal_id": proposal.id,
            "title": proposal.title,
            "total_points": sum(RANK_POINTS[v.rank] for v in ranked),
            "first_choice_votes": sum(1 for v in ranked if v.rank == 1),
            "second_choice_votes": sum(1 for v in ranked if v.rank == 2),
            "third_choice_votes": sum(1 for v in ranked if v.rank == 3),
            "total_votes": total_votes,
            "average_rank": (
                sum(v.rank for v in ranked) / total_votes if total_votes > 0 else 0.0
            ),
            "voters": [
                RankedVoter(
                    voter_id=v.voter_id,
                    voter_name=v.voter_name or UNKNOWN_VOTER,
                    rank=v.rank,
                    points=RANK_POINTS[v.rank],
                )
                for v in ranked
            ],
        })

    # Points descending, then lower average rank wins
    scored.sort(key=lambda s: (-s["total_points"], s["average_rank"]))

    return [
        RankedChoiceResult(ranking=position, **entry)
        for position, entry in enumerate(scored, start=1)
    ]


def tally_approval(
    proposals: Sequence[Proposal],
    total_members: int,
) -> list[ApprovalResult]:
    """Rank a category's proposals by approval count."""
    counted = []
    for proposal in proposals:
        approvals = [v for v in proposal.votes if v.vote_value == 1]
        counted.append((proposal, approvals))

    counted.sort(key=lambda entry: len(entry[1]), reverse=True)

    results = []
    ranking = 0
    previous_count = None
    for position, (proposal, approvals) in enumerate(counted, start=1):
        approval_count = len(approvals)
        if approval_count != previous_count:
            ranking = position
            previous_count = approval_count

        results.append(ApprovalResult(
            proposal_id=proposal.id,
            title=proposal.title,
            approval_count=approval_count,
            total_voters=total_members,
            approval_percentage=(
                (approval_count / total_members) * 100 if total_members > 0 else 0.0
            ),
            ranking=ranking,
            voters=[
                ApprovalVoter(
                    voter_id=v.voter_id,
                    voter_name=v.voter_name or UNKNOWN_VOTER,
                )
                for v in approvals
            ],
        ))

    return results


def tally_for_proposal(
    proposal: Proposal,
    voting_method: Union[VotingMethod, str],
    category_proposals: Optional[Sequence[Proposal]] = None,
    total_members: int = 0,
) -> TallyResult:
    """
    Get one proposal's result under the given voting method.

    Ranked and approval results are computed across `category_proposals`
    (defaulting to just this proposal), then this proposal's entry is
    picked out.

    Raises:
        InvalidVotingTypeError: unknown voting method
    """
    method = parse_voting_method(voting_method)
    batch = list(category_proposals) if category_proposals else [proposal]
    if all(p.id != proposal.id for p in batch):
        batch.append(proposal)

    if method is VotingMethod.SINGLE:
        return tally_single_choice(proposal)
    elif method is VotingMethod.RANKED:
        results = tally_borda_count(batch)
    else:
        results = tally_approval(batch, total_members)

    return next(r for r in results if r.proposal_id == proposal.id)


def participation_rate(total_votes: int, total_members: int) -> float:
    """Votes cast as a percentage of trip members."""
    if total_members == 0:
        return 0.0
    return (total_votes / total_members) * 100


def _result_score(result: TallyResult) -> int:
    if isinstance(result, RankedChoiceResult):
        return result.total_points
    if isinstance(result, ApprovalResult):
        return result.approval_count
    return result.yes_votes


def find_tied_winners(results: Sequence[TallyResult]) -> list[str]:
    """
    Ids of the proposals tied for first place.

    Expects results already ordered best-first, as the tally functions return them.
    """
    if not results:
        return []

    top_score = _result_score(results[0])
    return [r.proposal_id for r in results if _result_score(r) == top_score]


def format_result(result: TallyResult) -> FormattedResult:
    """Summarize a tally result for display."""
    if isinstance(result, SingleChoiceResult):
        return FormattedResult(
            winner=result.percentage > 50,
            summary=(
                f"{result.yes_votes} Yes, {result.no_votes} No "
                f"({result.percentage:.1f}%)"
            ),
            details=f"{result.total_votes} total votes",
        )

    if isinstance(result, RankedChoiceResult):
        return FormattedResult(
            winner=result.ranking == 1,
            summary=f"{result.total_points} points (#{result.ranking})",
            details=(
                f"1st: {result.first_choice_votes}, "
                f"2nd: {result.second_choice_votes}, "
                f"3rd: {result.third_choice_votes}"
            ),
        )

    return FormattedResult(
        winner=result.ranking == 1,
        summary=(
            f"{result.approval_count} approvals "
            f"({result.approval_percentage:.1f}%)"
        ),
        details=f"Ranked #{result.ranking}",
    )
