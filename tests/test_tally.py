"""
Tests for the vote tally engine.
"""

import pytest

from tripsync.models.voting import (
    ApprovalResult,
    Proposal,
    RankedChoiceResult,
    SingleChoiceResult,
    Vote,
    VotingMethod,
)
from tripsync.voting import (
    InvalidVotingTypeError,
    find_tied_winners,
    format_result,
    participation_rate,
    tally_approval,
    tally_borda_count,
    tally_for_proposal,
    tally_single_choice,
)


def _proposal(pid, method=VotingMethod.SINGLE, votes=()):
    return Proposal(
        id=pid,
        trip_id="trip-1",
        title=f"Proposal {pid}",
        voting_method=method,
        votes=list(votes),
    )


def _ranked(pid, *ranks):
    return _proposal(
        pid,
        VotingMethod.RANKED,
        [Vote(proposal_id=pid, voter_id=f"{pid}-v{i}", rank=r) for i, r in enumerate(ranks)],
    )


def _approved(pid, count, rejections=0):
    votes = [Vote(proposal_id=pid, voter_id=f"v{i}", vote_value=1) for i in range(count)]
    votes += [
        Vote(proposal_id=pid, voter_id=f"n{i}", vote_value=0) for i in range(rejections)
    ]
    return _proposal(pid, VotingMethod.APPROVAL, votes)


class TestSingleChoice:
    """Tests for yes/no tallies."""

    def test_counts_and_percentage(self):
        proposal = _proposal("p1", votes=[
            Vote(proposal_id="p1", voter_id="a", voter_name="Alice", vote_value=1),
            Vote(proposal_id="p1", voter_id="b", vote_value=1),
            Vote(proposal_id="p1", voter_id="c", vote_value=1),
            Vote(proposal_id="p1", voter_id="d", vote_value=0),
        ])

        result = tally_single_choice(proposal)

        assert result.yes_votes == 3
        assert result.no_votes == 1
        assert result.total_votes == 4
        assert result.percentage == 75.0
        assert [(v.voter_name, v.vote) for v in result.voters] == [
            ("Alice", "yes"), ("Unknown", "yes"), ("Unknown", "yes"), ("Unknown", "no"),
        ]

    def test_no_votes(self):
        result = tally_single_choice(_proposal("p1"))
        assert result.total_votes == 0
        assert result.percentage == 0.0


class TestBordaCount:
    """Tests for ranked-choice tallies."""

    def test_points_per_rank(self):
        results = tally_borda_count([_ranked("p1", 1, 2, 3, 1)])
        result = results[0]

        assert result.total_points == 3 + 2 + 1 + 3
        assert result.first_choice_votes == 2
        assert result.second_choice_votes == 1
        assert result.third_choice_votes == 1
        assert result.average_rank == pytest.approx(1.75)
        assert sorted(v.points for v in result.voters) == [1, 2, 3, 3]

    def test_equal_points_broken_by_average_rank(self):
        """Same points, lower average rank wins; ranks stay distinct."""
        results = tally_borda_count([
            _ranked("p", 2, 2, 3),   # 5 points, average 2.33
            _ranked("q", 1, 2),      # 5 points, average 1.5
        ])

        assert [r.proposal_id for r in results] == ["q", "p"]
        assert [r.ranking for r in results] == [1, 2]
        assert results[0].total_points == results[1].total_points == 5

    def test_full_tie_keeps_input_order(self):
        """7 points and average 1.67 on both sides: input order decides."""
        x = _ranked("x", 1, 1, 3)
        y = _ranked("y", 1, 2, 2)

        forward = tally_borda_count([x, y])
        backward = tally_borda_count([y, x])

        assert [r.total_points for r in forward] == [7, 7]
        assert forward[0].average_rank == forward[1].average_rank
        assert [(r.proposal_id, r.ranking) for r in forward] == [("x", 1), ("y", 2)]
        assert [(r.proposal_id, r.ranking) for r in backward] == [("y", 1), ("x", 2)]

    def test_unvoted_proposal_ranks_last(self):
        results = tally_borda_count([_ranked("empty"), _ranked("p1", 3)])

        assert [r.proposal_id for r in results] == ["p1", "empty"]
        assert results[1].total_votes == 0
        assert results[1].average_rank == 0.0
        assert results[1].ranking == 2


class TestApproval:
    """Tests for approval tallies."""

    def test_competition_ranking_with_gaps(self):
        """Counts [5, 5, 3, 1] rank [1, 1, 3, 4]."""
        proposals = [
            _approved("c", 3),
            _approved("a", 5),
            _approved("d", 1),
            _approved("b", 5),
        ]

        results = tally_approval(proposals, total_members=6)

        assert [r.proposal_id for r in results] == ["a", "b", "c", "d"]
        assert [r.approval_count for r in results] == [5, 5, 3, 1]
        assert [r.ranking for r in results] == [1, 1, 3, 4]

    def test_percentage_over_eligible_members(self):
        results = tally_approval([_approved("a", 2, rejections=3)], total_members=8)

        assert results[0].approval_count == 2
        assert results[0].total_voters == 8
        assert results[0].approval_percentage == 25.0
        assert len(results[0].voters) == 2

    def test_no_members(self):
        results = tally_approval([_approved("a", 0)], total_members=0)
        assert results[0].approval_percentage == 0.0
        assert results[0].ranking == 1


class TestTallyForProposal:
    """Tests for picking one proposal's result out of its category."""

    def test_single(self):
        proposal = _proposal("p1", votes=[Vote(proposal_id="p1", voter_id="a", vote_value=1)])
        result = tally_for_proposal(proposal, "single_choice")
        assert isinstance(result, SingleChoiceResult)
        assert result.yes_votes == 1

    def test_ranked_within_category(self):
        x = _ranked("x", 3)
        y = _ranked("y", 1)

        result = tally_for_proposal(x, "ranked_choice", category_proposals=[x, y])

        assert isinstance(result, RankedChoiceResult)
        assert result.ranking == 2

    def test_approval_adds_missing_proposal(self):
        a = _approved("a", 1)
        b = _approved("b", 4)

        result = tally_for_proposal(a, "approval_voting", category_proposals=[b], total_members=4)

        assert isinstance(result, ApprovalResult)
        assert result.ranking == 2
        assert result.approval_percentage == 25.0

    def test_unknown_method(self):
        with pytest.raises(InvalidVotingTypeError, match="Invalid voting type: plurality"):
            tally_for_proposal(_proposal("p1"), "plurality")


class TestResultHelpers:
    """Tests for participation, tied winners and formatting."""

    def test_participation_rate(self):
        assert participation_rate(3, 4) == 75.0
        assert participation_rate(1, 0) == 0.0

    def test_find_tied_winners(self):
        results = tally_approval(
            [_approved("a", 5), _approved("b", 5), _approved("c", 3)],
            total_members=6,
        )
        assert find_tied_winners(results) == ["a", "b"]
        assert find_tied_winners([]) == []

    def test_format_single_choice(self):
        proposal = _proposal("p1", votes=[
            Vote(proposal_id="p1", voter_id="a", vote_value=1),
            Vote(proposal_id="p1", voter_id="b", vote_value=1),
            Vote(proposal_id="p1", voter_id="c", vote_value=1),
            Vote(proposal_id="p1", voter_id="d", vote_value=0),
        ])
        formatted = format_result(tally_single_choice(proposal))

        assert formatted.winner is True
        assert formatted.summary == "3 Yes, 1 No (75.0%)"
        assert formatted.details == "4 total votes"

    def test_format_single_choice_half_is_not_a_win(self):
        proposal = _proposal("p1", votes=[
            Vote(proposal_id="p1", voter_id="a", vote_value=1),
            Vote(proposal_id="p1", voter_id="b", vote_value=0),
        ])
        assert format_result(tally_single_choice(proposal)).winner is False

    def test_format_ranked(self):
        result = tally_borda_count([_ranked("x", 1, 1, 3)])[0]
        formatted = format_result(result)

        assert formatted.winner is True
        assert formatted.summary == "7 points (#1)"
        assert formatted.details == "1st: 2, 2nd: 0, 3rd: 1"

    def test_format_approval(self):
        result = tally_approval([_approved("a", 5)], total_members=6)[0]
        formatted = format_result(result)

        assert formatted.winner is True
        assert formatted.summary == "5 approvals (83.3%)"
        assert formatted.details == "Ranked #1"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
