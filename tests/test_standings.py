"""
Tests for result deltas, score entry and group standings.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from conftest import make_teams
from tournament.errors import InvalidMatchState, InvalidScore, MatchNotReady, UnresolvedKnockoutTie
from tournament.models import Match, MatchSide, Team, GROUP, SEMI, COMPLETED, LIVE, CANCELLED
from tournament.standings import (
    apply_result, revert_result, start_match, cancel_match, decide_winner, result_delta,
    rank_teams, compute_group_standings, recalculate_aggregates, HOME, AWAY,
)


def group_match(home, away, group_id='group-a'):
    return Match(home=MatchSide.for_team(home.id), away=MatchSide.for_team(away.id),
                 round=GROUP, group_id=group_id)


def knockout_match(home, away, name='SF1'):
    return Match(home=MatchSide.for_team(home.id), away=MatchSide.for_team(away.id), round=SEMI, name=name)


def assert_consistent(team):
    assert team.points == 3 * team.won + team.drawn
    assert team.played == team.won + team.drawn + team.lost


class TestResultDelta:
    def test_win(self):
        assert result_delta(3, 1) == {
            'played': 1, 'won': 1, 'drawn': 0, 'lost': 0,
            'goals_for': 3, 'goals_against': 1, 'points': 3,
        }

    def test_draw(self):
        delta = result_delta(2, 2)
        assert delta['drawn'] == 1
        assert delta['points'] == 1

    def test_loss(self):
        delta = result_delta(0, 4)
        assert delta['lost'] == 1
        assert delta['points'] == 0


class TestApplyResult:
    """Tests for apply_result and its reversible deltas."""

    def test_finalize_applies_to_both(self):
        home, away = make_teams(2)
        match = group_match(home, away)
        apply_result(match, home, away, 2, 1)

        assert match.status == COMPLETED
        assert (home.played, home.won, home.points, home.goals_for, home.goals_against) == (1, 1, 3, 2, 1)
        assert (away.played, away.lost, away.points, away.goals_for, away.goals_against) == (1, 1, 0, 1, 2)
        assert_consistent(home)
        assert_consistent(away)

    def test_live_update_leaves_aggregates(self):
        home, away = make_teams(2)
        match = group_match(home, away)
        apply_result(match, home, away, 1, 0, finalize=False)

        assert match.status == LIVE
        assert (match.home_score, match.away_score) == (1, 0)
        assert home.played == 0
        assert away.played == 0

    def test_reopening_restores_aggregates(self):
        """Finalize, then re-enter as live: both records return to their starting values."""
        home, away = make_teams(2)
        home.played, home.won, home.points, home.goals_for = 1, 1, 3, 2
        before = (home.aggregates(), away.aggregates())

        match = group_match(home, away)
        apply_result(match, home, away, 3, 3)
        apply_result(match, home, away, 3, 3, finalize=False)

        assert (home.aggregates(), away.aggregates()) == before
        assert match.status == LIVE

    def test_refinalizing_same_score_is_noop(self):
        home, away = make_teams(2)
        match = group_match(home, away)
        apply_result(match, home, away, 2, 0)
        once = (home.aggregates(), away.aggregates())
        apply_result(match, home, away, 2, 0)
        assert (home.aggregates(), away.aggregates()) == once

    def test_correction_replaces_old_result(self):
        """A corrected final score swaps the winner without double counting."""
        home, away = make_teams(2)
        match = group_match(home, away)
        apply_result(match, home, away, 2, 0)
        apply_result(match, home, away, 0, 1)

        assert (home.played, home.won, home.lost, home.points) == (1, 0, 1, 0)
        assert (away.played, away.won, away.lost, away.points) == (1, 1, 0, 3)
        assert (home.goals_for, home.goals_against) == (0, 1)

    def test_negative_score_rejected(self):
        home, away = make_teams(2)
        match = group_match(home, away)
        with pytest.raises(InvalidScore):
            apply_result(match, home, away, -1, 0)
        assert match.status == 'scheduled'
        assert home.played == 0

    def test_non_integer_score_rejected(self):
        home, away = make_teams(2)
        match = group_match(home, away)
        with pytest.raises(InvalidScore):
            apply_result(match, home, away, True, 0)
        with pytest.raises(InvalidScore):
            apply_result(match, home, away, "2", 0)

    def test_placeholder_side_not_ready(self):
        home, away = make_teams(2)
        match = Match(home=MatchSide.for_team(home.id), away=MatchSide.placeholder("Winner QF2"), round=SEMI)
        with pytest.raises(MatchNotReady):
            apply_result(match, home, away, 1, 0)

    def test_wrong_teams_rejected(self):
        home, away, other = make_teams(3)
        match = group_match(home, away)
        with pytest.raises(InvalidMatchState):
            apply_result(match, home, other, 1, 0)

    def test_team_cannot_play_itself(self):
        team, = make_teams(1)
        match = group_match(team, team)
        with pytest.raises(InvalidMatchState):
            apply_result(match, team, team, 2, 1)
        assert team.played == 0
        assert match.status == 'scheduled'

    def test_cancelled_match_rejected(self):
        home, away = make_teams(2)
        match = group_match(home, away)
        cancel_match(match)
        with pytest.raises(InvalidMatchState):
            apply_result(match, home, away, 1, 0)


class TestKnockoutTies:
    """Tests for level knockout results."""

    def test_level_without_penalties_rejected(self):
        home, away = make_teams(2)
        match = knockout_match(home, away)
        with pytest.raises(UnresolvedKnockoutTie):
            apply_result(match, home, away, 1, 1)
        assert match.status == 'scheduled'
        assert home.played == 0

    def test_level_penalties_rejected(self):
        home, away = make_teams(2)
        match = knockout_match(home, away)
        with pytest.raises(UnresolvedKnockoutTie):
            apply_result(match, home, away, 1, 1, penalties=(4, 4))

    def test_penalties_decide_winner(self):
        home, away = make_teams(2)
        match = knockout_match(home, away)
        apply_result(match, home, away, 1, 1, penalties=(3, 5))

        assert match.status == COMPLETED
        assert (match.home_penalties, match.away_penalties) == (3, 5)
        assert decide_winner(match) == AWAY
        # the shootout does not change the recorded draw
        assert home.drawn == 1 and away.drawn == 1

    def test_penalties_only_for_level_knockout(self):
        home, away = make_teams(2)
        with pytest.raises(InvalidScore):
            apply_result(knockout_match(home, away), home, away, 2, 1, penalties=(4, 3))
        with pytest.raises(InvalidScore):
            apply_result(group_match(home, away), home, away, 1, 1, penalties=(4, 3))

    def test_live_level_knockout_allowed(self):
        home, away = make_teams(2)
        match = knockout_match(home, away)
        apply_result(match, home, away, 0, 0, finalize=False)
        assert match.status == LIVE

    def test_decide_winner(self):
        home, away = make_teams(2)
        match = knockout_match(home, away)
        assert decide_winner(match) is None
        match.home_score, match.away_score = 2, 0
        assert decide_winner(match) == HOME


class TestMatchLifecycle:
    """Tests for start, revert and cancel."""

    def test_start_match(self):
        home, away = make_teams(2)
        match = start_match(group_match(home, away))
        assert match.status == LIVE
        assert (match.home_score, match.away_score) == (0, 0)

    def test_start_requires_scheduled(self):
        home, away = make_teams(2)
        match = start_match(group_match(home, away))
        with pytest.raises(InvalidMatchState):
            start_match(match)

    def test_start_requires_teams(self):
        match = Match(home=MatchSide.placeholder("Group A 1st"), away=MatchSide.placeholder("Group B 2nd"),
                      round=SEMI)
        with pytest.raises(MatchNotReady):
            start_match(match)

    def test_start_rejects_same_team(self):
        team, = make_teams(1)
        with pytest.raises(InvalidMatchState):
            start_match(knockout_match(team, team))

    def test_revert_result(self):
        home, away = make_teams(2)
        match = group_match(home, away)
        apply_result(match, home, away, 4, 2)
        assert revert_result(match, home, away) is True
        assert home.aggregates() == Team("X", "X").aggregates()
        assert match.status == LIVE
        assert revert_result(match, home, away) is False

    def test_cancel_completed_withdraws_result(self):
        home, away = make_teams(2)
        match = group_match(home, away)
        apply_result(match, home, away, 1, 0)
        cancel_match(match, home, away)

        assert match.status == CANCELLED
        assert match.home_score is None and match.away_score is None
        assert home.points == 0 and home.played == 0
        assert away.played == 0


class TestRanking:
    """Tests for standings order."""

    def test_points_dominate(self):
        """7 points ranks above 4 points even with identical goal columns."""
        first = Team("Alpha", "ALP", id="alp", played=3, won=2, drawn=1, lost=0,
                     goals_for=7, goals_against=3, points=7)
        second = Team("Beta", "BET", id="bet", played=3, won=1, drawn=1, lost=1,
                      goals_for=7, goals_against=3, points=4)
        assert first.goal_difference == second.goal_difference == 4
        assert rank_teams([second, first]) == [first, second]

    def test_goal_difference_then_goals_for(self):
        a = Team("A", "A", points=4, goals_for=3, goals_against=3)
        b = Team("B", "B", points=4, goals_for=5, goals_against=2)
        c = Team("C", "C", points=4, goals_for=6, goals_against=3)
        assert [t.name for t in rank_teams([a, b, c])] == ["C", "B", "A"]

    def test_remaining_ties_deterministic(self):
        a = Team("Zeta", "Z", id="z")
        b = Team("Eta", "E", id="e")
        assert [t.name for t in rank_teams([a, b])] == ["Eta", "Zeta"]
        assert [t.name for t in rank_teams([b, a])] == ["Eta", "Zeta"]


class TestGroupStandings:
    """Tests for standings computed from matches."""

    def test_compute_from_completed_matches(self, two_groups):
        groups, teams = two_groups
        by_id = {team.id: team for team in teams}
        arg, bra, cro, den = teams[:4]
        matches = [group_match(arg, bra), group_match(cro, den), group_match(arg, cro), group_match(bra, den)]
        apply_result(matches[0], arg, bra, 2, 0)
        apply_result(matches[1], cro, den, 1, 1)
        apply_result(matches[2], arg, cro, 0, 1)
        apply_result(matches[3], bra, den, 3, 0, finalize=False)

        table = compute_group_standings(groups[0], by_id, matches)
        assert [t.id for t in table] == ['cro', 'arg', 'den', 'bra']
        assert table[0].points == 4
        assert table[2].points == 1
        assert table[3].played == 1

    def test_ignores_other_groups_and_knockouts(self, two_groups):
        groups, teams = two_groups
        by_id = {team.id: team for team in teams}
        arg, bra = teams[:2]
        eng, fra = teams[4:6]
        knockout = knockout_match(arg, bra)
        other_group = group_match(eng, fra, group_id='group-b')
        apply_result(knockout, arg, bra, 5, 0)
        apply_result(other_group, eng, fra, 1, 0)

        table = compute_group_standings(groups[0], by_id, [knockout, other_group])
        assert all(t.played == 0 for t in table)

    def test_stored_teams_untouched(self, two_groups):
        groups, teams = two_groups
        by_id = {team.id: team for team in teams}
        arg, bra = teams[:2]
        match = group_match(arg, bra)
        match.home_score, match.away_score, match.status = 1, 0, COMPLETED

        table = compute_group_standings(groups[0], by_id, [match])
        assert table[0].id == 'arg' and table[0].points == 3
        assert arg.points == 0

    def test_recalculate_aggregates(self):
        home, away, third = make_teams(3)
        first = group_match(home, away)
        second = group_match(home, third)
        apply_result(first, home, away, 2, 2)
        apply_result(second, home, third, 1, 0)
        home.points = 99

        changed = recalculate_aggregates([home, away, third], [first, second])
        assert changed == [home]
        assert home.points == 4
        assert home.played == 2
        assert_consistent(home)
