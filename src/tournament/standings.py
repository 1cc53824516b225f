"""
Team aggregates and group standings.

Every change to a team's aggregate record goes through ``apply_result`` /
``revert_result``, which apply a single result delta forwards or backwards.
Re-entering a score for a completed match first reverses the old result,
so corrections (and re-finalizing an unchanged score) never double count.

Ranking: points, then goal difference, then goals for (all descending),
then team name and id so remaining ties are ordered deterministically.
"""
import logging
from typing import Dict, List, Optional, Tuple

from .errors import InvalidMatchState, InvalidScore, MatchNotReady, UnresolvedKnockoutTie
from .models import Group, Match, Team, COMPLETED, LIVE, SCHEDULED, CANCELLED, GROUP

logger = logging.getLogger(__name__)

POINTS_FOR_WIN = 3
POINTS_FOR_DRAW = 1

HOME = 'home'
AWAY = 'away'


def result_delta(goals_for: int, goals_against: int) -> Dict[str, int]:
    """The change one result makes to a team's record, seen from that team."""
    won = 1 if goals_for > goals_against else 0
    lost = 1 if goals_for < goals_against else 0
    drawn = 1 if goals_for == goals_against else 0
    return {
        'played': 1,
        'won': won,
        'drawn': drawn,
        'lost': lost,
        'goals_for': goals_for,
        'goals_against': goals_against,
        'points': won * POINTS_FOR_WIN + drawn * POINTS_FOR_DRAW,
    }


def _apply_delta(team, goals_for, goals_against, sign):
    for field, value in result_delta(goals_for, goals_against).items():
        setattr(team, field, getattr(team, field) + sign * value)


def _apply_match(home_team, away_team, home_score, away_score, sign):
    _apply_delta(home_team, home_score, away_score, sign)
    _apply_delta(away_team, away_score, home_score, sign)


def _validate_score(value, field):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidScore(f"{field} must be a whole number, got {value!r}")
    if value < 0:
        raise InvalidScore(f"{field} must not be negative, got {value}")
    return value


def _check_sides(match, home_team, away_team):
    if not match.home_team_id or not match.away_team_id:
        raise MatchNotReady(f"Both sides of match {match.name or match.id} must be teams before scores are entered")
    if match.home_team_id == match.away_team_id:
        raise InvalidMatchState(f"Team {match.home_team_id} cannot play itself in match {match.name or match.id}")
    if home_team is None or away_team is None:
        raise MatchNotReady(f"Teams for match {match.name or match.id} are missing")
    if (home_team.id, away_team.id) != (match.home_team_id, match.away_team_id):
        raise InvalidMatchState(f"Teams {home_team.name} and {away_team.name} do not play match {match.id}")


def _has_recorded_result(match):
    return match.status == COMPLETED and match.home_score is not None and match.away_score is not None


def decide_winner(match: Match) -> Optional[str]:
    """HOME, AWAY or None (level, with no decisive penalty score)."""
    if match.home_score is None or match.away_score is None:
        return None
    if match.home_score > match.away_score:
        return HOME
    if match.away_score > match.home_score:
        return AWAY
    if match.home_penalties is not None and match.away_penalties is not None:
        if match.home_penalties > match.away_penalties:
            return HOME
        if match.away_penalties > match.home_penalties:
            return AWAY
    return None


def apply_result(match: Match, home_team: Team, away_team: Team, home_score: int, away_score: int,
                 finalize: bool = True, penalties: Optional[Tuple[int, int]] = None) -> Match:
    """
    Record a score on ``match`` and keep both teams' aggregates in step.

    A previously completed result is reversed first. With ``finalize`` the new
    score is applied and the match becomes completed; without it the score is
    stored as live and aggregates are left alone.
    """
    _check_sides(match, home_team, away_team)
    if match.status == CANCELLED:
        raise InvalidMatchState(f"Match {match.name or match.id} is cancelled")
    home_score = _validate_score(home_score, 'home score')
    away_score = _validate_score(away_score, 'away score')
    if penalties is not None:
        if not (finalize and match.is_knockout and home_score == away_score):
            raise InvalidScore("Penalties only apply when finalizing a level knockout match")
        penalties = (_validate_score(penalties[0], 'home penalties'),
                     _validate_score(penalties[1], 'away penalties'))
    if finalize and match.is_knockout and home_score == away_score:
        if penalties is None or penalties[0] == penalties[1]:
            raise UnresolvedKnockoutTie(match)

    if _has_recorded_result(match):
        _apply_match(home_team, away_team, match.home_score, match.away_score, -1)

    match.home_score = home_score
    match.away_score = away_score
    match.home_penalties, match.away_penalties = penalties if penalties else (None, None)
    if finalize:
        _apply_match(home_team, away_team, home_score, away_score, 1)
        match.status = COMPLETED
    else:
        match.status = LIVE
    logger.debug('Match %s: %s %d-%d %s (%s)', match.id, home_team.name, home_score,
                 away_score, away_team.name, match.status)
    return match


def revert_result(match: Match, home_team: Team, away_team: Team) -> bool:
    """Reverse a completed result's effect on both aggregates. Returns whether anything changed."""
    if not _has_recorded_result(match):
        return False
    _check_sides(match, home_team, away_team)
    _apply_match(home_team, away_team, match.home_score, match.away_score, -1)
    match.status = LIVE
    return True


def start_match(match: Match) -> Match:
    """scheduled -> live at 0-0."""
    if match.status != SCHEDULED:
        raise InvalidMatchState(f"Only scheduled matches can start; match {match.name or match.id} is {match.status}")
    if not match.home_team_id or not match.away_team_id:
        raise MatchNotReady(f"Both sides of match {match.name or match.id} must be teams before it starts")
    if match.home_team_id == match.away_team_id:
        raise InvalidMatchState(f"Team {match.home_team_id} cannot play itself in match {match.name or match.id}")
    match.home_score = 0
    match.away_score = 0
    match.status = LIVE
    return match


def cancel_match(match: Match, home_team: Optional[Team] = None, away_team: Optional[Team] = None) -> Match:
    """Cancel a match, withdrawing its result from the aggregates if it was completed."""
    if _has_recorded_result(match):
        revert_result(match, home_team, away_team)
    match.status = CANCELLED
    match.home_score = None
    match.away_score = None
    match.home_penalties = None
    match.away_penalties = None
    return match


def rank_key(team: Team):
    return (-team.points, -team.goal_difference, -team.goals_for, team.name, team.id)


def rank_teams(teams: List[Team]) -> List[Team]:
    return sorted(teams, key=rank_key)


def compute_group_standings(group: Group, teams_by_id: Dict[str, Team], matches: List[Match]) -> List[Team]:
    """
    Rank a group from its completed group-round matches.

    Returns fresh ``Team`` records (the stored teams are not touched); matches
    involving teams outside the group are ignored.
    """
    records = {}
    for team_id in group.team_ids:
        team = teams_by_id.get(team_id)
        if team is None:
            logger.warning('%s refers to unknown team %s', group.name, team_id)
            continue
        records[team_id] = Team(name=team.name, short_code=team.short_code, id=team.id,
                                logo_url=team.logo_url, group_id=team.group_id)

    for match in matches:
        if match.round != GROUP or match.group_id != group.id or not _has_recorded_result(match):
            continue
        home = records.get(match.home_team_id)
        away = records.get(match.away_team_id)
        if home is None or away is None:
            continue
        _apply_match(home, away, match.home_score, match.away_score, 1)

    return rank_teams(list(records.values()))


def group_tables(groups: List[Group], teams_by_id: Dict[str, Team], matches: List[Match]) -> Dict[str, List[Team]]:
    """``{group name: ranked records}`` for every group."""
    return {group.name: compute_group_standings(group, teams_by_id, matches) for group in groups}


def recalculate_aggregates(teams: List[Team], matches: List[Match]) -> List[Team]:
    """
    Rebuild every team's stored aggregate from completed matches.

    Returns the teams whose record changed.
    """
    before = {team.id: team.aggregates() for team in teams}
    teams_by_id = {team.id: team for team in teams}
    for team in teams:
        team.reset_aggregates()
    for match in matches:
        if not _has_recorded_result(match):
            continue
        home = teams_by_id.get(match.home_team_id)
        away = teams_by_id.get(match.away_team_id)
        if home is None or away is None:
            logger.warning('Skipping match %s: a side is not a known team', match.id)
            continue
        _apply_match(home, away, match.home_score, match.away_score, 1)
    changed = [team for team in teams if team.aggregates() != before[team.id]]
    if changed:
        logger.info('Recalculated aggregates changed %d teams', len(changed))
    return changed
