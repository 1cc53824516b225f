"""
Knockout placeholder resolution.

Knockout sides may carry a label instead of (or as well as) a team:
"Group A 1st" (a group finishing position), "Winner QF1" / "Loser SF1"
(the outcome of a named knockout match). Labels are parsed once into a
closed set of variants and then evaluated against the current group
standings and completed knockout results.
"""
import re
import logging
from typing import Dict, List, NamedTuple, Optional, Tuple, Union

from .models import Group, Match, Team, COMPLETED, GROUP
from .standings import compute_group_standings, decide_winner, HOME, AWAY

logger = logging.getLogger(__name__)

POSITION_SUFFIXES = ['1st', '2nd', '3rd', '4th']

GROUP_POSITION_PATTERN = re.compile(r'^(Group \S+) (1st|2nd|3rd|4th)$')
WINNER_PATTERN = re.compile(r'^Winner (.+)$')
LOSER_PATTERN = re.compile(r'^Loser (.+)$')


class GroupPosition(NamedTuple):
    group_name: str
    rank: int


class MatchWinner(NamedTuple):
    slot_name: str


class MatchLoser(NamedTuple):
    slot_name: str


class Unrecognized(NamedTuple):
    label: str


Placeholder = Union[GroupPosition, MatchWinner, MatchLoser, Unrecognized]


def parse_label(label: str) -> Placeholder:
    label = (label or '').strip()
    found = GROUP_POSITION_PATTERN.match(label)
    if found:
        return GroupPosition(found.group(1), POSITION_SUFFIXES.index(found.group(2)) + 1)
    found = WINNER_PATTERN.match(label)
    if found:
        return MatchWinner(found.group(1).strip())
    found = LOSER_PATTERN.match(label)
    if found:
        return MatchLoser(found.group(1).strip())
    return Unrecognized(label)


def build_bracket_outcomes(matches: List[Match]) -> Tuple[Dict[str, str], Dict[str, str]]:
    """
    ``(winners, losers)`` keyed by bracket slot name, from completed knockout
    matches. A level match without a decisive penalty score has neither.
    """
    winners = {}
    losers = {}
    for match in matches:
        if match.round == GROUP or match.status != COMPLETED or not match.name:
            continue
        if not match.home_team_id or not match.away_team_id:
            continue
        outcome = decide_winner(match)
        if outcome == HOME:
            winners[match.name] = match.home_team_id
            losers[match.name] = match.away_team_id
        elif outcome == AWAY:
            winners[match.name] = match.away_team_id
            losers[match.name] = match.home_team_id
        else:
            logger.warning('Completed knockout match %s has no winner; its placeholders stay unresolved', match.name)
    return winners, losers


def resolve_label(placeholder: Placeholder, standings: Dict[str, List[Team]],
                  winners: Dict[str, str], losers: Dict[str, str]) -> Optional[str]:
    """Team id a parsed placeholder currently points at, or None."""
    if isinstance(placeholder, GroupPosition):
        table = standings.get(placeholder.group_name) or []
        if len(table) < placeholder.rank:
            return None
        return table[placeholder.rank - 1].id
    if isinstance(placeholder, MatchWinner):
        return winners.get(placeholder.slot_name)
    if isinstance(placeholder, MatchLoser):
        return losers.get(placeholder.slot_name)
    return None


def resolve_placeholders(groups: List[Group], teams_by_id: Dict[str, Team], matches: List[Match]) -> List[Match]:
    """
    Re-resolve every placeholder on knockout matches that are not completed.

    A side whose label now points at a different team (or at a team for the
    first time) is updated; its label is kept. Sides whose label resolves to
    nothing are left as they are. Returns the matches that changed.
    """
    standings = {group.name: compute_group_standings(group, teams_by_id, matches) for group in groups}
    winners, losers = build_bracket_outcomes(matches)

    updated = []
    for match in matches:
        if match.round == GROUP or match.status == COMPLETED or not match.has_placeholder():
            continue
        targets = {}
        for attr in ('home', 'away'):
            side = getattr(match, attr)
            team_id = None
            if side.label:
                team_id = resolve_label(parse_label(side.label), standings, winners, losers)
            targets[attr] = team_id or side.team_id

        if targets['home'] and targets['home'] == targets['away']:
            # a team cannot meet itself; keep whichever side already held it
            logger.warning('Match %s: %s and %s both point at %s', match.name or match.id,
                           match.home.label, match.away.label, targets['home'])
            if targets['away'] != match.away.team_id:
                targets['away'] = match.away.team_id
            else:
                targets['home'] = match.home.team_id

        changed = False
        for attr in ('home', 'away'):
            side = getattr(match, attr)
            if targets[attr] and targets[attr] != side.team_id:
                setattr(match, attr, side.resolved_to(targets[attr]))
                changed = True
        if changed:
            updated.append(match)

    logger.info('Resolved placeholders on %d matches', len(updated))
    return updated


def resolve_all(groups: List[Group], teams_by_id: Dict[str, Team], matches: List[Match]) -> int:
    """Resolve placeholders in place and return the number of matches mutated."""
    return len(resolve_placeholders(groups, teams_by_id, matches))


def placeholder_options(groups: List[Group], matches: List[Match]) -> List[str]:
    """Labels that currently make sense: group positions and named knockout matches."""
    options = []
    for group in sorted(groups, key=lambda g: g.name):
        for position in POSITION_SUFFIXES[:len(group.team_ids)]:
            options.append(f"{group.name} {position}")
    for match in matches:
        if match.round != GROUP and match.name:
            options.append(f"Winner {match.name}")
            options.append(f"Loser {match.name}")
    return options
