"""
Group draw: random shuffle-and-slice and manual assignment.

Both produce a complete new set of groups. Replacing the stored groups,
clearing team group references and clearing dependent matches is the
caller's job (see ``TournamentManager``).
"""
import logging
from typing import Dict, List

from .errors import InsufficientTeams, InvalidConfiguration, InvalidManualGroups
from .models import Group, Team
from .randomizer import shuffle

logger = logging.getLogger(__name__)

GROUP_LETTERS = ['A', 'B', 'C', 'D', 'E', 'F', 'G', 'H']


def group_name(index: int) -> str:
    return f"Group {GROUP_LETTERS[index]}"


def draw_groups(unassigned_teams: List[Team], group_count: int, teams_per_group: int, rng=None) -> List[Group]:
    """
    Randomly partition ``unassigned_teams`` into ``group_count`` groups of
    ``teams_per_group`` teams.

    Teams beyond ``group_count * teams_per_group`` stay unassigned. Each drawn
    team has its ``group_id`` set to its new group.
    """
    if group_count > len(GROUP_LETTERS):
        raise InvalidConfiguration(f"At most {len(GROUP_LETTERS)} groups can be drawn")
    required = group_count * teams_per_group
    if len(unassigned_teams) < required:
        raise InsufficientTeams(required=required, available=len(unassigned_teams))

    shuffled = shuffle(unassigned_teams, rng)
    groups = []
    for i in range(group_count):
        members = shuffled[i * teams_per_group:(i + 1) * teams_per_group]
        group = Group(name=group_name(i), team_ids=[team.id for team in members])
        for team in members:
            team.group_id = group.id
        groups.append(group)

    left_over = len(unassigned_teams) - required
    logger.info('Drew %d groups of %d teams (%d teams left unassigned)', group_count, teams_per_group, left_over)
    return groups


def validate_manual_groups(assignments: Dict[str, List[str]], known_team_ids, max_group_size: int) -> List[str]:
    """Return every problem found in a manual group assignment (empty when valid)."""
    problems = []
    if not assignments:
        return ["No groups provided"]

    known_team_ids = set(known_team_ids)
    seen = {}
    for name, team_ids in assignments.items():
        label = (name or '').strip()
        if not label:
            problems.append("Group names must not be blank")
            continue
        team_ids = list(team_ids or [])
        if not team_ids:
            problems.append(f"{label} has no teams")
            continue
        if len(team_ids) > max_group_size:
            problems.append(f"{label} has {len(team_ids)} teams; the maximum is {max_group_size}")
        for team_id in team_ids:
            if team_id not in known_team_ids:
                problems.append(f"{label} refers to unknown team {team_id}")
            elif team_id in seen:
                if seen[team_id] == label:
                    problems.append(f"Team {team_id} is listed twice in {label}")
                else:
                    problems.append(f"Team {team_id} is in both {seen[team_id]} and {label}")
            else:
                seen[team_id] = label
    return problems


def build_manual_groups(assignments: Dict[str, List[str]], teams: List[Team],
                        max_group_size: int) -> List[Group]:
    """
    Build groups from a caller-supplied ``{group name: [team id, ...]}`` mapping.

    Raises ``InvalidManualGroups`` listing every problem when the mapping is
    not a valid partition. On success every listed team's ``group_id`` is set
    and every other team's is cleared.
    """
    teams_by_id = {team.id: team for team in teams}
    problems = validate_manual_groups(assignments, teams_by_id.keys(), max_group_size)
    group_ids = [Group(name.strip()).id for name in assignments if (name or '').strip()]
    if len(set(group_ids)) != len(group_ids):
        problems.append("Group names must be unique")
    if problems:
        raise InvalidManualGroups(problems)

    for team in teams:
        team.group_id = None
    groups = []
    for name, team_ids in assignments.items():
        group = Group(name=name.strip(), team_ids=team_ids)
        for team_id in group.team_ids:
            teams_by_id[team_id].group_id = group.id
        groups.append(group)

    logger.info('Saved %d manually assigned groups', len(groups))
    return groups
