"""
YAML-file storage for teams, groups, matches and settings.

One directory holds one tournament. Reads always go to disk; callers that
read-modify-write hold ``store.lock()`` so concurrent mutations of the same
tournament are serialized.
"""
import os
import logging
from datetime import date
from typing import Iterable, List, Optional

import yaml
from filelock import FileLock

from .config import load_settings, save_settings
from .errors import GroupNotFound, InvalidTeam, MatchNotFound, TeamNotFound, TournamentError
from .models import Group, Match, Team, GROUP

logger = logging.getLogger(__name__)

TEAMS_FILE = 'teams.yaml'
GROUPS_FILE = 'groups.yaml'
MATCHES_FILE = 'matches.yaml'
SETTINGS_FILE = 'settings.yaml'
LOCK_FILE = '.lock'


def default_data_dir():
    return os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(os.getcwd(), 'data'))


def _match_sort_key(match):
    return (match.match_date or date.max, match.match_time or '', match.slot if match.slot is not None else -1)


class TournamentStore:
    def __init__(self, data_dir=None, lock_timeout=10):
        self.data_dir = data_dir or default_data_dir()
        os.makedirs(self.data_dir, exist_ok=True)
        self._lock = FileLock(os.path.join(self.data_dir, LOCK_FILE), timeout=lock_timeout)

    def lock(self):
        """Re-entrant per-tournament lock; use as a context manager."""
        return self._lock

    def _path(self, filename):
        return os.path.join(self.data_dir, filename)

    def _load_records(self, filename, key, factory):
        path = self._path(filename)
        if not os.path.exists(path):
            return []
        with open(path, 'r', encoding='utf-8') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError:
                logger.warning('Could not parse %s', path)
                raise
        if not data:
            return []
        records = []
        for index, record in enumerate(data.get(key) or []):
            try:
                records.append(factory(record))
            except (TournamentError, KeyError, TypeError, ValueError):
                logger.warning('Could not read %s record %d in %s: %r', key, index, path, record)
                raise
        return records

    def _save_records(self, filename, key, records):
        with open(self._path(filename), 'w', encoding='utf-8') as f:
            yaml.safe_dump({key: records}, f, default_flow_style=False, sort_keys=False)

    # Raw collections

    def load_teams(self) -> List[Team]:
        return self._load_records(TEAMS_FILE, 'teams', Team.from_dict)

    def save_teams(self, teams: List[Team]):
        self._save_records(TEAMS_FILE, 'teams', [team.to_dict() for team in teams])

    def load_groups(self) -> List[Group]:
        return self._load_records(GROUPS_FILE, 'groups', Group.from_dict)

    def save_groups(self, groups: List[Group]):
        self._save_records(GROUPS_FILE, 'groups', [group.to_dict() for group in groups])

    def load_matches(self) -> List[Match]:
        return self._load_records(MATCHES_FILE, 'matches', Match.from_dict)

    def save_matches(self, matches: List[Match]):
        self._save_records(MATCHES_FILE, 'matches', [match.to_dict() for match in matches])

    def load_settings(self):
        return load_settings(self._path(SETTINGS_FILE))

    def save_settings(self, settings):
        save_settings(self._path(SETTINGS_FILE), settings)

    # Teams

    def find_teams(self) -> List[Team]:
        return self.load_teams()

    def find_team(self, team_id) -> Team:
        for team in self.load_teams():
            if team.id == team_id:
                return team
        raise TeamNotFound(team_id)

    def find_teams_by_id(self, ids: Iterable[str]) -> List[Team]:
        """Teams in the order of ``ids``; raises ``TeamNotFound`` for an unknown id."""
        teams_by_id = {team.id: team for team in self.load_teams()}
        found = []
        for team_id in ids:
            if team_id not in teams_by_id:
                raise TeamNotFound(team_id)
            found.append(teams_by_id[team_id])
        return found

    def find_unassigned_teams(self) -> List[Team]:
        return [team for team in self.load_teams() if not team.group_id]

    def add_team(self, team: Team) -> Team:
        with self._lock:
            teams = self.load_teams()
            if any(t.name.lower() == team.name.lower() for t in teams):
                raise InvalidTeam(f"A team named {team.name} already exists")
            if any(t.id == team.id for t in teams):
                raise InvalidTeam(f"A team with id {team.id} already exists")
            teams.append(team)
            self.save_teams(teams)
        return team

    def save_team_aggregate(self, team: Team):
        self.save_team_aggregates([team])

    def save_team_aggregates(self, updated: List[Team]):
        with self._lock:
            by_id = {team.id: team for team in updated}
            teams = self.load_teams()
            for team in teams:
                if team.id in by_id:
                    for field, value in by_id.pop(team.id).aggregates().items():
                        setattr(team, field, value)
            if by_id:
                raise TeamNotFound(next(iter(by_id)))
            self.save_teams(teams)

    def reset_aggregates(self):
        with self._lock:
            teams = self.load_teams()
            for team in teams:
                team.reset_aggregates()
            self.save_teams(teams)

    # Groups

    def find_groups(self) -> List[Group]:
        return self.load_groups()

    def find_group(self, group_id) -> Group:
        for group in self.load_groups():
            if group.id == group_id:
                return group
        raise GroupNotFound(group_id)

    def replace_groups(self, groups: List[Group]):
        """Delete every group and insert ``groups``, rewriting team group references to match."""
        with self._lock:
            membership = {}
            for group in groups:
                for team_id in group.team_ids:
                    membership[team_id] = group.id
            teams = self.load_teams()
            known = {team.id for team in teams}
            missing = [team_id for team_id in membership if team_id not in known]
            if missing:
                raise TeamNotFound(missing[0])
            for team in teams:
                team.group_id = membership.get(team.id)
            self.save_teams(teams)
            self.save_groups(groups)

    def delete_groups(self):
        self.replace_groups([])

    # Matches

    def find_matches(self, group_id=None, round=None, status=None) -> List[Match]:
        matches = self.load_matches()
        if group_id is not None:
            matches = [m for m in matches if m.group_id == group_id]
        if round is not None:
            matches = [m for m in matches if m.round == round]
        if status is not None:
            matches = [m for m in matches if m.status == status]
        return sorted(matches, key=_match_sort_key)

    def find_match(self, match_id) -> Match:
        for match in self.load_matches():
            if match.id == match_id:
                return match
        raise MatchNotFound(match_id)

    def add_match(self, match: Match) -> Match:
        with self._lock:
            matches = self.load_matches()
            if any(m.id == match.id for m in matches):
                raise ValueError(f"A match with id {match.id} already exists")
            matches.append(match)
            self.save_matches(matches)
        return match

    def save_match(self, match: Match):
        """Insert or update one match."""
        self.save_many_matches([match])

    def save_many_matches(self, updated: List[Match]):
        with self._lock:
            by_id = {match.id: match for match in updated}
            matches = [by_id.pop(m.id, m) for m in self.load_matches()]
            matches.extend(by_id.values())
            self.save_matches(matches)

    def delete_match(self, match_id):
        with self._lock:
            matches = self.load_matches()
            kept = [m for m in matches if m.id != match_id]
            if len(kept) == len(matches):
                raise MatchNotFound(match_id)
            self.save_matches(kept)

    def delete_matches(self, round: Optional[str] = None) -> int:
        """Delete every match, or every match of one round. Returns how many were removed."""
        with self._lock:
            matches = self.load_matches()
            kept = [m for m in matches if round is not None and m.round != round]
            self.save_matches(kept)
        return len(matches) - len(kept)

    def replace_group_stage_matches(self, new_matches: List[Match], group_id=None):
        """Delete existing group-round matches (of one group, if given) and insert ``new_matches``."""
        with self._lock:
            kept = []
            for match in self.load_matches():
                if match.round == GROUP and (group_id is None or match.group_id == group_id):
                    continue
                kept.append(match)
            self.save_matches(kept + list(new_matches))
        logger.debug('Replaced group-stage matches with %d new fixtures', len(new_matches))
