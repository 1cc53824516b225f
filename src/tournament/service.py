"""
Tournament operations against a store.

Each operation reads what it needs, validates everything, runs the engine
functions and only then writes, all while holding the tournament's lock.
"""
import logging
from typing import Dict, List

from . import standings as standings_engine
from .config import (
    parse_date, parse_time, validate_draw_settings, validate_schedule_settings,
)
from .draw import build_manual_groups, draw_groups, validate_manual_groups
from .errors import GroupNotFound, InvalidManualGroups, InvalidMatchState, MatchNotReady, NoGroupsDefined
from .models import Group, Match, MatchSide, Team, COMPLETED, GROUP, KNOCKOUT_ROUNDS, SCHEDULED
from .placeholders import placeholder_options, resolve_placeholders
from .scheduling import FixtureScheduler, generate_simple_fixtures
from .storage import TournamentStore

logger = logging.getLogger(__name__)


class TournamentManager:
    def __init__(self, store: TournamentStore, rng=None):
        self.store = store
        self.rng = rng

    def settings(self, **overrides):
        settings = self.store.load_settings()
        settings.update({key: value for key, value in overrides.items() if value is not None})
        return settings

    # Groups

    def draw_groups(self, group_count=None, teams_per_group=None) -> List[Group]:
        """Replace all groups with a random draw over every registered team."""
        settings = self.settings(group_count=group_count, teams_per_group=teams_per_group)
        group_count, teams_per_group = validate_draw_settings(settings['group_count'], settings['teams_per_group'])
        with self.store.lock():
            teams = self.store.find_teams()
            for team in teams:
                team.group_id = None
            groups = draw_groups(teams, group_count, teams_per_group, self.rng)
            self._replace_groups(groups)
        return groups

    def manual_draw(self, assignments: Dict[str, List[str]]) -> List[Group]:
        """Replace all groups with a caller-supplied ``{group name: [team id, ...]}`` mapping."""
        max_group_size = self.settings()['max_group_size']
        with self.store.lock():
            groups = build_manual_groups(assignments, self.store.find_teams(), max_group_size)
            self._replace_groups(groups)
        return groups

    def _replace_groups(self, groups):
        self.store.replace_groups(groups)
        removed = self.store.delete_matches(round=GROUP)
        self._recalculate()
        if removed:
            logger.info('Removed %d group-stage matches from the previous draw', removed)

    def edit_group(self, group_id, team_ids: List[str]) -> Group:
        """Replace one group's membership."""
        max_group_size = self.settings()['max_group_size']
        with self.store.lock():
            groups = self.store.find_groups()
            group = next((g for g in groups if g.id == group_id), None)
            if group is None:
                raise GroupNotFound(group_id)
            assignments = {group.name: list(team_ids)}
            assignments.update({g.name: g.team_ids for g in groups if g.id != group.id})
            known = [team.id for team in self.store.find_teams()]
            problems = validate_manual_groups(assignments, known, max_group_size)
            if problems:
                raise InvalidManualGroups(problems)
            group.team_ids = list(team_ids)
            self.store.replace_groups(groups)
        return group

    def delete_group(self, group_id):
        with self.store.lock():
            groups = self.store.find_groups()
            kept = [g for g in groups if g.id != group_id]
            if len(kept) == len(groups):
                raise GroupNotFound(group_id)
            self.store.replace_groups(kept)

    def reset_groups(self):
        """Delete every group and every match, and zero all team aggregates."""
        with self.store.lock():
            self.store.delete_groups()
            removed = self.store.delete_matches()
            self.store.reset_aggregates()
        logger.info('Groups reset; %d matches deleted', removed)

    # Fixtures

    def generate_fixtures(self, **overrides) -> List[Match]:
        """Replace all group-stage matches with a freshly scheduled round robin."""
        with self.store.lock():
            groups = self.store.find_groups()
            if not groups:
                raise NoGroupsDefined()
            config = validate_schedule_settings(self.settings(**overrides))
            scheduler = FixtureScheduler(
                groups,
                config['venues'],
                config['start'],
                match_duration=config['match_duration'],
                break_minutes=config['break_between_matches'],
                rest_slots=config['rest_between_games'],
                day_end=config['day_end'],
                rng=self.rng,
            )
            matches = scheduler.generate_group_stage()
            self.store.replace_group_stage_matches(matches)
            self._recalculate()
        return matches

    def generate_simple_fixtures(self, start_date=None, time_slots=None, venue=None) -> List[Match]:
        """Replace all group-stage matches using the rotating kick-off list."""
        settings = self.settings(start_date=start_date, simple_time_slots=time_slots, simple_venue=venue)
        with self.store.lock():
            groups = self.store.find_groups()
            if not groups:
                raise NoGroupsDefined()
            kickoffs = [parse_time(t, 'time slot').strftime('%H:%M') for t in settings['simple_time_slots']]
            matches = generate_simple_fixtures(groups, parse_date(settings['start_date']), kickoffs,
                                               settings['simple_venue'])
            self.store.replace_group_stage_matches(matches)
            self._recalculate()
        return matches

    def add_knockout_match(self, round, name=None, home_team=None, away_team=None, home_placeholder=None,
                           away_placeholder=None, venue='', match_date=None, match_time=None) -> Match:
        """Create a knockout match; each side is a team id or a placeholder label, never both."""
        if round not in KNOCKOUT_ROUNDS:
            raise InvalidMatchState(f"{round!r} is not a knockout round; expected one of {', '.join(KNOCKOUT_ROUNDS)}")
        if (home_team and home_placeholder) or (away_team and away_placeholder):
            raise InvalidMatchState("A side is either a team or a placeholder, not both")
        if home_team and home_team == away_team:
            raise InvalidMatchState(f"Team {home_team} cannot play itself")
        home_label = (home_placeholder or '').strip()
        if home_label and home_label == (away_placeholder or '').strip():
            raise InvalidMatchState(f"Both sides refer to {home_label}")
        with self.store.lock():
            self.store.find_teams_by_id([t for t in (home_team, away_team) if t])
            if name and any(m.name == name for m in self.store.find_matches()):
                raise InvalidMatchState(f"A match named {name} already exists")
            match = Match(
                home=MatchSide(team_id=home_team, label=home_placeholder),
                away=MatchSide(team_id=away_team, label=away_placeholder),
                round=round,
                name=name,
                venue=venue,
                match_date=parse_date(match_date, 'match_date') if match_date else None,
                match_time=parse_time(match_time, 'match_time').strftime('%H:%M') if match_time else None,
                status=SCHEDULED,
            )
            self.store.add_match(match)
        return match

    def delete_match(self, match_id):
        """Delete a match, withdrawing its result from the aggregates if it was completed."""
        with self.store.lock():
            match = self.store.find_match(match_id)
            if match.status == COMPLETED:
                home, away = self._teams_for(match)
                standings_engine.revert_result(match, home, away)
                self.store.save_team_aggregates([home, away])
            self.store.delete_match(match_id)

    # Scores

    def _teams_for(self, match):
        if not match.home_team_id or not match.away_team_id:
            raise MatchNotReady(f"Both sides of match {match.name or match.id} must be teams")
        return self.store.find_teams_by_id([match.home_team_id, match.away_team_id])

    def start_match(self, match_id) -> Match:
        with self.store.lock():
            match = self.store.find_match(match_id)
            standings_engine.start_match(match)
            self.store.save_match(match)
        return match

    def record_score(self, match_id, home_score, away_score, finalize=False, penalties=None) -> Match:
        """Enter a live score, or finalize a result (``finalize=True``)."""
        with self.store.lock():
            match = self.store.find_match(match_id)
            home, away = self._teams_for(match)
            standings_engine.apply_result(match, home, away, home_score, away_score, finalize, penalties)
            self.store.save_team_aggregates([home, away])
            self.store.save_match(match)
        return match

    def complete_match(self, match_id, home_score, away_score, penalties=None) -> Match:
        return self.record_score(match_id, home_score, away_score, finalize=True, penalties=penalties)

    def cancel_match(self, match_id) -> Match:
        with self.store.lock():
            match = self.store.find_match(match_id)
            if match.status == COMPLETED:
                home, away = self._teams_for(match)
                standings_engine.cancel_match(match, home, away)
                self.store.save_team_aggregates([home, away])
            else:
                standings_engine.cancel_match(match)
            self.store.save_match(match)
        return match

    # Progression

    def resolve_placeholders(self) -> int:
        """Fill knockout sides from current standings and results. Returns the number of matches updated."""
        with self.store.lock():
            teams_by_id = {team.id: team for team in self.store.find_teams()}
            updated = resolve_placeholders(self.store.find_groups(), teams_by_id, self.store.find_matches())
            if updated:
                self.store.save_many_matches(updated)
        return len(updated)

    def placeholder_options(self) -> List[str]:
        return placeholder_options(self.store.find_groups(), self.store.find_matches())

    def standings(self) -> Dict[str, List[Team]]:
        teams_by_id = {team.id: team for team in self.store.find_teams()}
        return standings_engine.group_tables(self.store.find_groups(), teams_by_id, self.store.find_matches())

    def recalculate_aggregates(self) -> int:
        with self.store.lock():
            return len(self._recalculate())

    def _recalculate(self):
        teams = self.store.find_teams()
        changed = standings_engine.recalculate_aggregates(teams, self.store.find_matches())
        if changed:
            self.store.save_team_aggregates(changed)
        return changed
