#!/usr/bin/env python3
"""
Command-line front end for the tournament engine.

Works on one tournament directory (teams.yaml, groups.yaml, matches.yaml,
settings.yaml). Teams are read from teams.yaml.

Usage:
    tournament draw --groups 4 --teams-per-group 4
    tournament generate --venues "Pitch 1, Pitch 2" --start-date 2026-06-01 --start-time 09:00
    tournament add-knockout semi --name SF1 --home "Group A 1st" --away "Group B 2nd"
    tournament score <match-id> 2 1 --final
    tournament resolve
    tournament standings

Exit codes:
    0: Success
    1: The operation was rejected (validation error)
    3: Another process holds the tournament lock
"""
import argparse
import logging
import random
import sys
from collections import defaultdict

import yaml
from filelock import Timeout

from .errors import TournamentError
from .models import KNOCKOUT_ROUNDS
from .service import TournamentManager
from .storage import TournamentStore, default_data_dir


def _team_label(side, teams_by_id):
    if side.team_id:
        team = teams_by_id.get(side.team_id)
        name = team.name if team else side.team_id
        return f"{name} ({side.label})" if side.label else name
    return side.label or 'TBD'


def print_schedule(matches, teams_by_id, groups_by_id):
    days = defaultdict(list)
    for match in matches:
        days[match.match_date.isoformat() if match.match_date else 'Unscheduled'].append(match)

    for day in sorted(days):
        print(f"\n# {day}")
        for match in days[day]:
            home = _team_label(match.home, teams_by_id)
            away = _team_label(match.away, teams_by_id)
            stage = groups_by_id[match.group_id].name if match.group_id in groups_by_id else match.round
            if match.name:
                stage = f"{stage} {match.name}"
            score = ''
            if match.home_score is not None:
                score = f"  {match.home_score}-{match.away_score}"
                if match.home_penalties is not None:
                    score += f" ({match.home_penalties}-{match.away_penalties} pens)"
            flag = '  [rest not satisfied]' if match.forced else ''
            print(f"  {match.match_time or '--:--'}  {match.venue or '-':<12} {stage:<14} "
                  f"{home} vs {away}{score}  ({match.status}){flag}  [{match.id}]")


def print_standings(tables):
    for group_name, table in sorted(tables.items()):
        print(f"\n# {group_name}")
        print(f"  {'Team':<24} {'P':>2} {'W':>2} {'D':>2} {'L':>2} {'GF':>3} {'GA':>3} {'GD':>4} {'Pts':>4}")
        for team in table:
            print(f"  {team.name:<24} {team.played:>2} {team.won:>2} {team.drawn:>2} {team.lost:>2} "
                  f"{team.goals_for:>3} {team.goals_against:>3} {team.goal_difference:>+4} {team.points:>4}")


def build_parser():
    parser = argparse.ArgumentParser(description='Football tournament draws, fixtures, scores and brackets')
    parser.add_argument('--data-dir', default=None,
                        help='Tournament directory (default: $TOURNAMENT_DATA_DIR or ./data)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log scheduling decisions')
    parser.add_argument('--seed', type=int, default=None, help='Seed the draw and fixture shuffles')
    sub = parser.add_subparsers(dest='command', required=True)

    sub.add_parser('teams', help='List registered teams')

    draw = sub.add_parser('draw', help='Randomly draw groups (replaces existing groups)')
    draw.add_argument('--groups', type=int, dest='group_count')
    draw.add_argument('--teams-per-group', type=int)

    manual = sub.add_parser('manual-draw', help='Assign groups from a YAML mapping of group name to team ids')
    manual.add_argument('file')

    sub.add_parser('reset', help='Delete all groups and matches and zero team records')

    generate = sub.add_parser('generate', help='Generate group-stage fixtures (replaces existing ones)')
    generate.add_argument('--venues', help='Comma-separated venue names')
    generate.add_argument('--start-date', help='YYYY-MM-DD')
    generate.add_argument('--start-time', help='HH:MM')
    generate.add_argument('--match-duration', type=int)
    generate.add_argument('--break', type=int, dest='break_between_matches')
    generate.add_argument('--rest', type=int, dest='rest_between_games', help='Minimum slots between a team\'s games')
    generate.add_argument('--simple', action='store_true',
                          help='Use the fixed kick-off list and single venue instead of the constrained scheduler')

    knockout = sub.add_parser('add-knockout', help='Add a knockout match')
    knockout.add_argument('round', choices=KNOCKOUT_ROUNDS)
    knockout.add_argument('--name', help='Bracket slot name, e.g. QF1')
    knockout.add_argument('--home', help='Placeholder label for the home side, e.g. "Group A 1st"')
    knockout.add_argument('--away', help='Placeholder label for the away side, e.g. "Winner QF2"')
    knockout.add_argument('--home-team', help='Team id for the home side')
    knockout.add_argument('--away-team', help='Team id for the away side')
    knockout.add_argument('--venue', default='')
    knockout.add_argument('--date', help='YYYY-MM-DD')
    knockout.add_argument('--time', help='HH:MM')

    start = sub.add_parser('start', help='Kick off a match (live, 0-0)')
    start.add_argument('match_id')

    score = sub.add_parser('score', help='Enter a live score or a final result')
    score.add_argument('match_id')
    score.add_argument('home_score', type=int)
    score.add_argument('away_score', type=int)
    score.add_argument('--final', action='store_true', help='Mark the match completed')
    score.add_argument('--penalties', type=int, nargs=2, metavar=('HOME', 'AWAY'))

    cancel = sub.add_parser('cancel', help='Cancel a match')
    cancel.add_argument('match_id')

    delete = sub.add_parser('delete-match', help='Delete a match')
    delete.add_argument('match_id')

    sub.add_parser('resolve', help='Resolve knockout placeholders from standings and results')
    sub.add_parser('placeholders', help='List placeholder labels available for knockout matches')
    sub.add_parser('standings', help='Print group tables')
    sub.add_parser('recalculate', help='Rebuild team records from completed matches')

    schedule = sub.add_parser('schedule', help='Print matches')
    schedule.add_argument('--round')
    schedule.add_argument('--group', help='Group id, e.g. group-a')
    schedule.add_argument('--status')
    return parser


def run(args):
    store = TournamentStore(args.data_dir or default_data_dir())
    rng = random.Random(args.seed) if args.seed is not None else None
    manager = TournamentManager(store, rng=rng)

    if args.command == 'teams':
        for team in store.find_teams():
            print(f"{team.id}  {team.short_code:<5}  {team.name}  {team.group_id or '-'}")
    elif args.command == 'draw':
        groups = manager.draw_groups(args.group_count, args.teams_per_group)
        teams_by_id = {team.id: team for team in store.find_teams()}
        for group in groups:
            print(f"# {group.name}")
            for team_id in group.team_ids:
                print(f"  {teams_by_id[team_id].name}")
    elif args.command == 'manual-draw':
        with open(args.file, 'r', encoding='utf-8') as f:
            assignments = yaml.safe_load(f) or {}
        groups = manager.manual_draw(assignments)
        print(f"Saved {len(groups)} groups")
    elif args.command == 'reset':
        manager.reset_groups()
        print("Groups and all matches reset")
    elif args.command == 'generate':
        if args.simple:
            matches = manager.generate_simple_fixtures(start_date=args.start_date)
        else:
            matches = manager.generate_fixtures(
                venues=args.venues,
                start_date=args.start_date,
                start_time=args.start_time,
                match_duration=args.match_duration,
                break_between_matches=args.break_between_matches,
                rest_between_games=args.rest_between_games,
            )
        forced = sum(1 for m in matches if m.forced)
        print(f"Generated {len(matches)} group-stage matches")
        if forced:
            print(f"WARNING: {forced} matches could not satisfy the rest requirement")
    elif args.command == 'add-knockout':
        match = manager.add_knockout_match(
            args.round, name=args.name, home_team=args.home_team, away_team=args.away_team,
            home_placeholder=args.home, away_placeholder=args.away, venue=args.venue,
            match_date=args.date, match_time=args.time,
        )
        print(f"Added {match.round} match {match.name or ''} [{match.id}]")
    elif args.command == 'start':
        manager.start_match(args.match_id)
        print(f"Match {args.match_id} is live")
    elif args.command == 'score':
        penalties = tuple(args.penalties) if args.penalties else None
        match = manager.record_score(args.match_id, args.home_score, args.away_score,
                                     finalize=args.final, penalties=penalties)
        print(f"Match {match.id}: {match.home_score}-{match.away_score} ({match.status})")
    elif args.command == 'cancel':
        manager.cancel_match(args.match_id)
        print(f"Match {args.match_id} cancelled")
    elif args.command == 'delete-match':
        manager.delete_match(args.match_id)
        print(f"Match {args.match_id} deleted")
    elif args.command == 'resolve':
        resolved = manager.resolve_placeholders()
        print(f"Updated {resolved} matches" if resolved else "All teams are up to date")
    elif args.command == 'placeholders':
        for label in manager.placeholder_options():
            print(label)
    elif args.command == 'standings':
        print_standings(manager.standings())
    elif args.command == 'recalculate':
        print(f"Recalculated records; {manager.recalculate_aggregates()} teams changed")
    elif args.command == 'schedule':
        matches = store.find_matches(group_id=args.group, round=args.round, status=args.status)
        teams_by_id = {team.id: team for team in store.find_teams()}
        groups_by_id = {group.id: group for group in store.find_groups()}
        if matches:
            print_schedule(matches, teams_by_id, groups_by_id)
        else:
            print("No matches scheduled.")


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )
    try:
        run(args)
    except TournamentError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Timeout:
        print("Error: the tournament is locked by another process; try again", file=sys.stderr)
        return 3
    return 0


if __name__ == '__main__':
    sys.exit(main())
