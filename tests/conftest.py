"""
Shared pytest fixtures for tournament engine tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - skip the statistical shuffle checks
"""
import pytest
import random
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tournament.models import Team, Group
from tournament.service import TournamentManager
from tournament.storage import TournamentStore

COUNTRIES = [
    ("Argentina", "ARG"), ("Brazil", "BRA"), ("Croatia", "CRO"), ("Denmark", "DEN"),
    ("England", "ENG"), ("France", "FRA"), ("Germany", "GER"), ("Hungary", "HUN"),
    ("Italy", "ITA"), ("Japan", "JPN"), ("Korea", "KOR"), ("Morocco", "MAR"),
    ("Netherlands", "NED"), ("Norway", "NOR"), ("Portugal", "POR"), ("Spain", "ESP"),
    ("Sweden", "SWE"), ("Uruguay", "URU"),
]


def make_teams(count):
    return [Team(name=name, short_code=code, id=code.lower()) for name, code in COUNTRIES[:count]]


@pytest.fixture
def rng():
    return random.Random(20260611)


@pytest.fixture
def sixteen_teams():
    """Sixteen unassigned teams with readable ids (arg, bra, ...)."""
    return make_teams(16)


@pytest.fixture
def two_groups():
    """Two groups of four with their member teams."""
    teams = make_teams(8)
    groups = [
        Group(name="Group A", team_ids=[t.id for t in teams[:4]]),
        Group(name="Group B", team_ids=[t.id for t in teams[4:]]),
    ]
    for group in groups:
        for team in teams:
            if team.id in group.team_ids:
                team.group_id = group.id
    return groups, teams


@pytest.fixture
def schedule_settings():
    return {
        'venues': 'Pitch 1, Pitch 2',
        'start_date': '2026-06-01',
        'start_time': '09:00',
        'match_duration': 15,
        'break_between_matches': 5,
        'rest_between_games': 2,
        'day_end_time': '21:00',
    }


@pytest.fixture
def store(tmp_path):
    """An empty tournament directory."""
    return TournamentStore(str(tmp_path / "tournament"))


@pytest.fixture
def populated_store(store):
    """A store with sixteen registered, unassigned teams."""
    store.save_teams(make_teams(16))
    return store


@pytest.fixture
def manager(populated_store, rng):
    return TournamentManager(populated_store, rng=rng)
