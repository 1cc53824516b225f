import re
import uuid
from datetime import date

from .errors import InvalidTeam, InvalidMatchState

SHORT_CODE_MAX_LENGTH = 5

AGGREGATE_FIELDS = ('played', 'won', 'drawn', 'lost', 'goals_for', 'goals_against', 'points')

GROUP = 'group'
ROUND_OF_32 = 'round-of-32'
ROUND_OF_16 = 'round-of-16'
QUARTER = 'quarter'
SEMI = 'semi'
THIRD_PLACE = 'third-place'
FINAL = 'final'
KNOCKOUT_ROUNDS = (ROUND_OF_32, ROUND_OF_16, QUARTER, SEMI, THIRD_PLACE, FINAL)
ROUNDS = (GROUP,) + KNOCKOUT_ROUNDS

SCHEDULED = 'scheduled'
LIVE = 'live'
COMPLETED = 'completed'
CANCELLED = 'cancelled'
STATUSES = (SCHEDULED, LIVE, COMPLETED, CANCELLED)


def slugify(name, fallback='group'):
    """Convert a display name to an identifier ("Group A" -> "group-a")."""
    slug = name.lower().strip()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'[\s-]+', '-', slug)
    return slug.strip('-') or fallback


def new_id():
    return uuid.uuid4().hex[:12]


class Team:
    def __init__(self, name, short_code, id=None, logo_url=None, group_id=None, **aggregates):
        name = (name or '').strip()
        short_code = (short_code or '').strip()
        if not name:
            raise InvalidTeam("Team name is required")
        if not short_code or len(short_code) > SHORT_CODE_MAX_LENGTH:
            raise InvalidTeam(
                f"Short code for {name} must be 1-{SHORT_CODE_MAX_LENGTH} characters, got {short_code!r}"
            )
        unknown = set(aggregates) - set(AGGREGATE_FIELDS)
        if unknown:
            raise InvalidTeam(f"Unknown aggregate fields for {name}: {sorted(unknown)}")
        self.id = str(id) if id else new_id()
        self.name = name
        self.short_code = short_code
        self.logo_url = logo_url or None
        self.group_id = group_id
        for field in AGGREGATE_FIELDS:
            setattr(self, field, int(aggregates.get(field, 0)))

    @property
    def goal_difference(self):
        return self.goals_for - self.goals_against

    def reset_aggregates(self):
        for field in AGGREGATE_FIELDS:
            setattr(self, field, 0)

    def aggregates(self):
        return {field: getattr(self, field) for field in AGGREGATE_FIELDS}

    def to_dict(self):
        data = {
            'id': self.id,
            'name': self.name,
            'short_code': self.short_code,
            'logo_url': self.logo_url,
            'group_id': self.group_id,
        }
        data.update(self.aggregates())
        return data

    @classmethod
    def from_dict(cls, data):
        data = dict(data)
        name = data.pop('name', None)
        return cls(
            name=name,
            short_code=data.pop('short_code', None),
            id=data.pop('id', None) or slugify(name or '', 'team'),
            logo_url=data.pop('logo_url', None),
            group_id=data.pop('group_id', None),
            **{field: data[field] for field in AGGREGATE_FIELDS if field in data}
        )

    def __repr__(self):
        return f"Team(name={self.name}, short_code={self.short_code}, group_id={self.group_id})"


class Group:
    def __init__(self, name, team_ids=None, id=None):
        self.name = name
        self.id = id or slugify(name)
        self.team_ids = list(team_ids) if team_ids else []

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'team_ids': list(self.team_ids)}

    @classmethod
    def from_dict(cls, data):
        return cls(name=data['name'], team_ids=[str(t) for t in data.get('team_ids') or []], id=data.get('id'))

    def __repr__(self):
        return f"Group(name={self.name}, team_ids={self.team_ids})"


class MatchSide:
    """
    One side of a match: unassigned, a placeholder label awaiting resolution,
    or a resolved team.

    A side resolved from a placeholder keeps its label so it can be
    re-resolved while standings are still moving.
    """
    UNASSIGNED = 'unassigned'
    PLACEHOLDER = 'placeholder'
    RESOLVED = 'resolved'

    __slots__ = ('team_id', 'label')

    def __init__(self, team_id=None, label=None):
        self.team_id = team_id or None
        self.label = label.strip() if label and label.strip() else None

    @classmethod
    def unassigned(cls):
        return cls()

    @classmethod
    def placeholder(cls, label):
        return cls(label=label)

    @classmethod
    def for_team(cls, team_id, label=None):
        return cls(team_id=team_id, label=label)

    @property
    def kind(self):
        if self.team_id:
            return self.RESOLVED
        if self.label:
            return self.PLACEHOLDER
        return self.UNASSIGNED

    def resolved_to(self, team_id):
        return MatchSide(team_id=team_id, label=self.label)

    def to_dict(self):
        return {'team_id': self.team_id, 'placeholder': self.label}

    @classmethod
    def from_dict(cls, data):
        if not data:
            return cls()
        return cls(team_id=data.get('team_id'), label=data.get('placeholder'))

    def __eq__(self, other):
        if not isinstance(other, MatchSide):
            return NotImplemented
        return (self.team_id, self.label) == (other.team_id, other.label)

    def __hash__(self):
        return hash((self.team_id, self.label))

    def __repr__(self):
        if self.kind == self.UNASSIGNED:
            return "MatchSide(unassigned)"
        if self.kind == self.PLACEHOLDER:
            return f"MatchSide(placeholder={self.label!r})"
        return f"MatchSide(team_id={self.team_id}, placeholder={self.label!r})"


class Match:
    def __init__(self, home=None, away=None, round=GROUP, group_id=None, name=None, venue='',
                 match_date=None, match_time=None, status=SCHEDULED, home_score=None, away_score=None,
                 home_penalties=None, away_penalties=None, slot=None, forced=False, id=None):
        if round not in ROUNDS:
            raise InvalidMatchState(f"Unknown round {round!r}; expected one of {', '.join(ROUNDS)}")
        if status not in STATUSES:
            raise InvalidMatchState(f"Unknown status {status!r}; expected one of {', '.join(STATUSES)}")
        self.id = id or new_id()
        self.home = home if home is not None else MatchSide()
        self.away = away if away is not None else MatchSide()
        self.round = round
        self.group_id = group_id if round == GROUP else None
        self.name = name or None
        self.venue = venue or ''
        self.match_date = match_date
        self.match_time = match_time
        self.status = status
        self.home_score = home_score
        self.away_score = away_score
        self.home_penalties = home_penalties
        self.away_penalties = away_penalties
        self.slot = slot
        self.forced = forced

    @property
    def is_knockout(self):
        return self.round != GROUP

    @property
    def home_team_id(self):
        return self.home.team_id

    @property
    def away_team_id(self):
        return self.away.team_id

    def has_placeholder(self):
        return bool(self.home.label or self.away.label)

    def to_dict(self):
        return {
            'id': self.id,
            'round': self.round,
            'group_id': self.group_id,
            'name': self.name,
            'home': self.home.to_dict(),
            'away': self.away.to_dict(),
            'home_score': self.home_score,
            'away_score': self.away_score,
            'home_penalties': self.home_penalties,
            'away_penalties': self.away_penalties,
            'venue': self.venue,
            'match_date': self.match_date.isoformat() if self.match_date else None,
            'match_time': self.match_time,
            'status': self.status,
            'slot': self.slot,
            'forced': self.forced,
        }

    @classmethod
    def from_dict(cls, data):
        match_date = data.get('match_date')
        if isinstance(match_date, str):
            match_date = date.fromisoformat(match_date)
        return cls(
            home=MatchSide.from_dict(data.get('home')),
            away=MatchSide.from_dict(data.get('away')),
            round=data.get('round', GROUP),
            group_id=data.get('group_id'),
            name=data.get('name'),
            venue=data.get('venue', ''),
            match_date=match_date,
            match_time=data.get('match_time'),
            status=data.get('status', SCHEDULED),
            home_score=data.get('home_score'),
            away_score=data.get('away_score'),
            home_penalties=data.get('home_penalties'),
            away_penalties=data.get('away_penalties'),
            slot=data.get('slot'),
            forced=bool(data.get('forced', False)),
            id=data.get('id'),
        )

    def __repr__(self):
        return (f"Match(round={self.round}, name={self.name}, home={self.home!r}, away={self.away!r}, "
                f"status={self.status}, score={self.home_score}-{self.away_score})")
