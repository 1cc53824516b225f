"""
Tournament settings: defaults, YAML persistence and validation.

Settings are plain dictionaries, merged over ``get_default_settings()`` when
loaded, and validated right before an operation uses them.
"""
import os
import logging
from datetime import datetime, date, time

import yaml

from .errors import InvalidConfiguration, NoVenuesProvided

logger = logging.getLogger(__name__)

MIN_GROUPS = 2
MAX_GROUPS = 8
MIN_TEAMS_PER_GROUP = 3
MAX_TEAMS_PER_GROUP = 6


def get_default_settings():
    """Return default settings."""
    return {
        'group_count': 4,
        'teams_per_group': 4,
        'venues': [],
        'start_date': None,
        'start_time': None,
        'match_duration': 15,
        'break_between_matches': 5,
        'rest_between_games': 2,
        'day_end_time': '21:00',
        'max_group_size': MAX_TEAMS_PER_GROUP,
        'simple_time_slots': ['10:00', '12:00', '14:00', '16:00', '18:00'],
        'simple_venue': 'Main Venue',
    }


def load_settings(path):
    """Load settings from a YAML file, merging with defaults."""
    defaults = get_default_settings()
    if not path or not os.path.exists(path):
        return defaults
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not data:
        return defaults
    if not isinstance(data, dict):
        raise InvalidConfiguration(f"{path} must contain a mapping of settings")
    unknown = set(data) - set(defaults)
    if unknown:
        logger.warning('Ignoring unknown settings in %s: %s', path, ', '.join(sorted(unknown)))
    for key, value in defaults.items():
        if key not in data:
            data[key] = value
    return {key: data[key] for key in defaults}


def save_settings(path, settings):
    """Save settings to a YAML file."""
    serializable = {}
    for key, value in settings.items():
        if isinstance(value, (date, time)):
            value = value.isoformat() if isinstance(value, date) else value.strftime('%H:%M')
        serializable[key] = value
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump(serializable, f, default_flow_style=False)


def parse_time(value, field='time'):
    """Parse an "HH:MM" string into a ``datetime.time``."""
    if isinstance(value, time):
        return value
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value < 24 * 60:
        # YAML 1.1 reads an unquoted 09:00 as sexagesimal minutes
        return time(value // 60, value % 60)
    try:
        return datetime.strptime(str(value).strip(), '%H:%M').time()
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"{field} must be HH:MM, got {value!r}")


def parse_date(value, field='start_date'):
    """Parse a "YYYY-MM-DD" string (or pass a date through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"{field} must be YYYY-MM-DD, got {value!r}")


def parse_venues(venues):
    """Split comma-separated venue input (or a list) into trimmed, non-blank labels."""
    if venues is None:
        return []
    if isinstance(venues, str):
        venues = venues.split(',')
    return [str(v).strip() for v in venues if v is not None and str(v).strip()]


def _int_setting(settings, key, minimum=None, maximum=None):
    value = settings.get(key)
    if isinstance(value, bool):
        raise InvalidConfiguration(f"{key} must be an integer, got {value!r}")
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"{key} must be an integer, got {value!r}")
    if minimum is not None and value < minimum:
        raise InvalidConfiguration(f"{key} must be at least {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise InvalidConfiguration(f"{key} must be at most {maximum}, got {value}")
    return value


def validate_draw_settings(group_count, teams_per_group):
    """Validate draw sizes. Returns (group_count, teams_per_group) as ints."""
    settings = {'group_count': group_count, 'teams_per_group': teams_per_group}
    return (
        _int_setting(settings, 'group_count', MIN_GROUPS, MAX_GROUPS),
        _int_setting(settings, 'teams_per_group', MIN_TEAMS_PER_GROUP, MAX_TEAMS_PER_GROUP),
    )


def validate_schedule_settings(settings):
    """
    Validate the scheduler inputs and return them normalized:

    venues (list), start (datetime), match_duration, break_between_matches,
    rest_between_games (ints) and day_end (time).
    """
    venues = parse_venues(settings.get('venues'))
    if not venues:
        raise NoVenuesProvided()

    if not settings.get('start_date'):
        raise InvalidConfiguration("start_date is required")
    if settings.get('start_time') is None or settings.get('start_time') == '':
        raise InvalidConfiguration("start_time is required")
    start = datetime.combine(
        parse_date(settings['start_date']),
        parse_time(settings['start_time'], 'start_time'),
    )
    day_end = parse_time(settings.get('day_end_time') or '21:00', 'day_end_time')
    if start.time() >= day_end:
        raise InvalidConfiguration(
            f"start_time {start.strftime('%H:%M')} must be before day_end_time {day_end.strftime('%H:%M')}"
        )

    return {
        'venues': venues,
        'start': start,
        'match_duration': _int_setting(settings, 'match_duration', 1),
        'break_between_matches': _int_setting(settings, 'break_between_matches', 0),
        'rest_between_games': _int_setting(settings, 'rest_between_games', 0),
        'day_end': day_end,
    }
