"""
Group-stage fixture generation.

``FixtureScheduler`` enumerates every round-robin pairing within each group,
shuffles them, and fills discrete time slots greedily: each venue in a slot
takes the first remaining pairing whose teams are free in that slot and have
rested for at least ``rest_slots`` slots. ``generate_simple_fixtures`` is a
lower-fidelity variant with no rest or venue logic.
"""
import math
import logging
from datetime import datetime, date, time, timedelta
from itertools import combinations
from typing import Dict, List, NamedTuple, Optional

from .config import parse_venues
from .errors import NoGroupsDefined, NoVenuesProvided, InvalidConfiguration
from .models import Group, Match, MatchSide, GROUP, SCHEDULED
from .randomizer import shuffle

logger = logging.getLogger(__name__)

SLOT_SEARCH_FACTOR = 10


class Pairing(NamedTuple):
    home_id: str
    away_id: str
    group_id: str


class ScheduledFixture(NamedTuple):
    slot: int
    venue: str
    pairing: Pairing
    forced: bool = False


def generate_round_robin_pairings(groups: List[Group]) -> List[Pairing]:
    """Every unordered pair of teams within each group; groups are independent."""
    pairings = []
    for group in groups:
        if len(group.team_ids) < 2:
            logger.warning('%s has fewer than 2 teams (%d). Skipping match generation.',
                           group.name, len(group.team_ids))
            continue
        for home_id, away_id in combinations(group.team_ids, 2):
            pairings.append(Pairing(home_id, away_id, group.id))
    return pairings


class FixtureScheduler:
    def __init__(self, groups, venues, start, match_duration=15, break_minutes=5, rest_slots=2,
                 day_end=time(21, 0), rng=None):
        if not groups:
            raise NoGroupsDefined()
        self.venues = parse_venues(venues)
        if not self.venues:
            raise NoVenuesProvided()
        if match_duration <= 0 or break_minutes < 0 or rest_slots < 0:
            raise InvalidConfiguration("Match duration must be positive; break and rest must not be negative")
        if start.time() >= day_end:
            raise InvalidConfiguration(
                f"Start time {start.strftime('%H:%M')} must be before the daily cutoff {day_end.strftime('%H:%M')}"
            )
        self.groups = groups
        self.start = start
        self.slot_length = match_duration + break_minutes
        self.rest_slots = rest_slots
        self.day_end = day_end
        self.rng = rng
        self.last_slot: Dict[str, int] = {}
        self.schedule: Dict[str, List[ScheduledFixture]] = {venue: [] for venue in self.venues}

    def _is_rested(self, team_id, slot):
        last = self.last_slot.get(team_id)
        return last is None or slot - last >= self.rest_slots

    def _place(self, fixture):
        self.schedule[fixture.venue].append(fixture)
        self.last_slot[fixture.pairing.home_id] = fixture.slot
        self.last_slot[fixture.pairing.away_id] = fixture.slot

    def allocate(self) -> List[ScheduledFixture]:
        """Assign every pairing to a (slot, venue). Returns the fixtures in placement order."""
        pairings = shuffle(generate_round_robin_pairings(self.groups), self.rng)
        remaining = list(pairings)
        placed = []
        max_slots = len(pairings) * SLOT_SEARCH_FACTOR
        slot = 0

        while remaining and slot < max_slots:
            playing = set()
            for venue in self.venues:
                if not remaining:
                    break
                for i, pairing in enumerate(remaining):
                    if pairing.home_id in playing or pairing.away_id in playing:
                        continue
                    if self._is_rested(pairing.home_id, slot) and self._is_rested(pairing.away_id, slot):
                        fixture = ScheduledFixture(slot, venue, pairing)
                        self._place(fixture)
                        placed.append(fixture)
                        playing.update((pairing.home_id, pairing.away_id))
                        del remaining[i]
                        logger.debug('Slot %d, %s: %s vs %s', slot, venue, pairing.home_id, pairing.away_id)
                        break
            slot += 1

        if remaining:
            logger.warning('Could not satisfy rest constraints for %d of %d fixtures within %d slots; '
                           'forcing them into later slots', len(remaining), len(pairings), max_slots)
            for pairing in remaining:
                venue = self.venues[len(placed) % len(self.venues)]
                fixture = ScheduledFixture(slot, venue, pairing, forced=True)
                self._place(fixture)
                placed.append(fixture)
                slot += 1

        return placed

    def slots_per_day(self):
        window = (self.day_end.hour * 60 + self.day_end.minute) - (self.start.hour * 60 + self.start.minute)
        return max(1, math.ceil(window / self.slot_length))

    def slot_datetime(self, slot) -> datetime:
        """Kick-off of a slot; slots past the daily cutoff roll over to the next day's start time."""
        day, index = divmod(slot, self.slots_per_day())
        return self.start + timedelta(days=day, minutes=index * self.slot_length)

    def generate_group_stage(self) -> List[Match]:
        fixtures = self.allocate()
        matches = []
        for fixture in sorted(fixtures, key=lambda f: (f.slot, self.venues.index(f.venue))):
            kickoff = self.slot_datetime(fixture.slot)
            matches.append(Match(
                home=MatchSide.for_team(fixture.pairing.home_id),
                away=MatchSide.for_team(fixture.pairing.away_id),
                round=GROUP,
                group_id=fixture.pairing.group_id,
                venue=fixture.venue,
                match_date=kickoff.date(),
                match_time=kickoff.strftime('%H:%M'),
                status=SCHEDULED,
                slot=fixture.slot,
                forced=fixture.forced,
            ))
        forced = sum(1 for m in matches if m.forced)
        logger.info('Generated %d group-stage matches over %d venues (%d forced)',
                    len(matches), len(self.venues), forced)
        return matches


def generate_group_stage(groups, venues, start, match_duration=15, break_minutes=5, rest_slots=2,
                         day_end=time(21, 0), rng=None) -> List[Match]:
    scheduler = FixtureScheduler(groups, venues, start, match_duration, break_minutes, rest_slots, day_end, rng)
    return scheduler.generate_group_stage()


def generate_simple_fixtures(groups: List[Group], start_date: date, time_slots: List[str],
                             venue: Optional[str] = 'Main Venue') -> List[Match]:
    """
    Round-robin fixtures with a fixed rotating kick-off list and a single venue.

    No rest or venue-contention checks: pairings are taken group by group and
    each gets the next kick-off time, moving to the next day when the list wraps.
    """
    if not groups:
        raise NoGroupsDefined()
    if not time_slots:
        raise InvalidConfiguration("At least one kick-off time is required")
    matches = []
    for index, pairing in enumerate(generate_round_robin_pairings(groups)):
        day, slot_index = divmod(index, len(time_slots))
        matches.append(Match(
            home=MatchSide.for_team(pairing.home_id),
            away=MatchSide.for_team(pairing.away_id),
            round=GROUP,
            group_id=pairing.group_id,
            venue=venue or 'Main Venue',
            match_date=start_date + timedelta(days=day),
            match_time=time_slots[slot_index],
            status=SCHEDULED,
        ))
    return matches
