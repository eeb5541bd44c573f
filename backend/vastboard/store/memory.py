import threading

from ..errors import InputError
from ..filters import EventFilter
from ..models import Building, CheckinEvent, Participant, StatusEvent, TripEvent, Venue
from .base import EventStore

_KINDS = (Participant, StatusEvent, CheckinEvent, TripEvent, Building, Venue)


class InMemoryEventStore(EventStore):
    """
    Dict-backed store for tests and small extracts.

    Writes take a lock; reads iterate over snapshots, so scans never observe a
    half-applied load.
    """

    def __init__(self, records=()):
        self._lock = threading.Lock()
        self._tables = {kind: {} for kind in _KINDS}
        if records:
            self.load(records)

    def load(self, records):
        records = list(records)
        for record in records:
            if type(record) not in self._tables:
                raise InputError(f"cannot load record of type {type(record).__name__}")

        inserted = 0
        with self._lock:
            for record in records:
                table = self._tables[type(record)]
                key = record.natural_key
                if key in table:
                    continue
                table[key] = record
                inserted += 1
        return inserted

    def _rows(self, kind):
        with self._lock:
            return list(self._tables[kind].values())

    def _groups_for(self, flt):
        if flt.interest_groups is None:
            return None
        return self.interest_groups_by_participant()

    def scan_status(self, flt=EventFilter(), with_position=False, with_mode=False):
        groups = self._groups_for(flt)
        rows = sorted(self._rows(StatusEvent), key=lambda e: (e.timestamp, e.participant_id))
        for event in rows:
            if with_position and event.position is None:
                continue
            if with_mode and event.mode is None:
                continue
            if not flt.in_range(event.timestamp):
                continue
            if not flt.allows_participant(event.participant_id, groups):
                continue
            yield event

    def scan_checkins(self, flt=EventFilter()):
        groups = self._groups_for(flt)
        rows = sorted(self._rows(CheckinEvent), key=lambda e: (e.timestamp, e.participant_id))
        for event in rows:
            if (flt.in_range(event.timestamp)
                    and flt.allows_participant(event.participant_id, groups)
                    and flt.allows_venue(event.venue_type)):
                yield event

    def scan_trips(self, flt=EventFilter()):
        groups = self._groups_for(flt)
        rows = sorted(self._rows(TripEvent), key=lambda t: (t.start_time, t.participant_id))
        for trip in rows:
            if flt.in_range(trip.start_time) and flt.allows_participant(trip.participant_id, groups):
                yield trip

    def participants(self):
        return sorted(self._rows(Participant), key=lambda p: p.participant_id)

    def get_participant(self, participant_id):
        with self._lock:
            return self._tables[Participant].get(participant_id)

    def buildings(self):
        return sorted(self._rows(Building), key=lambda b: b.building_id)

    def venues(self):
        return sorted(self._rows(Venue), key=lambda v: (v.venue_type, v.venue_id))
