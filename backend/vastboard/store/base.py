from abc import ABC, abstractmethod
from collections import Counter, defaultdict

from ..filters import EventFilter
from ..grid import cell_of
from ..timebuckets import BucketMode, bucket_of, hour_slot


class EventStore(ABC):
    """
    Read interface over the city journals; backed by Postgres or in-memory.

    Scans return iterators and honour every predicate of the EventFilter they are
    given. Implementations must be safe to read from several threads at once.

    The grouped queries at the bottom have Python implementations built on the
    scans; a store that can group server-side overrides them with the same results.
    """

    @abstractmethod
    def scan_status(self, flt=EventFilter(), with_position=False, with_mode=False):
        """Status events ordered by timestamp, then participant."""
        raise NotImplementedError

    @abstractmethod
    def scan_checkins(self, flt=EventFilter()):
        raise NotImplementedError

    @abstractmethod
    def scan_trips(self, flt=EventFilter()):
        """Trips are range-filtered on their start time and come in no particular order."""
        raise NotImplementedError

    @abstractmethod
    def participants(self):
        raise NotImplementedError

    @abstractmethod
    def get_participant(self, participant_id):
        raise NotImplementedError

    @abstractmethod
    def buildings(self):
        raise NotImplementedError

    @abstractmethod
    def venues(self):
        raise NotImplementedError

    @abstractmethod
    def load(self, records):
        """
        Insert records, skipping any whose natural key is already stored.

        Returns the number of records actually inserted, so running the same load
        twice inserts nothing the second time. A batch is applied entirely or not at all.
        """
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def interest_groups_by_participant(self):
        return {p.participant_id: p.interest_group for p in self.participants()}

    def buildings_by_id(self):
        return {b.building_id: b for b in self.buildings()}

    # -------------------------------------------------------------
    # Grouped queries
    # -------------------------------------------------------------
    def cell_visitors(self, flt, cell_size, width_minutes=None, mode=BucketMode.HOUR, by_group=False):
        """
        Distinct located participants per bucket, interest group and grid cell.

        Returns ``(bucket, group, gx, gy, participants)`` tuples. ``bucket`` is None
        when ``width_minutes`` is None; ``group`` is None unless ``by_group``.
        """
        groups = self.interest_groups_by_participant() if by_group else None
        visitors = defaultdict(set)
        for event in self.scan_status(flt, with_position=True):
            gx, gy = cell_of(event.position[0], event.position[1], cell_size)
            bucket = None if width_minutes is None else bucket_of(event.timestamp, width_minutes, mode)
            group = groups.get(event.participant_id) if by_group else None
            visitors[(bucket, group, gx, gy)].add(event.participant_id)
        return [key + (len(ids),) for key, ids in visitors.items()]

    def cell_participants(self, flt, cell_size, gx, gy, width_minutes=None, bucket=None, mode=BucketMode.HOUR):
        """Sorted ids of participants located in cell (gx, gy), restricted to ``bucket`` when given."""
        found = set()
        for event in self.scan_status(flt, with_position=True):
            if cell_of(event.position[0], event.position[1], cell_size) != (gx, gy):
                continue
            if bucket is not None and bucket_of(event.timestamp, width_minutes, mode) != bucket:
                continue
            found.add(event.participant_id)
        return sorted(found)

    def mode_participants(self, flt, width_minutes):
        """``(bucket, mode, participants)`` over hour-anchored buckets."""
        participants = defaultdict(set)
        for event in self.scan_status(flt, with_mode=True):
            bucket = bucket_of(event.timestamp, width_minutes, BucketMode.HOUR)
            participants[(bucket, event.mode)].add(event.participant_id)
        return [key + (len(ids),) for key, ids in participants.items()]

    def mode_counts(self, flt, per_participant=False):
        """
        Status rows per mode and (day, hour) slot.

        Returns ``(participant_id, day, hour, mode, rows)``; participant_id is None
        unless ``per_participant``.
        """
        counts = Counter()
        for event in self.scan_status(flt, with_mode=True):
            day, hour = hour_slot(event.timestamp)
            pid = event.participant_id if per_participant else None
            counts[(pid, day, hour, event.mode)] += 1
        return [key + (n,) for key, n in counts.items()]

    def checkin_counts(self, flt):
        """``(venue_type, venue_id, checkins)``."""
        counts = Counter((c.venue_type, c.venue_id) for c in self.scan_checkins(flt))
        return [key + (n,) for key, n in counts.items()]

    def position_extent(self, flt):
        """
        ``(points, sum_x, sum_y, min_x, max_x, min_y, max_y)`` of located status rows.

        Sums and extremes are None when no row matches.
        """
        n = 0
        sum_x = sum_y = 0.0
        min_x = min_y = max_x = max_y = None
        for event in self.scan_status(flt, with_position=True):
            x, y = event.position
            if n == 0:
                min_x = max_x = x
                min_y = max_y = y
            else:
                min_x, max_x = min(min_x, x), max(max_x, x)
                min_y, max_y = min(min_y, y), max(max_y, y)
            n += 1
            sum_x += x
            sum_y += y
        if n == 0:
            return 0, None, None, None, None, None, None
        return n, sum_x, sum_y, min_x, max_x, min_y, max_y
