"""Read-only records served by the event store."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from .grid import polygon_centroid


@dataclass(frozen=True)
class Participant:
    participant_id: int
    household_size: Optional[int] = None
    have_kids: Optional[bool] = None
    age: Optional[int] = None
    education_level: Optional[str] = None
    interest_group: Optional[str] = None
    joviality: Optional[float] = None

    @property
    def natural_key(self):
        return self.participant_id

    def to_dict(self):
        return {
            "participant_id": self.participant_id,
            "household_size": self.household_size,
            "have_kids": self.have_kids,
            "age": self.age,
            "education_level": self.education_level,
            "interest_group": self.interest_group,
            "joviality": self.joviality,
        }


@dataclass(frozen=True)
class StatusEvent:
    timestamp: datetime
    participant_id: int
    position: Optional[Tuple[float, float]] = None
    mode: Optional[str] = None
    available_balance: Optional[float] = None
    financial_status: Optional[str] = None

    @property
    def natural_key(self):
        return (self.participant_id, self.timestamp)


@dataclass(frozen=True)
class CheckinEvent:
    participant_id: int
    timestamp: datetime
    venue_id: int
    venue_type: str

    @property
    def natural_key(self):
        return (self.participant_id, self.timestamp, self.venue_id)


@dataclass(frozen=True)
class TripEvent:
    participant_id: int
    start_time: datetime
    end_time: datetime
    origin_building_id: int
    destination_building_id: int
    purpose: Optional[str] = None

    @property
    def natural_key(self):
        return (self.participant_id, self.start_time)

    @property
    def duration_minutes(self):
        return (self.end_time - self.start_time).total_seconds() / 60.0


@dataclass(frozen=True)
class Building:
    building_id: int
    polygon: Tuple[Tuple[float, float], ...]
    building_type: Optional[str] = None
    max_occupancy: Optional[int] = None
    centroid: Tuple[float, float] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        # frozen: assign the derived centroid through object.__setattr__
        object.__setattr__(self, "polygon", tuple(tuple(p) for p in self.polygon))
        object.__setattr__(self, "centroid", polygon_centroid(self.polygon))

    @property
    def natural_key(self):
        return self.building_id


@dataclass(frozen=True)
class Venue:
    venue_id: int
    venue_type: str
    building_id: int

    @property
    def natural_key(self):
        return (self.venue_type, self.venue_id)
