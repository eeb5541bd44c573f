"""
Typed request parameters.

Every ``from_args`` accepts any mapping with ``get`` (a werkzeug MultiDict or a
plain dict) and raises InputError naming the offending parameter. Values are never
clamped: a bad value is the caller's error.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, Optional

from .errors import InputError
from .filters import EventFilter
from .grid import GridKey, validate_cell_size
from .timebuckets import BucketMode, parse_timestamp, validate_width

VENUE_TYPES = ("Pub", "Restaurant")


def _raw(args, name):
    value = args.get(name)
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return None
    return value


def _number(args, name, default):
    value = _raw(args, name)
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InputError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise InputError(f"{name} must be finite, got {value!r}")
    return int(number) if number.is_integer() else number


def _integer(args, name, default):
    value = _raw(args, name)
    if value is None:
        return default
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(str(value))
    except ValueError:
        raise InputError(f"{name} must be an integer, got {value!r}")


def _required_integer(args, name):
    value = _integer(args, name, None)
    if value is None:
        raise InputError(f"{name} is required")
    return value


def _boolean(args, name, default):
    value = _raw(args, name)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    lowered = str(value).lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise InputError(f"{name} must be 'true' or 'false', got {value!r}")


def _timestamp(args, name):
    value = _raw(args, name)
    if value is None:
        return None
    return parse_timestamp(value, name)


def _choice(args, name, enum_cls, default):
    value = _raw(args, name)
    if value is None:
        return default
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InputError(f"{name} must be one of: {allowed}; got {value!r}")


def _groups(args, name="interest_groups"):
    """Repeated keys and comma-separated values are both accepted."""
    if hasattr(args, "getlist"):
        values = args.getlist(name)
    else:
        value = args.get(name)
        values = value if isinstance(value, (list, tuple)) else [value] if value is not None else []
    groups = set()
    for value in values:
        for part in str(value).split(","):
            if part.strip():
                groups.add(part.strip())
    return frozenset(groups) or None


@dataclass(frozen=True)
class RangeParams:
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self):
        if self.start is not None and self.end is not None and self.start > self.end:
            raise InputError("start must not be after end")

    @classmethod
    def from_args(cls, args):
        return cls(start=_timestamp(args, "start"), end=_timestamp(args, "end"))

    def filter(self):
        return EventFilter(start=self.start, end=self.end)


@dataclass(frozen=True)
class HeatmapParams(RangeParams):
    cell_size: float = 100
    time_bucket_minutes: int = 60
    include_temporal: bool = True
    interest_groups: Optional[FrozenSet[str]] = None
    grid_key: GridKey = GridKey.INDEX
    bucket_mode: BucketMode = BucketMode.HOUR

    def __post_init__(self):
        super().__post_init__()
        validate_cell_size(self.cell_size)
        validate_width(self.time_bucket_minutes)

    @classmethod
    def from_args(cls, args):
        return cls(
            start=_timestamp(args, "start"),
            end=_timestamp(args, "end"),
            cell_size=_number(args, "cell_size", 100),
            time_bucket_minutes=_integer(args, "time_bucket_minutes", 60),
            include_temporal=_boolean(args, "include_temporal", True),
            interest_groups=_groups(args),
            grid_key=_choice(args, "grid_key", GridKey, GridKey.INDEX),
            bucket_mode=_choice(args, "bucket_mode", BucketMode, BucketMode.HOUR),
        )

    def filter(self):
        return EventFilter(start=self.start, end=self.end, interest_groups=self.interest_groups)


@dataclass(frozen=True)
class CellDetailParams(RangeParams):
    grid_x: float = 0
    grid_y: float = 0
    time_bucket: Optional[datetime] = None
    cell_size: float = 100
    time_bucket_minutes: int = 60
    grid_key: GridKey = GridKey.INDEX
    bucket_mode: BucketMode = BucketMode.HOUR

    def __post_init__(self):
        super().__post_init__()
        validate_cell_size(self.cell_size)
        validate_width(self.time_bucket_minutes)

    @classmethod
    def from_args(cls, args):
        if _raw(args, "grid_x") is None or _raw(args, "grid_y") is None:
            raise InputError("grid_x and grid_y are required")
        return cls(
            start=_timestamp(args, "start"),
            end=_timestamp(args, "end"),
            grid_x=_number(args, "grid_x", None),
            grid_y=_number(args, "grid_y", None),
            time_bucket=_timestamp(args, "time_bucket"),
            cell_size=_number(args, "cell_size", 100),
            time_bucket_minutes=_integer(args, "time_bucket_minutes", 60),
            grid_key=_choice(args, "grid_key", GridKey, GridKey.INDEX),
            bucket_mode=_choice(args, "bucket_mode", BucketMode, BucketMode.HOUR),
        )


@dataclass(frozen=True)
class CheckinHeatmapParams(RangeParams):
    venue_type: Optional[str] = None

    def __post_init__(self):
        super().__post_init__()
        if self.venue_type is not None and self.venue_type not in VENUE_TYPES:
            raise InputError(f"venue_type must be one of: {', '.join(VENUE_TYPES)}; got {self.venue_type!r}")

    @classmethod
    def from_args(cls, args):
        return cls(
            start=_timestamp(args, "start"),
            end=_timestamp(args, "end"),
            venue_type=_raw(args, "venue_type"),
        )

    def filter(self):
        return EventFilter(start=self.start, end=self.end, venue_type=self.venue_type)


@dataclass(frozen=True)
class FlowParams(RangeParams):
    cell_size: float = 50
    min_trip_count: int = 10

    def __post_init__(self):
        super().__post_init__()
        validate_cell_size(self.cell_size)
        if self.min_trip_count < 1:
            raise InputError(f"min_trip_count must be a positive integer, got {self.min_trip_count}")

    @classmethod
    def from_args(cls, args):
        return cls(
            start=_timestamp(args, "start"),
            end=_timestamp(args, "end"),
            cell_size=_number(args, "cell_size", 50),
            min_trip_count=_integer(args, "min_trip_count", 10),
        )


@dataclass(frozen=True)
class StreamgraphParams(RangeParams):
    time_bucket_minutes: int = 60
    interest_groups: Optional[FrozenSet[str]] = None

    def __post_init__(self):
        super().__post_init__()
        validate_width(self.time_bucket_minutes)

    @classmethod
    def from_args(cls, args):
        return cls(
            start=_timestamp(args, "start"),
            end=_timestamp(args, "end"),
            time_bucket_minutes=_integer(args, "time_bucket_minutes", 60),
            interest_groups=_groups(args),
        )

    def filter(self):
        return EventFilter(start=self.start, end=self.end, interest_groups=self.interest_groups)


@dataclass(frozen=True)
class CalendarParams(RangeParams):
    participant_id: Optional[int] = None

    @classmethod
    def from_args(cls, args):
        return cls(
            start=_timestamp(args, "start"),
            end=_timestamp(args, "end"),
            participant_id=_integer(args, "participant_id", None),
        )

    def filter(self):
        ids = None if self.participant_id is None else frozenset([self.participant_id])
        return EventFilter(start=self.start, end=self.end, participant_ids=ids)


@dataclass(frozen=True)
class ComparisonParams(RangeParams):
    participant1: int = 0
    participant2: int = 0

    @classmethod
    def from_args(cls, args):
        if _raw(args, "participant1") is None or _raw(args, "participant2") is None:
            raise InputError("Both participant1 and participant2 are required")
        return cls(
            start=_timestamp(args, "start"),
            end=_timestamp(args, "end"),
            participant1=_required_integer(args, "participant1"),
            participant2=_required_integer(args, "participant2"),
        )

    def filter(self):
        return EventFilter(
            start=self.start,
            end=self.end,
            participant_ids=frozenset([self.participant1, self.participant2]),
        )
