"""
Time bucketing and timestamp handling.

All datetimes handled here are naive and expressed in UTC, the way the journals
store them. Aware inputs are converted to UTC first.
"""
import re
from datetime import datetime, timedelta, timezone
from enum import Enum

from .errors import InputError

EPOCH = datetime(1970, 1, 1)

_FRACTION_RE = re.compile(r"(:\d{2})\.(\d+)")


class BucketMode(str, Enum):
    HOUR = "hour"
    EPOCH = "epoch"


def validate_width(width_minutes):
    if isinstance(width_minutes, bool) or not isinstance(width_minutes, int):
        raise InputError(f"time_bucket_minutes must be an integer, got {width_minutes!r}")
    if width_minutes <= 0:
        raise InputError(f"time_bucket_minutes must be positive, got {width_minutes}")
    return width_minutes


def to_utc_naive(ts):
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def bucket_of(ts, width_minutes, mode=BucketMode.HOUR):
    """
    Start of the bucket containing ``ts``.

    HOUR buckets restart at every clock hour, so a 45 minute width yields buckets at
    :00 and :45 of each hour. EPOCH buckets are uniform from 1970-01-01T00:00Z.
    """
    validate_width(width_minutes)
    ts = to_utc_naive(ts)
    if BucketMode(mode) is BucketMode.EPOCH:
        width = width_minutes * 60
        seconds = (ts - EPOCH) // timedelta(seconds=1)
        return EPOCH + timedelta(seconds=(seconds // width) * width)

    hour_start = ts.replace(minute=0, second=0, microsecond=0)
    minutes_since_hour = (ts - hour_start) / timedelta(minutes=1)
    offset = int(minutes_since_hour // width_minutes) * width_minutes
    return hour_start + timedelta(minutes=offset)


def hour_slot(ts):
    """Calendar day and hour-of-day of ``ts``."""
    ts = to_utc_naive(ts)
    return ts.date(), ts.hour


def parse_timestamp(value, name="timestamp"):
    """Parse an ISO-8601 date or datetime string; ``Z`` and offsets are accepted."""
    if isinstance(value, datetime):
        return to_utc_naive(value)
    if not isinstance(value, str) or not value.strip():
        raise InputError(f"{name} must be an ISO-8601 timestamp")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat before 3.11 only takes 3 or 6 fractional digits
    text = _FRACTION_RE.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise InputError(f"{name} is not a valid ISO-8601 timestamp: {value!r}")
    return to_utc_naive(parsed)


def to_iso(ts):
    """Render a bucket start the way the dashboard keys its frames."""
    ts = to_utc_naive(ts)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"
