from datetime import date, datetime, timedelta, timezone

import pytest

from vastboard.errors import InputError
from vastboard.timebuckets import BucketMode, bucket_of, hour_slot, parse_timestamp, to_iso


def test_hour_mode_restarts_each_hour():
    # 45 minute buckets inside an hour start at :00 and :45
    assert bucket_of(datetime(2022, 3, 1, 8, 44), 45) == datetime(2022, 3, 1, 8, 0)
    assert bucket_of(datetime(2022, 3, 1, 8, 50), 45) == datetime(2022, 3, 1, 8, 45)
    assert bucket_of(datetime(2022, 3, 1, 9, 10), 45) == datetime(2022, 3, 1, 9, 0)


def test_hour_mode_with_multi_hour_width_floors_to_the_hour():
    assert bucket_of(datetime(2022, 3, 1, 9, 59), 120) == datetime(2022, 3, 1, 9, 0)


def test_epoch_mode_ignores_hour_boundaries():
    # 2022-03-01T00:00Z is not a multiple of 35 minutes since the epoch
    assert bucket_of(datetime(2022, 3, 1, 9, 10), 35, BucketMode.EPOCH) == datetime(2022, 3, 1, 8, 55)
    assert bucket_of(datetime(2022, 3, 1, 9, 10), 35, BucketMode.HOUR) == datetime(2022, 3, 1, 9, 0)
    assert bucket_of(datetime(1970, 1, 1, 0, 44), 45, "epoch") == datetime(1970, 1, 1, 0, 0)


def test_epoch_buckets_are_exactly_width_apart():
    start = datetime(2022, 3, 1)
    starts = sorted({
        bucket_of(start + timedelta(minutes=m), 25, BucketMode.EPOCH) for m in range(0, 300, 7)
    })
    gaps = {b - a for a, b in zip(starts, starts[1:])}
    assert gaps == {timedelta(minutes=25)}


@pytest.mark.parametrize("mode", list(BucketMode))
def test_buckets_are_monotonic(mode):
    start = datetime(2022, 3, 1, 7, 3)
    stamps = [start + timedelta(minutes=m * 11) for m in range(40)]
    buckets = [bucket_of(t, 30, mode) for t in stamps]
    assert buckets == sorted(buckets)
    assert all(b <= t for b, t in zip(buckets, stamps))


def test_aware_timestamps_are_bucketed_in_utc():
    aware = datetime(2022, 3, 1, 10, 20, tzinfo=timezone(timedelta(hours=2)))
    assert bucket_of(aware, 60) == datetime(2022, 3, 1, 8, 0)


@pytest.mark.parametrize("width", [0, -15, 1.5, True, "60"])
def test_invalid_width_is_rejected(width):
    with pytest.raises(InputError):
        bucket_of(datetime(2022, 3, 1), width)


def test_hour_slot():
    assert hour_slot(datetime(2022, 3, 1, 23, 59)) == (date(2022, 3, 1), 23)


@pytest.mark.parametrize("text, expected", [
    ("2022-03-01", datetime(2022, 3, 1)),
    ("2022-03-01T05:00:00Z", datetime(2022, 3, 1, 5)),
    ("2022-03-01T05:00:00.000Z", datetime(2022, 3, 1, 5)),
    ("2022-03-01T07:00:00+02:00", datetime(2022, 3, 1, 5)),
])
def test_parse_timestamp(text, expected):
    assert parse_timestamp(text) == expected


@pytest.mark.parametrize("text, expected", [
    ("2022-03-01T08:00:00.5Z", datetime(2022, 3, 1, 8, 0, 0, 500000)),
    ("2022-03-01T08:00:00.12Z", datetime(2022, 3, 1, 8, 0, 0, 120000)),
    ("2022-03-01T08:00:00.1234567", datetime(2022, 3, 1, 8, 0, 0, 123456)),
    ("2022-03-01T10:00:00.25+02:00", datetime(2022, 3, 1, 8, 0, 0, 250000)),
])
def test_parse_timestamp_any_fraction_length(text, expected):
    assert parse_timestamp(text) == expected


@pytest.mark.parametrize("text", ["", "yesterday", "2022-13-01", None])
def test_parse_timestamp_rejects_garbage(text):
    with pytest.raises(InputError, match="start"):
        parse_timestamp(text, "start")


def test_to_iso_uses_millisecond_zulu_form():
    assert to_iso(datetime(2022, 3, 1, 5)) == "2022-03-01T05:00:00.000Z"
    assert parse_timestamp(to_iso(datetime(2022, 3, 1, 5, 30))) == datetime(2022, 3, 1, 5, 30)
