"""
Heatmaps of where participants are, and of where they check in.

Location heatmaps count *distinct participants* per cell and bucket, never raw
status rows: a participant pinging five times from the same cell counts once.
"""
import logging
import time
from collections import defaultdict
from datetime import timedelta

from ..filters import EventFilter
from ..grid import cell_key, center_of, index_from_key
from ..timebuckets import bucket_of, to_iso

logger = logging.getLogger(__name__)

ALL_BUCKET = "all"


def location_heatmap(store, params):
    """
    Distinct-participant counts per grid cell, per time bucket.

    Returns ``{data: {bucket: [cells]}, globalMaxCount}`` and, when interest groups
    are requested, per-cell ``interest_group`` plus ``groupMaxCounts``.
    """
    t0 = time.time()
    by_group = params.interest_groups is not None
    width = params.time_bucket_minutes if params.include_temporal else None
    groups = store.cell_visitors(
        params.filter(),
        params.cell_size,
        width_minutes=width,
        mode=params.bucket_mode,
        by_group=by_group,
    )

    frames = defaultdict(list)
    global_max = 0
    group_max = dict.fromkeys(sorted(params.interest_groups), 0) if by_group else {}
    for bucket, group, gx, gy, count in groups:
        center_x, center_y = center_of(gx, gy, params.cell_size)
        key_x, key_y = cell_key(gx, gy, params.cell_size, params.grid_key)
        row = {
            "grid_x": key_x,
            "grid_y": key_y,
            "count": count,
            "center_longitude": center_x,
            "center_latitude": center_y,
        }
        if by_group:
            row["interest_group"] = group
            group_max[group] = max(group_max.get(group, 0), count)
        frames[bucket].append(row)
        global_max = max(global_max, count)

    data = {}
    # keys are either all datetimes or the single None of an untimed heatmap
    for bucket in sorted(frames, key=lambda b: (b is not None, b)):
        rows = frames[bucket]
        rows.sort(key=lambda r: (-r["count"], r.get("interest_group") or "", r["grid_x"], r["grid_y"]))
        data[ALL_BUCKET if bucket is None else to_iso(bucket)] = rows

    # consumers divide by the max, so an empty heatmap still reports 1
    result = {"data": data, "globalMaxCount": global_max or 1}
    if by_group:
        result["groupMaxCounts"] = {group: (value or 1) for group, value in group_max.items()}

    logger.info(
        f"Location heatmap computed in {time.time() - t0:.3f}s, "
        f"cells = {len(groups)}, buckets = {len(data)}"
    )
    return result


def cell_details(store, params):
    """Participants behind one heatmap cell, grouped exactly as location_heatmap groups them."""
    t0 = time.time()
    gx, gy = index_from_key(params.grid_x, params.grid_y, params.cell_size, params.grid_key)

    start, end = params.start, params.end
    target = None
    if params.time_bucket is not None:
        target = bucket_of(params.time_bucket, params.time_bucket_minutes, params.bucket_mode)
        bucket_end = target + timedelta(minutes=params.time_bucket_minutes)
        start = target if start is None else max(start, target)
        end = bucket_end if end is None else min(end, bucket_end)

    participants = []
    if start is None or end is None or start <= end:
        participants = store.cell_participants(
            EventFilter(start=start, end=end),
            params.cell_size,
            gx,
            gy,
            width_minutes=params.time_bucket_minutes,
            bucket=target,
            mode=params.bucket_mode,
        )

    key_x, key_y = cell_key(gx, gy, params.cell_size, params.grid_key)
    logger.info(f"Cell details ({key_x}, {key_y}) in {time.time() - t0:.3f}s, participants = {len(participants)}")
    return {
        "grid_x": key_x,
        "grid_y": key_y,
        "time_bucket": to_iso(params.time_bucket) if params.time_bucket is not None else None,
        "participant_count": len(participants),
        "participants": list(participants),
    }


def checkin_heatmap(store, params):
    """Check-in totals per pub/restaurant, placed at the centroid of the venue's building."""
    t0 = time.time()
    counts = store.checkin_counts(params.filter())
    venues = {(v.venue_type, v.venue_id): v for v in store.venues()}
    buildings = store.buildings_by_id()

    rows = []
    for venue_type, venue_id, count in counts:
        venue = venues.get((venue_type, venue_id))
        building = buildings.get(venue.building_id) if venue is not None else None
        if building is None:
            logger.warning(f"Check-ins at {venue_type} {venue_id} have no located building, skipped")
            continue
        longitude, latitude = building.centroid
        rows.append({
            "venue_id": venue_id,
            "venue_type": venue_type,
            "checkin_count": count,
            "longitude": longitude,
            "latitude": latitude,
        })
    rows.sort(key=lambda r: (-r["checkin_count"], r["venue_type"], r["venue_id"]))
    logger.info(f"Check-in heatmap computed in {time.time() - t0:.3f}s, venues = {len(rows)}")
    return rows
