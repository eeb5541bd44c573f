"""Map bounds, participant listing and building outlines for the map views."""
import logging
import time

logger = logging.getLogger(__name__)

# venues occupying a building override its registered type on the map; other
# venue types rank after these
_VENUE_RANK = {"Pub": 0, "Restaurant": 1}


def map_bounds(store, params):
    """
    Bounding box of every building vertex plus every participant position in range.

    The center is the mean of all those points. Returns zeros when nothing is known.
    """
    t0 = time.time()
    n, sum_x, sum_y, min_x, max_x, min_y, max_y = store.position_extent(params.filter())
    if n == 0:
        sum_x = sum_y = 0.0
        min_x = min_y = float("inf")
        max_x = max_y = float("-inf")

    for building in store.buildings():
        for x, y in building.polygon:
            n += 1
            sum_x += x
            sum_y += y
            min_x, max_x = min(min_x, x), max(max_x, x)
            min_y, max_y = min(min_y, y), max(max_y, y)

    logger.info(f"Bounds computed in {time.time() - t0:.3f}s, points = {n}")
    if n == 0:
        return {
            "min_longitude": 0,
            "max_longitude": 0,
            "min_latitude": 0,
            "max_latitude": 0,
            "center_longitude": 0,
            "center_latitude": 0,
            "width": 0,
            "height": 0,
        }
    return {
        "min_longitude": min_x,
        "max_longitude": max_x,
        "min_latitude": min_y,
        "max_latitude": max_y,
        "center_longitude": sum_x / n,
        "center_latitude": sum_y / n,
        "width": max_x - min_x,
        "height": max_y - min_y,
    }


def participant_ids(store):
    return {"participant_ids": [p.participant_id for p in store.participants()]}


def _rank(venue_type):
    return _VENUE_RANK.get(venue_type, len(_VENUE_RANK))


def building_polygons(store):
    venue_types = {}
    for venue in store.venues():
        current = venue_types.get(venue.building_id)
        if current is None or _rank(venue.venue_type) < _rank(current):
            venue_types[venue.building_id] = venue.venue_type

    return [
        {
            "building_id": b.building_id,
            "building_type": venue_types.get(b.building_id, b.building_type),
            "polygon": [[x, y] for x, y in b.polygon],
        }
        for b in store.buildings()
    ]
