import logging
import time
from collections import Counter

from ..errors import NotFoundError
from ..timebuckets import to_iso

logger = logging.getLogger(__name__)


def compare_participants(store, params):
    """
    Side-by-side profile of two participants over a time range.

    Parameters (see ComparisonParams):
    - participant1, participant2: ids, both must exist
    - start, end: optional range on the status log

    For each participant returns its attributes, activity-mode distribution, the
    located timeline used for route animation and the Manhattan distance walked.
    """
    t0 = time.time()
    ids = [params.participant1, params.participant2]
    info = {pid: store.get_participant(pid) for pid in ids}
    missing = [pid for pid, participant in info.items() if participant is None]
    if missing:
        raise NotFoundError(f"Participants not found: {', '.join(str(pid) for pid in missing)}")

    modes = {pid: Counter() for pid in ids}
    timelines = {pid: [] for pid in ids}
    distance = dict.fromkeys(ids, 0.0)
    last_position = {}

    # scan is ordered by timestamp, so consecutive positions are consecutive pings
    for event in store.scan_status(params.filter()):
        pid = event.participant_id
        if event.mode is not None:
            modes[pid][event.mode] += 1
        if event.position is None:
            continue
        x, y = event.position
        timelines[pid].append({
            "timestamp": to_iso(event.timestamp),
            "x": x,
            "y": y,
            "mode": event.mode,
        })
        if pid in last_position:
            px, py = last_position[pid]
            distance[pid] += abs(x - px) + abs(y - py)
        last_position[pid] = (x, y)

    logger.info(
        f"Participant comparison {ids[0]} vs {ids[1]} in {time.time() - t0:.3f}s, "
        f"points = {sum(len(t) for t in timelines.values())}"
    )
    return {
        "participants": {
            str(pid): {
                "info": info[pid].to_dict(),
                "activityDistribution": dict(sorted(modes[pid].items())),
                "timeline": timelines[pid],
                "totalDistance": distance[pid],
            }
            for pid in ids
        },
        "timeRange": {
            "start": to_iso(params.start) if params.start is not None else None,
            "end": to_iso(params.end) if params.end is not None else None,
        },
    }
