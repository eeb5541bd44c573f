"""
Dominant activity per calendar day and hour.

Status rows are counted per mode within each (day, hour) slot; the mode with the
most rows wins and ties go to the alphabetically first mode name.
"""
import logging
import time

from ..errors import NotFoundError

logger = logging.getLogger(__name__)


def dominant(counts):
    """Winning ``(mode, count)`` of a mode -> count mapping."""
    return min(counts.items(), key=lambda item: (-item[1], item[0]))


def _count_modes(store, flt, per_participant):
    counts = {}
    for participant_id, day, hour, mode, n in store.mode_counts(flt, per_participant=per_participant):
        key = (participant_id, day, hour) if per_participant else (day, hour)
        counts.setdefault(key, {})[mode] = n
    return counts


def aggregated_timeline(store, params):
    """``{data: {date: {hour: {activity, count}}}}`` across all participants."""
    t0 = time.time()
    counts = _count_modes(store, params.filter(), per_participant=False)

    data = {}
    for day, hour in sorted(counts):
        activity, count = dominant(counts[(day, hour)])
        data.setdefault(day.isoformat(), {})[str(hour)] = {"activity": activity, "count": count}

    logger.info(f"Aggregated timeline computed in {time.time() - t0:.3f}s, slots = {len(counts)}")
    return {"data": data}


def participant_timeline(store, params):
    """
    ``{data: {date: {hour: {participant_id: {activity, count}}}}}``.

    Without ``participant_id`` every participant is resolved separately.
    """
    t0 = time.time()
    if params.participant_id is not None and store.get_participant(params.participant_id) is None:
        raise NotFoundError(f"Participant {params.participant_id} not found")

    counts = _count_modes(store, params.filter(), per_participant=True)

    data = {}
    for participant_id, day, hour in sorted(counts, key=lambda k: (k[1], k[2], k[0])):
        activity, count = dominant(counts[(participant_id, day, hour)])
        hours = data.setdefault(day.isoformat(), {})
        hours.setdefault(str(hour), {})[str(participant_id)] = {"activity": activity, "count": count}

    logger.info(f"Participant timeline computed in {time.time() - t0:.3f}s, slots = {len(counts)}")
    return {"data": data}
