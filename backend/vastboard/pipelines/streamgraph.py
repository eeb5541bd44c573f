import logging
import time

from ..timebuckets import to_iso

logger = logging.getLogger(__name__)


def activity_streams(store, params):
    """
    Distinct participants per activity mode for each hour-anchored bucket.

    Every mode seen in a bucket is kept, so the result is a full multi-series
    breakdown: ``{data: {bucket: {mode: participants}}}``.
    """
    t0 = time.time()
    groups = store.mode_participants(params.filter(), params.time_bucket_minutes)

    data = {}
    for bucket, mode, count in sorted(groups):
        data.setdefault(to_iso(bucket), {})[mode] = count

    logger.info(f"Activity streams computed in {time.time() - t0:.3f}s, points = {len(groups)}, buckets = {len(data)}")
    return {"data": data}
