"""
Aggregation pipelines.

Each pipeline is a pure function of an EventStore and a params object; none keeps
state between calls, so they can run concurrently from any number of threads.
"""
from .activity_calendar import aggregated_timeline, participant_timeline
from .comparison import compare_participants
from .flow import od_flows
from .heatmap import cell_details, checkin_heatmap, location_heatmap
from .reference import building_polygons, map_bounds, participant_ids
from .streamgraph import activity_streams

__all__ = [
    "activity_streams",
    "aggregated_timeline",
    "building_polygons",
    "cell_details",
    "checkin_heatmap",
    "compare_participants",
    "location_heatmap",
    "map_bounds",
    "od_flows",
    "participant_ids",
    "participant_timeline",
]
