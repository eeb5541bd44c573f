import logging
import time

from flask import Blueprint, Flask, current_app, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from . import pipelines
from .errors import VastError
from .params import (
    CalendarParams,
    CellDetailParams,
    CheckinHeatmapParams,
    ComparisonParams,
    FlowParams,
    HeatmapParams,
    RangeParams,
    StreamgraphParams,
)

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__, url_prefix="/api")

STORE_EXTENSION = "vast_event_store"


def get_store():
    return current_app.extensions[STORE_EXTENSION]


def create_app(store):
    """
    Build the Flask application around an already opened event store.

    The caller owns the store: it opens it before and closes it after serving.
    """
    app = Flask(__name__)
    # keep buckets, dates and hours in the order the pipelines emit them
    app.json.sort_keys = False
    CORS(app)
    app.extensions[STORE_EXTENSION] = store
    app.register_blueprint(api)

    @app.before_request
    def start_timer():
        g.start_time = time.time()
        logger.info(
            f"===>> Incoming request: {request.method} {request.path} "
            f"args={dict(request.args)}"
        )

    @app.after_request
    def log_request(response):
        if hasattr(g, "start_time"):
            duration = time.time() - g.start_time
            logger.info(
                f"<<=== Completed request: {request.method} {request.path} "
                f"Status={response.status_code} | Time={duration:.3f}s"
            )
        return response

    @app.errorhandler(VastError)
    def handle_vast_error(e):
        if e.status_code >= 500:
            logger.error(f"Error in {request.path}", exc_info=e)
        else:
            logger.warning(f"Rejected {request.path}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({
            "error": "Not Found",
            "message": f"Route {request.method} {request.path} not found",
        }), 404

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description}), e.code
        logger.error(f"Error in {request.path}", exc_info=e)
        return jsonify({"error": str(e)}), 500

    @app.route("/")
    def index():
        return jsonify({"status": "ok", "message": "VAST API is running"})

    @app.route("/health")
    def health():
        return jsonify({"status": "OK", "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())})

    return app


# =============================================================
# Heatmap
# =============================================================
@api.route("/heatmap/locations")
def heatmap_locations():
    """
    Spatial (and by default temporal) heatmap of participant positions.

    Parameters:
    - start, end: ISO-8601 bounds, inclusive (optional)
    - cell_size: grid cell size in map units (default: 100)
    - time_bucket_minutes: bucket width (default: 60)
    - include_temporal: 'true' or 'false'; 'false' folds everything into "all" (default: 'true')
    - interest_groups: groups to keep, split per group in the output (optional)
    - grid_key: 'index' or 'origin' cell keys (default: 'index')
    - bucket_mode: 'hour' or 'epoch' bucket alignment (default: 'hour')
    """
    params = HeatmapParams.from_args(request.args)
    return jsonify(pipelines.location_heatmap(get_store(), params))


@api.route("/heatmap/locations/details")
def heatmap_location_details():
    """
    Participants in one heatmap cell.

    Parameters:
    - grid_x, grid_y: cell key as returned by /heatmap/locations (required)
    - time_bucket: bucket start (optional, omit for the whole range)
    - cell_size, time_bucket_minutes, grid_key, bucket_mode: must match the heatmap query
    """
    params = CellDetailParams.from_args(request.args)
    return jsonify(pipelines.cell_details(get_store(), params))


@api.route("/heatmap/checkins")
def heatmap_checkins():
    """
    Check-in counts per venue, most visited first.

    Parameters:
    - start, end: ISO-8601 bounds (optional)
    - venue_type: 'Pub' or 'Restaurant' (optional)
    """
    params = CheckinHeatmapParams.from_args(request.args)
    return jsonify(pipelines.checkin_heatmap(get_store(), params))


# =============================================================
# Flows, streams and calendar
# =============================================================
@api.route("/flow/od-flows")
def flow_od_flows():
    """
    Origin-destination flows between grid cells.

    Parameters:
    - start, end: bounds on the trip start time (optional)
    - cell_size: grid cell size (default: 50)
    - min_trip_count: minimum trips for a flow to be kept (default: 10)
    """
    params = FlowParams.from_args(request.args)
    return jsonify(pipelines.od_flows(get_store(), params))


@api.route("/streamgraph/activities")
def streamgraph_activities():
    """
    Distinct participants per activity mode per time bucket.

    Parameters:
    - start, end: ISO-8601 bounds (optional)
    - time_bucket_minutes: bucket width, hour-anchored (default: 60)
    - interest_groups: restrict to these groups (optional)
    """
    params = StreamgraphParams.from_args(request.args)
    return jsonify(pipelines.activity_streams(get_store(), params))


@api.route("/activity-calendar/timeline")
def activity_calendar_timeline():
    """
    Dominant activity per participant, day and hour.

    Parameters:
    - participant_id: restrict to one participant (optional)
    - start, end: ISO-8601 bounds (optional)
    """
    params = CalendarParams.from_args(request.args)
    return jsonify(pipelines.participant_timeline(get_store(), params))


@api.route("/activity-calendar/timeline-aggregated")
def activity_calendar_timeline_aggregated():
    """Dominant activity per day and hour across all participants (start, end optional)."""
    params = RangeParams.from_args(request.args)
    return jsonify(pipelines.aggregated_timeline(get_store(), params))


# =============================================================
# Reference data
# =============================================================
@api.route("/utils/bounds")
def utils_bounds():
    params = RangeParams.from_args(request.args)
    return jsonify(pipelines.map_bounds(get_store(), params))


@api.route("/utils/participants")
def utils_participants():
    return jsonify(pipelines.participant_ids(get_store()))


@api.route("/buildings/polygons")
def buildings_polygons():
    return jsonify(pipelines.building_polygons(get_store()))


@api.route("/participant-comparison/compare")
def participant_comparison():
    """
    Compare two participants.

    Parameters:
    - participant1, participant2: participant ids (required)
    - start, end: ISO-8601 bounds (optional)
    """
    params = ComparisonParams.from_args(request.args)
    return jsonify(pipelines.compare_participants(get_store(), params))
