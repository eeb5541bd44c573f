"""
PostgreSQL event store.

Tables follow the journal layout of the dataset: participantstatuslogs,
checkinjournal, traveljournal, participants, buildings, pubs and restaurants.
Locations use the native ``point`` and ``polygon`` types.
"""
import logging
import re
import time
import uuid
from contextlib import contextmanager

import psycopg2
import psycopg2.extras
import psycopg2.pool
from psycopg2 import sql

from ..errors import StoreError
from ..filters import EventFilter
from ..models import Building, CheckinEvent, Participant, StatusEvent, TripEvent, Venue
from ..timebuckets import BucketMode
from .base import EventStore

logger = logging.getLogger(__name__)

_POINT_RE = re.compile(r"\(\s*([-+0-9.eE]+)\s*,\s*([-+0-9.eE]+)\s*\)")

_INSERTS = {
    Participant: (
        "INSERT INTO participants (participantid, householdsize, havekids, age, "
        "educationlevel, interestgroup, joviality) VALUES %s "
        "ON CONFLICT (participantid) DO NOTHING RETURNING 1",
        lambda p: (p.participant_id, p.household_size, p.have_kids, p.age,
                   p.education_level, p.interest_group, p.joviality),
        None,
    ),
    StatusEvent: (
        "INSERT INTO participantstatuslogs (timestamp, participantid, currentlocation, "
        "currentmode, availablebalance, financialstatus) VALUES %s "
        "ON CONFLICT (participantid, timestamp) DO NOTHING RETURNING 1",
        lambda e: (e.timestamp, e.participant_id,
                   None if e.position is None else "({},{})".format(*e.position),
                   e.mode, e.available_balance, e.financial_status),
        "(%s, %s, %s::point, %s, %s, %s)",
    ),
    CheckinEvent: (
        "INSERT INTO checkinjournal (participantid, timestamp, venueid, venuetype) VALUES %s "
        "ON CONFLICT (participantid, timestamp, venueid) DO NOTHING RETURNING 1",
        lambda c: (c.participant_id, c.timestamp, c.venue_id, c.venue_type),
        None,
    ),
    TripEvent: (
        "INSERT INTO traveljournal (participantid, travelstarttime, travelendtime, "
        "travelstartlocationid, travelendlocationid, purpose) VALUES %s "
        "ON CONFLICT (participantid, travelstarttime) DO NOTHING RETURNING 1",
        lambda t: (t.participant_id, t.start_time, t.end_time,
                   t.origin_building_id, t.destination_building_id, t.purpose),
        None,
    ),
    Building: (
        "INSERT INTO buildings (buildingid, location, buildingtype, maxoccupancy) VALUES %s "
        "ON CONFLICT (buildingid) DO NOTHING RETURNING 1",
        lambda b: (b.building_id,
                   "(" + ",".join("({},{})".format(x, y) for x, y in b.polygon) + ")",
                   b.building_type, b.max_occupancy),
        "(%s, %s::polygon, %s, %s)",
    ),
}


def parse_points(text):
    """Vertices of a Postgres ``point``/``polygon`` text value, e.g. ``((1,2),(3,4))``."""
    if text is None:
        return ()
    return tuple((float(x), float(y)) for x, y in _POINT_RE.findall(text))


def _cell_sql(axis, cell_size):
    """Grid index of a status row along one axis, matching grid.cell_of."""
    return sql.SQL("floor(currentlocation[{axis}] / {size}::float8)::int").format(
        axis=sql.Literal(axis),
        size=sql.Literal(cell_size),
    )


def _bucket_sql(width_minutes, mode=BucketMode.HOUR, column="timestamp"):
    """Bucket start of a row, matching timebuckets.bucket_of; NULL when not bucketing."""
    col = sql.Identifier(column)
    if width_minutes is None:
        return sql.SQL("NULL::timestamp")
    if BucketMode(mode) is BucketMode.EPOCH:
        return sql.SQL(
            "timestamp '1970-01-01' + make_interval(secs => (floor(extract(epoch from {col}) / {w}) * {w})::float8)"
        ).format(col=col, w=sql.Literal(width_minutes * 60))
    return sql.SQL(
        "date_trunc('hour', {col}) + make_interval(mins => (floor(extract(minute from {col}) / {w}) * {w})::int)"
    ).format(col=col, w=sql.Literal(width_minutes))


class PostgresEventStore(EventStore):
    def __init__(self, settings, pool=None):
        self.settings = settings
        self._pool = pool
        self._closed = False
        if self._pool is None:
            try:
                self._pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=settings.db_pool_min,
                    maxconn=settings.db_pool_max,
                    **settings.dsn_kwargs()
                )
            except psycopg2.Error as e:
                raise StoreError(f"cannot connect to {settings.db_host}:{settings.db_port}: {e}") from e
            logger.info(f"Connection pool opened to {settings.db_host}:{settings.db_port}/{settings.db_name}")

    def close(self):
        if not self._closed:
            self._pool.closeall()
            self._closed = True
            logger.info("Connection pool closed")

    @contextmanager
    def connection(self):
        """Borrow a pooled connection; it is always returned, rolled back on failure."""
        try:
            conn = self._pool.getconn()
        except psycopg2.Error as e:
            raise StoreError(f"no database connection available: {e}") from e
        try:
            yield conn
        except psycopg2.Error as e:
            conn.rollback()
            raise StoreError(f"query failed: {e}") from e
        finally:
            self._pool.putconn(conn)

    def _fetch(self, query, params=()):
        with self.connection() as conn:
            cur = conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                cur.execute(query, params)
                return cur.fetchall()
            finally:
                cur.close()

    def _stream(self, query, params=()):
        """Iterate a large result through a server-side cursor in batches."""
        t0 = time.time()
        count = 0
        with self.connection() as conn:
            cur = conn.cursor(
                name=f"scan_{uuid.uuid4().hex}",
                cursor_factory=psycopg2.extras.RealDictCursor,
            )
            cur.itersize = self.settings.scan_batch_size
            try:
                cur.execute(query, params)
                for row in cur:
                    count += 1
                    yield row
            finally:
                cur.close()
                conn.rollback()
        logger.info(f"Scan streamed in {time.time() - t0:.3f}s, rows = {count}")

    def scan_status(self, flt=EventFilter(), with_position=False, with_mode=False):
        where, params = flt.to_sql("timestamp", "participantid")
        query = sql.SQL("""
            SELECT
                timestamp,
                participantid,
                currentlocation[0] as x,
                currentlocation[1] as y,
                currentmode::text as mode,
                availablebalance,
                financialstatus::text as financialstatus
            FROM participantstatuslogs
            WHERE participantid IS NOT NULL {position} {mode} {where}
            ORDER BY timestamp, participantid
        """).format(
            position=sql.SQL("AND currentlocation IS NOT NULL" if with_position else ""),
            mode=sql.SQL("AND currentmode IS NOT NULL" if with_mode else ""),
            where=where,
        )
        for row in self._stream(query, params):
            position = None
            if row["x"] is not None and row["y"] is not None:
                position = (float(row["x"]), float(row["y"]))
            yield StatusEvent(
                timestamp=row["timestamp"],
                participant_id=row["participantid"],
                position=position,
                mode=row["mode"],
                available_balance=row["availablebalance"],
                financial_status=row["financialstatus"],
            )

    def scan_checkins(self, flt=EventFilter()):
        where, params = flt.to_sql("timestamp", "participantid", venue_type_column="venuetype")
        query = sql.SQL("""
            SELECT participantid, timestamp, venueid, venuetype::text as venuetype
            FROM checkinjournal
            WHERE participantid IS NOT NULL {where}
        """).format(where=where)
        for row in self._stream(query, params):
            yield CheckinEvent(
                participant_id=row["participantid"],
                timestamp=row["timestamp"],
                venue_id=row["venueid"],
                venue_type=row["venuetype"],
            )

    def scan_trips(self, flt=EventFilter()):
        where, params = flt.to_sql("travelstarttime", "participantid")
        query = sql.SQL("""
            SELECT
                participantid,
                travelstarttime,
                travelendtime,
                travelstartlocationid,
                travelendlocationid,
                purpose::text as purpose
            FROM traveljournal
            WHERE travelstartlocationid IS NOT NULL
              AND travelendlocationid IS NOT NULL {where}
        """).format(where=where)
        for row in self._stream(query, params):
            yield TripEvent(
                participant_id=row["participantid"],
                start_time=row["travelstarttime"],
                end_time=row["travelendtime"],
                origin_building_id=row["travelstartlocationid"],
                destination_building_id=row["travelendlocationid"],
                purpose=row["purpose"],
            )

    def participants(self):
        rows = self._fetch("""
            SELECT
                participantid,
                householdsize,
                havekids,
                age,
                educationlevel::text as educationlevel,
                interestgroup::text as interestgroup,
                joviality
            FROM participants
            ORDER BY participantid
        """)
        return [self._participant(row) for row in rows]

    def get_participant(self, participant_id):
        rows = self._fetch("""
            SELECT
                participantid,
                householdsize,
                havekids,
                age,
                educationlevel::text as educationlevel,
                interestgroup::text as interestgroup,
                joviality
            FROM participants
            WHERE participantid = %s
        """, (participant_id,))
        return self._participant(rows[0]) if rows else None

    @staticmethod
    def _participant(row):
        return Participant(
            participant_id=row["participantid"],
            household_size=row["householdsize"],
            have_kids=row["havekids"],
            age=row["age"],
            education_level=row["educationlevel"],
            interest_group=row["interestgroup"],
            joviality=row["joviality"],
        )

    def buildings(self):
        rows = self._fetch("""
            SELECT
                buildingid,
                location::text as location,
                buildingtype::text as buildingtype,
                maxoccupancy
            FROM buildings
            WHERE location IS NOT NULL
            ORDER BY buildingid
        """)
        buildings = []
        for row in rows:
            polygon = parse_points(row["location"])
            if not polygon:
                logger.warning(f"Skipping building {row['buildingid']} with unreadable polygon")
                continue
            buildings.append(Building(
                building_id=row["buildingid"],
                polygon=polygon,
                building_type=row["buildingtype"],
                max_occupancy=row["maxoccupancy"],
            ))
        return buildings

    def venues(self):
        rows = self._fetch("""
            SELECT pubid as venueid, 'Pub' as venuetype, buildingid FROM pubs
            UNION ALL
            SELECT restaurantid, 'Restaurant', buildingid FROM restaurants
            ORDER BY venuetype, venueid
        """)
        return [Venue(row["venueid"], row["venuetype"], row["buildingid"]) for row in rows]

    def load(self, records):
        by_kind = {}
        for record in records:
            by_kind.setdefault(type(record), []).append(record)
        for kind in by_kind:
            if kind not in _INSERTS:
                raise StoreError(f"cannot load records of type {kind.__name__}")

        inserted = 0
        with self.connection() as conn:
            cur = conn.cursor()
            try:
                for kind, batch in by_kind.items():
                    statement, to_row, template = _INSERTS[kind]
                    t0 = time.time()
                    returned = psycopg2.extras.execute_values(
                        cur, statement, [to_row(r) for r in batch],
                        template=template, page_size=self.settings.scan_batch_size,
                        fetch=True,
                    )
                    inserted += len(returned)
                    logger.info(
                        f"Loaded {kind.__name__} in {time.time() - t0:.3f}s, "
                        f"rows = {len(batch)}, inserted = {len(returned)}"
                    )
                conn.commit()
            finally:
                cur.close()
        return inserted

    # =============================================================
    # Grouped queries, aggregated server-side
    # =============================================================
    def _grouped(self, label, query, params, columns):
        t0 = time.time()
        rows = self._fetch(query, params)
        logger.info(f"{label} grouped in {time.time() - t0:.3f}s, rows = {len(rows)}")
        return [tuple(row[c] for c in columns) for row in rows]

    def cell_visitors(self, flt, cell_size, width_minutes=None, mode=BucketMode.HOUR, by_group=False):
        where, params = flt.to_sql("timestamp", "participantid")
        query = sql.SQL("""
            SELECT
                located.bucket,
                {group} as interest_group,
                located.grid_x,
                located.grid_y,
                COUNT(DISTINCT located.participantid) as participants
            FROM (
                SELECT
                    participantid,
                    {bucket} as bucket,
                    {gx} as grid_x,
                    {gy} as grid_y
                FROM participantstatuslogs
                WHERE participantid IS NOT NULL
                  AND currentlocation IS NOT NULL {where}
            ) located
            {join}
            GROUP BY 1, 2, 3, 4
        """).format(
            group=sql.SQL("p.interestgroup::text" if by_group else "NULL::text"),
            bucket=_bucket_sql(width_minutes, mode),
            gx=_cell_sql(0, cell_size),
            gy=_cell_sql(1, cell_size),
            where=where,
            join=sql.SQL("JOIN participants p ON p.participantid = located.participantid" if by_group else ""),
        )
        return self._grouped(
            "Cell visitors", query, params,
            ("bucket", "interest_group", "grid_x", "grid_y", "participants"),
        )

    def cell_participants(self, flt, cell_size, gx, gy, width_minutes=None, bucket=None, mode=BucketMode.HOUR):
        where, params = flt.to_sql("timestamp", "participantid")
        in_bucket = sql.SQL("")
        if bucket is not None:
            in_bucket = sql.SQL("AND {expr} = {target}").format(
                expr=_bucket_sql(width_minutes, mode),
                target=sql.Literal(bucket),
            )
        query = sql.SQL("""
            SELECT DISTINCT participantid
            FROM participantstatuslogs
            WHERE participantid IS NOT NULL
              AND currentlocation IS NOT NULL
              AND {gx_expr} = {gx}
              AND {gy_expr} = {gy} {in_bucket} {where}
            ORDER BY participantid
        """).format(
            gx_expr=_cell_sql(0, cell_size),
            gx=sql.Literal(gx),
            gy_expr=_cell_sql(1, cell_size),
            gy=sql.Literal(gy),
            in_bucket=in_bucket,
            where=where,
        )
        return [row[0] for row in self._grouped("Cell participants", query, params, ("participantid",))]

    def mode_participants(self, flt, width_minutes):
        where, params = flt.to_sql("timestamp", "participantid")
        query = sql.SQL("""
            SELECT
                {bucket} as bucket,
                currentmode::text as mode,
                COUNT(DISTINCT participantid) as participants
            FROM participantstatuslogs
            WHERE participantid IS NOT NULL
              AND currentmode IS NOT NULL {where}
            GROUP BY 1, 2
        """).format(bucket=_bucket_sql(width_minutes, BucketMode.HOUR), where=where)
        return self._grouped("Mode participants", query, params, ("bucket", "mode", "participants"))

    def mode_counts(self, flt, per_participant=False):
        where, params = flt.to_sql("timestamp", "participantid")
        query = sql.SQL("""
            SELECT
                {pid} as participantid,
                DATE(timestamp) as day,
                EXTRACT(HOUR FROM timestamp)::int as hour,
                currentmode::text as mode,
                COUNT(*) as observations
            FROM participantstatuslogs
            WHERE participantid IS NOT NULL
              AND currentmode IS NOT NULL {where}
            GROUP BY 1, 2, 3, 4
        """).format(
            pid=sql.SQL("participantid" if per_participant else "NULL::int"),
            where=where,
        )
        return self._grouped("Mode counts", query, params, ("participantid", "day", "hour", "mode", "observations"))

    def checkin_counts(self, flt):
        where, params = flt.to_sql("timestamp", "participantid", venue_type_column="venuetype")
        query = sql.SQL("""
            SELECT venuetype::text as venuetype, venueid, COUNT(*) as checkins
            FROM checkinjournal
            WHERE participantid IS NOT NULL {where}
            GROUP BY 1, 2
        """).format(where=where)
        return self._grouped("Check-ins", query, params, ("venuetype", "venueid", "checkins"))

    def position_extent(self, flt):
        where, params = flt.to_sql("timestamp", "participantid")
        query = sql.SQL("""
            SELECT
                COUNT(*) as points,
                SUM(currentlocation[0]) as sum_x,
                SUM(currentlocation[1]) as sum_y,
                MIN(currentlocation[0]) as min_x,
                MAX(currentlocation[0]) as max_x,
                MIN(currentlocation[1]) as min_y,
                MAX(currentlocation[1]) as max_y
            FROM participantstatuslogs
            WHERE participantid IS NOT NULL
              AND currentlocation IS NOT NULL {where}
        """).format(where=where)
        rows = self._grouped(
            "Position extent", query, params,
            ("points", "sum_x", "sum_y", "min_x", "max_x", "min_y", "max_y"),
        )
        return rows[0] if rows else (0, None, None, None, None, None, None)
