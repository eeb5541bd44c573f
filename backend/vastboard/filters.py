"""
Structured scan filters.

An EventFilter is an AND of optional predicates. The same object is evaluated
against in-memory records and compiled to a parameterized SQL fragment, so no user
value is ever spliced into query text.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, Optional

from psycopg2 import sql

from .errors import InputError


@dataclass(frozen=True)
class EventFilter:
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    participant_ids: Optional[FrozenSet[int]] = None
    interest_groups: Optional[FrozenSet[str]] = None
    venue_type: Optional[str] = None

    def __post_init__(self):
        if self.start is not None and self.end is not None and self.start > self.end:
            raise InputError("start must not be after end")
        if self.participant_ids is not None:
            object.__setattr__(self, "participant_ids", frozenset(self.participant_ids))
        if self.interest_groups is not None:
            object.__setattr__(self, "interest_groups", frozenset(self.interest_groups))

    def in_range(self, ts):
        if self.start is not None and ts < self.start:
            return False
        if self.end is not None and ts > self.end:
            return False
        return True

    def allows_participant(self, participant_id, groups=None):
        """
        groups maps participant id to interest group; it is only consulted when the
        filter restricts interest groups.
        """
        if self.participant_ids is not None and participant_id not in self.participant_ids:
            return False
        if self.interest_groups is not None:
            if groups is None or groups.get(participant_id) not in self.interest_groups:
                return False
        return True

    def allows_venue(self, venue_type):
        return self.venue_type is None or venue_type == self.venue_type

    def to_sql(self, time_column="timestamp", participant_column="participantid",
               venue_type_column=None):
        """
        Compile to ``(Composable, params)``; the fragment starts with ``AND`` or is
        empty, ready to follow a ``WHERE`` clause.
        """
        clauses = []
        params = []
        if self.start is not None:
            clauses.append(sql.SQL("{} >= %s").format(sql.Identifier(time_column)))
            params.append(self.start)
        if self.end is not None:
            clauses.append(sql.SQL("{} <= %s").format(sql.Identifier(time_column)))
            params.append(self.end)
        if self.participant_ids is not None:
            clauses.append(sql.SQL("{} = ANY(%s)").format(sql.Identifier(participant_column)))
            params.append(sorted(self.participant_ids))
        if self.interest_groups is not None:
            clauses.append(sql.SQL(
                "{} IN (SELECT participantid FROM participants WHERE interestgroup::text = ANY(%s))"
            ).format(sql.Identifier(participant_column)))
            params.append(sorted(self.interest_groups))
        if self.venue_type is not None and venue_type_column is not None:
            clauses.append(sql.SQL("{}::text = %s").format(sql.Identifier(venue_type_column)))
            params.append(self.venue_type)

        if not clauses:
            return sql.SQL(""), params
        return sql.SQL(" AND ") + sql.SQL(" AND ").join(clauses), params
