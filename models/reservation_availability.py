"""
Interval overlap checking.
Decides whether a proposed [start, end) interval collides with existing
reservations on a resource.

Two half-open intervals [s1, e1) and [s2, e2) overlap iff s1 < e2 and s2 < e1,
so back-to-back bookings (10:00-11:00, 11:00-12:00) never conflict.

Only CANCELLED reservations release their slot. FINALIZED ones keep it: a
finished booking still occupied the resource.
"""

from datetime import datetime

from database import get_db
from utils.datetime_helpers import format_timestamp

RELEASING_STATUSES = ('CANCELLED',)


def intervals_overlap(start_a: datetime, end_a: datetime,
                      start_b: datetime, end_b: datetime) -> bool:
    """Half-open interval overlap test."""
    return start_a < end_b and start_b < end_a


def find_conflicting_reservations(
    resource_id: int,
    start: datetime,
    end: datetime,
    exclude_reservation_id: int = None,
    cursor=None
) -> list:
    """
    Get reservations on a resource that overlap [start, end).

    Must be called with the cursor of the transaction that holds the resource
    lock when the result decides a write, so the check and the write see the
    same rows.

    Args:
        resource_id: Resource to check
        start: Interval start (aware datetime)
        end: Interval end (aware datetime, exclusive)
        exclude_reservation_id: Reservation to ignore (re-checking an update)
        cursor: Active transaction cursor (default: a new cursor, no lock)

    Returns:
        list: Conflicting reservation dicts (id, start_time, end_time, status,
        customer_name), ordered by start_time
    """
    cur = cursor or get_db().cursor()

    placeholders = ','.join('?' * len(RELEASING_STATUSES))
    query = f'''
        SELECT id, start_time, end_time, status, customer_name
        FROM reservations
        WHERE resource_id = ?
          AND status NOT IN ({placeholders})
          AND start_time < ?
          AND end_time > ?
    '''
    params = [resource_id, *RELEASING_STATUSES, format_timestamp(end), format_timestamp(start)]

    if exclude_reservation_id:
        query += ' AND id != ?'
        params.append(exclude_reservation_id)

    query += ' ORDER BY start_time'

    cur.execute(query, params)
    return [dict(row) for row in cur.fetchall()]


def has_conflict(
    resource_id: int,
    start: datetime,
    end: datetime,
    exclude_reservation_id: int = None,
    cursor=None
) -> bool:
    """
    Check whether [start, end) collides with a live reservation on the resource.

    Returns:
        bool: True if at least one non-cancelled reservation overlaps
    """
    return bool(find_conflicting_reservations(
        resource_id, start, end,
        exclude_reservation_id=exclude_reservation_id,
        cursor=cursor
    ))
