"""
Reservation query functions.
Handles lookup and listing for calendar views. Reads take no lock and may
observe a slightly stale view.
"""

import json

from database import get_db
from models.venue import get_venue_timezone_name
from utils.datetime_helpers import format_timestamp, get_timezone, to_utc
from utils.error_classifier import with_retry
from utils.errors import ValidationError

RESERVATION_STATUSES = ('PENDING', 'CONFIRMED', 'CANCELLED', 'FINALIZED')


# =============================================================================
# ROW HELPERS
# =============================================================================

def decode_reservation(row) -> dict:
    """Convert a reservations row to a dict with metadata decoded."""
    reservation = dict(row)
    raw = reservation.get('metadata')
    reservation['metadata'] = json.loads(raw) if raw else {}
    return reservation


def fetch_reservation(cursor, tenant_id: int, reservation_id: int) -> dict:
    """
    Read a reservation through an existing cursor (inside a transaction).

    Returns:
        Reservation dict or None if it does not exist in this venue
    """
    cursor.execute('''
        SELECT * FROM reservations WHERE id = ? AND venue_id = ?
    ''', (reservation_id, tenant_id))
    row = cursor.fetchone()
    return decode_reservation(row) if row else None


# =============================================================================
# PUBLIC QUERIES
# =============================================================================

@with_retry()
def get_reservation(tenant_id: int, reservation_id: int) -> dict:
    """
    Get a reservation with resource and professional names.

    Returns:
        Reservation dict or None if not found in this venue
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT r.*,
               res.name AS resource_name,
               pro.name AS professional_name
        FROM reservations r
        JOIN resources res ON res.id = r.resource_id
        LEFT JOIN resources pro ON pro.id = r.professional_id
        WHERE r.id = ? AND r.venue_id = ?
    ''', (reservation_id, tenant_id))
    row = cursor.fetchone()
    return decode_reservation(row) if row else None


@with_retry()
def list_reservations(
    tenant_id: int,
    resource_id: int = None,
    start=None,
    end=None,
    status: str = None,
    customer_id: int = None,
    include_cancelled: bool = False
) -> list:
    """
    List a venue's reservations, optionally restricted to a window.

    A reservation is in the window when it overlaps [start, end).

    Args:
        tenant_id: Venue ID
        resource_id: Filter by resource
        start: Window start (datetime or ISO string, venue-local when naive)
        end: Window end (exclusive)
        status: Filter by status
        customer_id: Filter by linked customer
        include_cancelled: Include CANCELLED reservations

    Returns:
        List of reservation dicts ordered by start_time
    """
    if status and status not in RESERVATION_STATUSES:
        raise ValidationError(f'Invalid status: {status}', details={'status': status})

    tz = None
    if start or end:
        tz = get_timezone(get_venue_timezone_name(tenant_id))

    db = get_db()
    cursor = db.cursor()

    query = '''
        SELECT r.*, res.name AS resource_name
        FROM reservations r
        JOIN resources res ON res.id = r.resource_id
        WHERE r.venue_id = ?
    '''
    params = [tenant_id]

    if resource_id:
        query += ' AND r.resource_id = ?'
        params.append(resource_id)

    if end:
        query += ' AND r.start_time < ?'
        params.append(format_timestamp(to_utc(end, tz)))

    if start:
        query += ' AND r.end_time > ?'
        params.append(format_timestamp(to_utc(start, tz)))

    if status:
        query += ' AND r.status = ?'
        params.append(status)
    elif not include_cancelled:
        query += " AND r.status != 'CANCELLED'"

    if customer_id:
        query += ' AND r.customer_id = ?'
        params.append(customer_id)

    query += ' ORDER BY r.start_time, r.id'

    cursor.execute(query, params)
    return [decode_reservation(row) for row in cursor.fetchall()]
