"""
Reservation CRUD operations.

Every write runs inside resource_lock: the overlap check and the write share
one BEGIN IMMEDIATE transaction, so two requests for the same slot can never
both commit. Calendar side effects are queued only after the commit.
"""

import json
import logging

from database import get_db, resource_lock
from models.calendar_sync import enqueue_calendar_sync, sync_enabled
from models.pricing import compute_resource_total
from models.reservation_availability import find_conflicting_reservations
from models.reservation_queries import fetch_reservation
from models.reservation_state import (
    SYNC_WARNING,
    fire_side_effects,
    is_terminal,
    record_status_change,
)
from models.venue import get_venue_timezone_name, require_venue_access
from utils.datetime_helpers import format_timestamp, get_timezone, to_utc
from utils.error_classifier import with_retry
from utils.errors import ConflictError, NotFoundError, ValidationError
from utils.validators import (
    sanitize_input,
    validate_amount,
    validate_email,
    validate_phone,
    validate_positive_integer,
    validate_time_range,
)

logger = logging.getLogger(__name__)

BOOKING_KINDS = ('space', 'service')
INITIAL_STATUSES = ('PENDING', 'CONFIRMED')

UPDATABLE_FIELDS = (
    'resource_id', 'professional_id', 'start', 'end', 'customer_name',
    'customer_email', 'customer_phone', 'notes', 'metadata', 'booking_kind',
    'rate_per_hour'
)


# =============================================================================
# VALIDATION HELPERS
# =============================================================================

def _require_id(value, field_name: str) -> int:
    valid, parsed, err = validate_positive_integer(value, field_name)
    if not valid:
        raise ValidationError(err, details={field_name: value})
    return parsed


def _resolve_interval(tenant_id: int, start, end) -> tuple:
    """Normalize start/end to UTC using the venue timezone for naive input."""
    tz = get_timezone(get_venue_timezone_name(tenant_id))
    # Stored at second precision, so validate what will be stored
    start_utc = to_utc(start, tz).replace(microsecond=0)
    end_utc = to_utc(end, tz).replace(microsecond=0)
    if not validate_time_range(start_utc, end_utc):
        raise ValidationError('Start must be before end', details={
            'start': format_timestamp(start_utc), 'end': format_timestamp(end_utc)
        })
    return start_utc, end_utc


def _clean_customer(name: str, email: str = None, phone: str = None) -> tuple:
    name = sanitize_input(name, max_length=200)
    if not name:
        raise ValidationError('Customer name is required')
    email = sanitize_input(email, max_length=200) or None
    if email and not validate_email(email):
        raise ValidationError('Invalid email format', details={'email': email})
    phone = sanitize_input(phone, max_length=40) or None
    if phone and not validate_phone(phone):
        raise ValidationError('Invalid phone format', details={'phone': phone})
    return name, email, phone


def _clean_rate(rate):
    if rate is None:
        return None
    valid, amount, err = validate_amount(rate, 'rate_per_hour')
    if not valid:
        raise ValidationError(err, details={'rate_per_hour': rate})
    return amount


def _encode_metadata(metadata) -> str:
    if metadata is None:
        return None
    if not isinstance(metadata, dict):
        raise ValidationError('metadata must be an object')
    return json.dumps(metadata)


def _check_bookable(resource: dict, resource_id: int):
    if resource is None:
        raise NotFoundError('Resource not found', details={'resource_id': resource_id})
    if not resource['active']:
        raise ValidationError('Resource is inactive', details={'resource_id': resource_id})


def _check_professional(cursor, tenant_id: int, professional_id: int):
    if professional_id is None:
        return
    cursor.execute('''
        SELECT kind, active FROM resources WHERE id = ? AND venue_id = ?
    ''', (professional_id, tenant_id))
    row = cursor.fetchone()
    if row is None:
        raise NotFoundError('Professional not found', details={'professional_id': professional_id})
    if row['kind'] != 'professional' or not row['active']:
        raise ValidationError('Not an active professional', details={'professional_id': professional_id})


def _check_customer(cursor, tenant_id: int, customer_id: int):
    if customer_id is None:
        return
    cursor.execute('''
        SELECT id FROM customers WHERE id = ? AND venue_id = ?
    ''', (customer_id, tenant_id))
    if cursor.fetchone() is None:
        raise NotFoundError('Customer not found', details={'customer_id': customer_id})


def _raise_if_conflicting(cursor, resource: dict, start, end, exclude_reservation_id=None):
    conflicts = find_conflicting_reservations(
        resource['id'], start, end,
        exclude_reservation_id=exclude_reservation_id,
        cursor=cursor
    )
    if conflicts:
        raise ConflictError(details={
            'resource_id': resource['id'],
            'resource_name': resource['name'],
            'start': format_timestamp(start),
            'end': format_timestamp(end),
            'conflicts': [
                {'id': c['id'], 'start_time': c['start_time'], 'end_time': c['end_time']}
                for c in conflicts
            ],
        })


# =============================================================================
# CREATE
# =============================================================================

@with_retry()
def create_reservation(
    tenant_id: int,
    resource_id: int,
    customer_name: str,
    start,
    end,
    status: str = 'CONFIRMED',
    professional_id: int = None,
    customer_id: int = None,
    customer_email: str = None,
    customer_phone: str = None,
    notes: str = None,
    metadata: dict = None,
    booking_kind: str = 'space',
    rate_per_hour=None,
    created_by: str = None,
    user_id: int = None
) -> dict:
    """
    Atomically check for overlaps and create a reservation.

    Args:
        tenant_id: Venue ID
        resource_id: Space or professional being booked
        customer_name: Customer display name
        start: Start (datetime or ISO string, venue-local when naive)
        end: End, exclusive
        status: 'CONFIRMED' (default) or 'PENDING'
        professional_id: Professional attending (optional)
        customer_id: Linked customer record (optional)
        customer_email: Contact email (optional)
        customer_phone: Contact phone (optional)
        notes: Free text
        metadata: Segment-specific fields
        booking_kind: 'space' or 'service'
        rate_per_hour: Rate used instead of the resource's rate
        created_by: Username for attribution
        user_id: Acting user, re-checked for venue membership

    Returns:
        dict: The committed reservation plus 'warnings' (list)

    Raises:
        ValidationError: Malformed input or inactive resource
        NotFoundError: Resource, professional or customer not in this venue
        ConflictError: The interval overlaps a live reservation
    """
    tenant_id = _require_id(tenant_id, 'tenant_id')
    resource_id = _require_id(resource_id, 'resource_id')
    if professional_id is not None:
        professional_id = _require_id(professional_id, 'professional_id')
    if customer_id is not None:
        customer_id = _require_id(customer_id, 'customer_id')

    if status not in INITIAL_STATUSES:
        raise ValidationError(f'Invalid initial status: {status}', details={'status': status})
    if booking_kind not in BOOKING_KINDS:
        raise ValidationError(f'Invalid booking kind: {booking_kind}',
                              details={'booking_kind': booking_kind})

    customer_name, customer_email, customer_phone = _clean_customer(
        customer_name, customer_email, customer_phone
    )
    rate = _clean_rate(rate_per_hour)
    metadata_json = _encode_metadata(metadata)
    start_utc, end_utc = _resolve_interval(tenant_id, start, end)

    with resource_lock(resource_id, tenant_id) as (cursor, resource):
        require_venue_access(tenant_id, user_id, cursor=cursor)
        _check_bookable(resource, resource_id)
        _check_professional(cursor, tenant_id, professional_id)
        _check_customer(cursor, tenant_id, customer_id)
        _raise_if_conflicting(cursor, resource, start_utc, end_utc)

        space_total = compute_resource_total(resource, start_utc, end_utc, rate_override=rate)

        cursor.execute('''
            INSERT INTO reservations (
                venue_id, resource_id, professional_id, customer_id,
                customer_name, customer_email, customer_phone,
                start_time, end_time, status, booking_kind,
                space_total, grand_total, metadata, notes, created_by
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            tenant_id, resource_id, professional_id, customer_id,
            customer_name, customer_email, customer_phone,
            format_timestamp(start_utc), format_timestamp(end_utc), status, booking_kind,
            float(space_total), float(space_total), metadata_json, notes, created_by
        ))
        reservation_id = cursor.lastrowid

        record_status_change(cursor, reservation_id, None, status, created_by, 'Reservation created')
        reservation = fetch_reservation(cursor, tenant_id, reservation_id)

    logger.info("Reservation %s created on resource %s [%s, %s) by %s",
                reservation_id, resource_id, reservation['start_time'],
                reservation['end_time'], created_by or 'system')

    reservation['warnings'] = fire_side_effects(None, reservation)
    return reservation


# =============================================================================
# UPDATE
# =============================================================================

@with_retry()
def update_reservation(
    tenant_id: int,
    reservation_id: int,
    changed_by: str = None,
    user_id: int = None,
    **fields
) -> dict:
    """
    Change a live reservation's interval, resource or details.

    The overlap check is repeated (excluding the reservation itself) whenever
    the interval or resource changes, and the total is recomputed when the
    interval, resource or rate changes.

    Args:
        tenant_id: Venue ID
        reservation_id: Reservation ID
        changed_by: Username for attribution
        user_id: Acting user, re-checked for venue membership
        **fields: Any of UPDATABLE_FIELDS

    Returns:
        dict: The committed reservation plus 'warnings' (list)

    Raises:
        ValidationError: Unknown field, malformed value, or terminal reservation
        NotFoundError: Reservation or referenced entity not in this venue
        ConflictError: The new interval overlaps another live reservation
    """
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f'Cannot update fields: {", ".join(sorted(unknown))}',
                              details={'fields': sorted(unknown)})

    current = fetch_reservation(get_db().cursor(), tenant_id, reservation_id)
    if current is None:
        raise NotFoundError('Reservation not found', details={'reservation_id': reservation_id})

    target_resource_id = current['resource_id']
    if fields.get('resource_id') is not None:
        target_resource_id = _require_id(fields['resource_id'], 'resource_id')

    rate = _clean_rate(fields.get('rate_per_hour'))
    if 'booking_kind' in fields and fields['booking_kind'] not in BOOKING_KINDS:
        raise ValidationError(f'Invalid booking kind: {fields["booking_kind"]}')

    with resource_lock(target_resource_id, tenant_id) as (cursor, resource):
        require_venue_access(tenant_id, user_id, cursor=cursor)

        before = fetch_reservation(cursor, tenant_id, reservation_id)
        if before is None:
            raise NotFoundError('Reservation not found', details={'reservation_id': reservation_id})
        if is_terminal(before['status']):
            raise ValidationError(f'Cannot modify a {before["status"].lower()} reservation',
                                  details={'status': before['status']})

        if resource is None:
            raise NotFoundError('Resource not found', details={'resource_id': target_resource_id})

        start_utc, end_utc = _resolve_interval(
            tenant_id,
            fields.get('start') or before['start_time'],
            fields.get('end') or before['end_time']
        )

        interval_changed = (
            format_timestamp(start_utc) != before['start_time']
            or format_timestamp(end_utc) != before['end_time']
            or target_resource_id != before['resource_id']
        )
        if interval_changed:
            _check_bookable(resource, target_resource_id)
            _raise_if_conflicting(cursor, resource, start_utc, end_utc,
                                  exclude_reservation_id=reservation_id)

        updates = {}
        if interval_changed or rate is not None:
            space_total = compute_resource_total(resource, start_utc, end_utc, rate_override=rate)
            updates['space_total'] = float(space_total)
            updates['grand_total'] = float(space_total)
        if interval_changed:
            updates['resource_id'] = target_resource_id
            updates['start_time'] = format_timestamp(start_utc)
            updates['end_time'] = format_timestamp(end_utc)

        if 'professional_id' in fields:
            professional_id = fields['professional_id']
            if professional_id is not None:
                professional_id = _require_id(professional_id, 'professional_id')
            _check_professional(cursor, tenant_id, professional_id)
            updates['professional_id'] = professional_id

        if {'customer_name', 'customer_email', 'customer_phone'} & set(fields):
            name, email, phone = _clean_customer(
                fields.get('customer_name', before['customer_name']),
                fields.get('customer_email', before['customer_email']),
                fields.get('customer_phone', before['customer_phone'])
            )
            updates.update(customer_name=name, customer_email=email, customer_phone=phone)

        if 'notes' in fields:
            updates['notes'] = fields['notes']
        if 'metadata' in fields:
            updates['metadata'] = _encode_metadata(fields['metadata'])
        if 'booking_kind' in fields:
            updates['booking_kind'] = fields['booking_kind']

        if not updates:
            before['warnings'] = []
            return before

        set_clause = ', '.join(f'{column} = ?' for column in updates)
        cursor.execute(f'''
            UPDATE reservations
            SET {set_clause}, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
        ''', (*updates.values(), reservation_id))

        after = fetch_reservation(cursor, tenant_id, reservation_id)

    logger.info("Reservation %s updated by %s: %s",
                reservation_id, changed_by or 'system', ', '.join(sorted(updates)))

    after['warnings'] = fire_side_effects(before, after)
    return after


# =============================================================================
# CUSTOMER LINK
# =============================================================================

@with_retry()
def attach_customer(tenant_id: int, reservation_id: int, customer_id: int,
                    user_id: int = None) -> dict:
    """
    Link a reservation to a customer record of the same venue.

    Returns:
        dict: Updated reservation
    """
    customer_id = _require_id(customer_id, 'customer_id')

    db = get_db()
    cursor = db.cursor()
    require_venue_access(tenant_id, user_id, cursor=cursor)
    _check_customer(cursor, tenant_id, customer_id)

    cursor.execute('''
        UPDATE reservations
        SET customer_id = ?, updated_at = CURRENT_TIMESTAMP
        WHERE id = ? AND venue_id = ?
    ''', (customer_id, reservation_id, tenant_id))
    if cursor.rowcount == 0:
        raise NotFoundError('Reservation not found', details={'reservation_id': reservation_id})

    return fetch_reservation(cursor, tenant_id, reservation_id)


@with_retry()
def detach_customer(tenant_id: int, reservation_id: int, user_id: int = None) -> dict:
    """Remove the customer record link; name and contact fields stay."""
    db = get_db()
    cursor = db.cursor()
    require_venue_access(tenant_id, user_id, cursor=cursor)

    cursor.execute('''
        UPDATE reservations
        SET customer_id = NULL, updated_at = CURRENT_TIMESTAMP
        WHERE id = ? AND venue_id = ?
    ''', (reservation_id, tenant_id))
    if cursor.rowcount == 0:
        raise NotFoundError('Reservation not found', details={'reservation_id': reservation_id})

    return fetch_reservation(cursor, tenant_id, reservation_id)


# =============================================================================
# DELETE
# =============================================================================

@with_retry()
def delete_reservation(tenant_id: int, reservation_id: int, user_id: int = None) -> dict:
    """
    Hard-delete a reservation.

    A linked calendar event is queued for deletion in the same transaction,
    before the row is removed, so the job keeps a snapshot of the fields.

    Returns:
        dict: {'deleted': True, 'reservation_id', 'warnings'}
    """
    current = fetch_reservation(get_db().cursor(), tenant_id, reservation_id)
    if current is None:
        raise NotFoundError('Reservation not found', details={'reservation_id': reservation_id})

    warnings = []
    with resource_lock(current['resource_id'], tenant_id) as (cursor, _resource):
        require_venue_access(tenant_id, user_id, cursor=cursor)

        reservation = fetch_reservation(cursor, tenant_id, reservation_id)
        if reservation is None:
            raise NotFoundError('Reservation not found', details={'reservation_id': reservation_id})

        if reservation['external_event_id'] and sync_enabled():
            if enqueue_calendar_sync(reservation, 'delete') is None:
                warnings.append(SYNC_WARNING)

        cursor.execute('DELETE FROM reservations WHERE id = ?', (reservation_id,))

    logger.info("Reservation %s deleted", reservation_id)
    return {'deleted': True, 'reservation_id': reservation_id, 'warnings': warnings}
