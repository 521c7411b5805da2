"""
Reservation state management functions.
Handles status transitions, history, and the calendar side effects each
transition triggers.

    PENDING   -> CONFIRMED  calendar create
    CONFIRMED -> CONFIRMED  calendar update (or create if never synced and
                            no create is still queued)
    CONFIRMED -> CANCELLED  calendar delete, if linked
    CONFIRMED -> FINALIZED  calendar delete, if linked
    PENDING   -> CANCELLED  calendar delete, if linked

CANCELLED and FINALIZED are terminal. Side effects run after commit and
never fail the transition.
"""

import logging

from database import get_db, resource_lock
from models.calendar_sync import enqueue_calendar_sync, sync_enabled
from models.reservation_queries import RESERVATION_STATUSES, fetch_reservation
from models.venue import require_venue_access
from utils.error_classifier import with_retry
from utils.errors import InvalidStateTransitionError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

VALID_TRANSITIONS = {
    'PENDING': ('CONFIRMED', 'CANCELLED'),
    'CONFIRMED': ('CONFIRMED', 'CANCELLED', 'FINALIZED'),
    'CANCELLED': (),
    'FINALIZED': (),
}

TERMINAL_STATUSES = ('CANCELLED', 'FINALIZED')

SYNC_WARNING = 'calendar_sync_failed'


# =============================================================================
# TRANSITION RULES
# =============================================================================

def validate_state_transition(current_status: str, new_status: str) -> None:
    """
    Check a status change against the state machine.

    Raises:
        ValidationError: If new_status is not a known status
        InvalidStateTransitionError: If the change is not allowed
    """
    if new_status not in RESERVATION_STATUSES:
        raise ValidationError(f'Invalid status: {new_status}', details={'status': new_status})

    if new_status not in VALID_TRANSITIONS.get(current_status, ()):
        raise InvalidStateTransitionError(
            f'Cannot change status from {current_status} to {new_status}',
            details={'from': current_status, 'to': new_status}
        )


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def record_status_change(cursor, reservation_id: int, from_status: str, to_status: str,
                         changed_by: str = None, notes: str = None):
    """Append a status history entry within the caller's transaction."""
    cursor.execute('''
        INSERT INTO reservation_status_history
        (reservation_id, from_status, to_status, changed_by, notes)
        VALUES (?, ?, ?, ?, ?)
    ''', (reservation_id, from_status, to_status, changed_by, notes))


# =============================================================================
# SIDE EFFECTS
# =============================================================================

def calendar_action_for(before: dict, after: dict) -> str:
    """
    Calendar action implied by a committed change.

    Args:
        before: Reservation before the change (None for a new reservation)
        after: Reservation as committed

    Returns:
        'create', 'update', 'delete' or None
    """
    status = after['status']
    previous = before['status'] if before else None
    linked = bool((before or after).get('external_event_id'))

    if status == 'CONFIRMED':
        if previous == 'CONFIRMED' and linked:
            return 'update'
        return 'create'

    if status in TERMINAL_STATUSES and previous != status and linked:
        return 'delete'

    return None


def fire_side_effects(before: dict, after: dict) -> list:
    """
    Queue the calendar side effect for a committed change.

    Returns:
        list: Non-fatal warnings for the caller's outcome
    """
    action = calendar_action_for(before, after)
    if action is None or not sync_enabled():
        return []

    if enqueue_calendar_sync(after, action) is None:
        logger.warning("Reservation %s committed without calendar %s", after['id'], action)
        return [SYNC_WARNING]
    return []


# =============================================================================
# STATE TRANSITIONS
# =============================================================================

@with_retry()
def change_reservation_status(
    tenant_id: int,
    reservation_id: int,
    new_status: str,
    changed_by: str = None,
    notes: str = None,
    user_id: int = None
) -> dict:
    """
    Move a reservation to a new status.

    Re-applying the current status is a no-op: nothing is written and no
    side effect fires, so cancelling twice is safe.

    Args:
        tenant_id: Venue ID
        reservation_id: Reservation ID
        new_status: Target status
        changed_by: Username for history
        notes: History notes
        user_id: Acting user, re-checked for venue membership

    Returns:
        dict: Reservation after the change, plus 'changed' (bool) and
        'warnings' (list)

    Raises:
        NotFoundError: If the reservation is not in this venue
        InvalidStateTransitionError: If the change is not allowed
    """
    if new_status not in RESERVATION_STATUSES:
        raise ValidationError(f'Invalid status: {new_status}', details={'status': new_status})

    current = fetch_reservation(get_db().cursor(), tenant_id, reservation_id)
    if current is None:
        raise NotFoundError('Reservation not found', details={'reservation_id': reservation_id})

    with resource_lock(current['resource_id'], tenant_id) as (cursor, _resource):
        require_venue_access(tenant_id, user_id, cursor=cursor)

        before = fetch_reservation(cursor, tenant_id, reservation_id)
        if before is None:
            raise NotFoundError('Reservation not found', details={'reservation_id': reservation_id})

        if before['status'] == new_status:
            before['changed'] = False
            before['warnings'] = []
            return before

        validate_state_transition(before['status'], new_status)

        cursor.execute('''
            UPDATE reservations
            SET status = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
        ''', (new_status, reservation_id))
        record_status_change(cursor, reservation_id, before['status'], new_status, changed_by, notes)

        after = fetch_reservation(cursor, tenant_id, reservation_id)

    logger.info("Reservation %s: %s -> %s by %s",
                reservation_id, before['status'], new_status, changed_by or 'system')

    after['changed'] = True
    after['warnings'] = fire_side_effects(before, after)
    return after


def confirm_reservation(tenant_id: int, reservation_id: int, changed_by: str = None,
                        notes: str = None, user_id: int = None) -> dict:
    """PENDING -> CONFIRMED."""
    return change_reservation_status(tenant_id, reservation_id, 'CONFIRMED',
                                     changed_by=changed_by, notes=notes, user_id=user_id)


def cancel_reservation(tenant_id: int, reservation_id: int, changed_by: str = None,
                       notes: str = None, user_id: int = None) -> dict:
    """Cancel and release the slot. Idempotent."""
    return change_reservation_status(tenant_id, reservation_id, 'CANCELLED',
                                     changed_by=changed_by, notes=notes, user_id=user_id)


def finalize_reservation(tenant_id: int, reservation_id: int, changed_by: str = None,
                         notes: str = None, user_id: int = None) -> dict:
    """CONFIRMED -> FINALIZED."""
    return change_reservation_status(tenant_id, reservation_id, 'FINALIZED',
                                     changed_by=changed_by, notes=notes, user_id=user_id)


# =============================================================================
# HISTORY
# =============================================================================

def get_status_history(reservation_id: int) -> list:
    """
    Get status change history for reservation.

    Args:
        reservation_id: Reservation ID

    Returns:
        list: History entries, newest first
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM reservation_status_history
        WHERE reservation_id = ?
        ORDER BY created_at DESC, id DESC
    ''', (reservation_id,))
    return [dict(r) for r in cursor.fetchall()]
