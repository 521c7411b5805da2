"""
Reservation engine public interface.

Re-exports the split modules so callers import from one place:
- reservation_availability.py: Interval overlap checks
- reservation_queries.py: Lookup and listing
- reservation_crud.py: Atomic create, update, delete, customer link
- reservation_state.py: Status transitions, history, calendar side effects
- reservation_recurring.py: Recurring series expansion and batch booking
"""

# Availability
from .reservation_availability import (
    RELEASING_STATUSES,
    intervals_overlap,
    find_conflicting_reservations,
    has_conflict,
)

# Queries
from .reservation_queries import (
    RESERVATION_STATUSES,
    get_reservation,
    list_reservations,
)

# CRUD operations
from .reservation_crud import (
    BOOKING_KINDS,
    create_reservation,
    update_reservation,
    delete_reservation,
    attach_customer,
    detach_customer,
)

# State management
from .reservation_state import (
    VALID_TRANSITIONS,
    TERMINAL_STATUSES,
    validate_state_transition,
    change_reservation_status,
    confirm_reservation,
    cancel_reservation,
    finalize_reservation,
    get_status_history,
)

# Recurring series
from .reservation_recurring import (
    RECURRENCE_TYPES,
    RecurringBookingReport,
    RecurringOccurrenceResult,
    generate_occurrences,
    create_recurring_reservations,
)

__all__ = [
    'RELEASING_STATUSES',
    'intervals_overlap',
    'find_conflicting_reservations',
    'has_conflict',
    'RESERVATION_STATUSES',
    'get_reservation',
    'list_reservations',
    'BOOKING_KINDS',
    'create_reservation',
    'update_reservation',
    'delete_reservation',
    'attach_customer',
    'detach_customer',
    'VALID_TRANSITIONS',
    'TERMINAL_STATUSES',
    'validate_state_transition',
    'change_reservation_status',
    'confirm_reservation',
    'cancel_reservation',
    'finalize_reservation',
    'get_status_history',
    'RECURRENCE_TYPES',
    'RecurringBookingReport',
    'RecurringOccurrenceResult',
    'generate_occurrences',
    'create_recurring_reservations',
]
