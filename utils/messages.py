"""
Centralized UI messages.
The booking engine reports stable kinds; user-facing text lives here.
"""

MESSAGES = {
    # Success messages
    'login_success': 'Welcome {name}',
    'logout_success': 'Signed out',
    'reservation_created': 'Reservation created',
    'reservation_updated': 'Reservation updated',
    'reservation_deleted': 'Reservation deleted',
    'reservation_confirmed': 'Reservation confirmed',
    'reservation_cancelled': 'Reservation cancelled',
    'reservation_finalized': 'Reservation finalized',
    'reservation_unchanged': 'Reservation already {status}',
    'customer_attached': 'Customer linked to reservation',
    'customer_detached': 'Customer unlinked from reservation',
    'service_order_created': 'Service order created',
    'service_order_updated': 'Service order updated',

    # Recurring series outcomes
    'recurring_created': '{count} reservations created',
    'recurring_partial': '{count} reservations created, {failed} dates ignored (conflicts or past dates)',
    'recurring_none': 'No reservations created: every date conflicts or is in the past',

    # Error kinds
    'invalid_credentials': 'Invalid username or password',
    'validation': 'Invalid input',
    'not_found': 'Not found',
    'invalid_transition': 'Status change not allowed',
    'conflict': 'This time slot is already booked.',
    'conflict_detail': '{resource} is already booked between {start} and {end}.',
    'auth': 'Your session has expired. Please sign in again.',
    'permission': 'You do not have permission to access this data.',
    'transient': 'The service is temporarily unavailable. Please try again.',
    'error': 'The operation could not be completed',

    # Warnings
    'calendar_sync_failed': 'Saved, but the external calendar could not be updated',
}


def get_message(key: str, **kwargs) -> str:
    """
    Get message with optional formatting.

    Args:
        key: Message key
        **kwargs: Format parameters

    Returns:
        Formatted message or key if not found
    """
    message = MESSAGES.get(key, key)
    if kwargs:
        return message.format(**kwargs)
    return message
