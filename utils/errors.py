"""
Booking error taxonomy.

Every error raised by the reservation engine carries a stable ``kind`` that
the HTTP layer and the UI key on; messages are defaults only.
"""


class BookingError(Exception):
    """Base class for reservation engine errors."""

    kind = 'error'
    retryable = False
    default_message = 'The operation could not be completed'

    def __init__(self, message: str = None, details: dict = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(BookingError):
    """Malformed input. Fatal, surfaced immediately."""

    kind = 'validation'
    default_message = 'Invalid input'


class NotFoundError(ValidationError):
    """Entity does not exist in the caller's venue."""

    kind = 'not_found'
    default_message = 'Not found'


class InvalidStateTransitionError(ValidationError):
    """Requested status change is not allowed from the current status."""

    kind = 'invalid_transition'
    default_message = 'Status change not allowed'


class ConflictError(BookingError):
    """Overlapping interval detected at commit time. Never retried automatically."""

    kind = 'conflict'
    default_message = 'This time slot is already booked.'


class AuthError(BookingError):
    """Expired or invalid session. Caller must sign out."""

    kind = 'auth'
    default_message = 'Your session has expired. Please sign in again.'


class AccessDeniedError(BookingError):
    """Venue membership or row-level access denied. Caller drops cached memberships."""

    kind = 'permission'
    default_message = 'You do not have permission to access this data.'


class TransientError(BookingError):
    """Backend or network failure that survived every retry."""

    kind = 'transient'
    retryable = True
    default_message = 'The service is temporarily unavailable. Please try again.'


__all__ = [
    'BookingError',
    'ValidationError',
    'NotFoundError',
    'InvalidStateTransitionError',
    'ConflictError',
    'AuthError',
    'AccessDeniedError',
    'TransientError',
]
