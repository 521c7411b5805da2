"""
Backend error classification and retry policy.

Applied at every read/write boundary that touches reservation data:

    AUTH        expired/invalid session        -> sign out, never retried
    PERMISSION  row-level / membership denied  -> drop cached memberships, never retried
    TRANSIENT   any other backend failure      -> retried with backoff
    VALIDATION / CONFLICT                      -> engine decisions, never retried
    FATAL       programming errors and constraint violations -> propagated untouched

Usage:
    from utils.error_classifier import with_retry

    @with_retry()
    def create_reservation(...):
        ...
"""

import logging
import sqlite3
import time
from enum import Enum
from functools import wraps

from flask import current_app, has_app_context

from utils.errors import (
    AccessDeniedError,
    AuthError,
    BookingError,
    ConflictError,
    TransientError,
    ValidationError,
)

logger = logging.getLogger(__name__)

AUTH_ERROR_CODES = {'PGRST301', 'PGRST302', '401'}
SESSION_EXPIRED_MESSAGES = ('jwt expired', 'session_expired', 'session expired', 'invalid token')

ACCESS_ERROR_CODES = {'42501', '403'}
ACCESS_DENIED_MESSAGES = ('row-level security', 'insufficient privilege', 'permission denied')

DEFAULT_MAX_ATTEMPTS = 3


class ErrorCategory(Enum):
    AUTH = 'auth'
    PERMISSION = 'permission'
    TRANSIENT = 'transient'
    VALIDATION = 'validation'
    CONFLICT = 'conflict'
    FATAL = 'fatal'


def _error_fields(error) -> tuple:
    """Extract (code, message, details) from a dict or exception-like object."""
    if isinstance(error, dict):
        code = error.get('code')
        message = error.get('message')
        details = error.get('details')
    else:
        code = getattr(error, 'code', None)
        message = getattr(error, 'message', None) or str(error)
        details = getattr(error, 'details', None)

    code = str(code) if code is not None else ''
    message = (message or '').lower()
    details = details if isinstance(details, str) else ''
    return code, message, details.lower()


def _is_backend_error(error) -> bool:
    if isinstance(error, (dict, sqlite3.Error, OSError)):
        return True
    return hasattr(error, 'code') and hasattr(error, 'message')


def is_auth_error(error) -> bool:
    """True for expired/invalid session errors."""
    if error is None:
        return False
    if isinstance(error, AuthError):
        return True
    if isinstance(error, BookingError) or not _is_backend_error(error):
        return False

    code, message, _ = _error_fields(error)
    if code in AUTH_ERROR_CODES:
        return True
    return any(text in message for text in SESSION_EXPIRED_MESSAGES)


def is_access_error(error) -> bool:
    """True for row-level security / membership denials."""
    if error is None:
        return False
    if isinstance(error, AccessDeniedError):
        return True
    if isinstance(error, BookingError) or not _is_backend_error(error):
        return False

    code, message, details = _error_fields(error)
    if code in ACCESS_ERROR_CODES:
        return True
    return any(text in message or text in details for text in ACCESS_DENIED_MESSAGES)


def classify_error(error) -> ErrorCategory:
    """
    Classify an error raised at a reservation boundary.

    Args:
        error: BookingError, backend error dict ({code, message, details}),
            sqlite3/OS error, or any exception

    Returns:
        ErrorCategory
    """
    if is_auth_error(error):
        return ErrorCategory.AUTH
    if is_access_error(error):
        return ErrorCategory.PERMISSION
    if isinstance(error, ConflictError):
        return ErrorCategory.CONFLICT
    if isinstance(error, ValidationError):
        return ErrorCategory.VALIDATION
    if isinstance(error, TransientError):
        return ErrorCategory.TRANSIENT
    if isinstance(error, BookingError):
        return ErrorCategory.FATAL
    if isinstance(error, sqlite3.IntegrityError):
        # Constraint violations fail the same way on every attempt
        return ErrorCategory.FATAL
    if _is_backend_error(error):
        return ErrorCategory.TRANSIENT
    return ErrorCategory.FATAL


def should_retry(error, failure_count: int, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> bool:
    """
    Decide whether a failed call may be attempted again.

    Args:
        error: The error from the last attempt
        failure_count: Attempts that have failed so far (1 after the first failure)
        max_attempts: Total attempts allowed

    Returns:
        True if another attempt should be made
    """
    if isinstance(error, TransientError):
        # Already exhausted its own retries further down
        return False
    return classify_error(error) is ErrorCategory.TRANSIENT and failure_count < max_attempts


def to_booking_error(error) -> BookingError:
    """Wrap a classified backend error into the booking error taxonomy."""
    if isinstance(error, BookingError):
        return error

    category = classify_error(error)
    code, message, _ = _error_fields(error)
    details = {'code': code} if code else {}
    if category is ErrorCategory.AUTH:
        return AuthError(details=details)
    if category is ErrorCategory.PERMISSION:
        return AccessDeniedError(details=details)
    return TransientError(details=details)


def _setting(name: str, default):
    if has_app_context():
        return current_app.config.get(name, default)
    return default


def with_retry(max_attempts: int = None, backoff: float = None):
    """
    Decorator retrying transient backend failures with exponential backoff.

    Auth, permission, validation and conflict errors propagate immediately.
    Backend errors are re-raised as the matching BookingError so callers only
    ever see the taxonomy; when retries run out a TransientError is raised.

    Args:
        max_attempts: Total attempts (default BOOKING_MAX_RETRIES or 3)
        backoff: Initial delay in seconds, doubled per attempt
            (default BOOKING_RETRY_BACKOFF)

    Returns:
        Decorator function
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            attempts = max_attempts or _setting('BOOKING_MAX_RETRIES', DEFAULT_MAX_ATTEMPTS)
            delay = backoff if backoff is not None else _setting('BOOKING_RETRY_BACKOFF', 0.2)
            failure_count = 0

            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as exc:
                    failure_count += 1
                    category = classify_error(exc)

                    if category is ErrorCategory.FATAL or isinstance(exc, BookingError):
                        raise

                    if not should_retry(exc, failure_count, attempts):
                        logger.error(
                            "%s failed after %d attempt(s) (%s): %s",
                            func.__name__, failure_count, category.value, exc
                        )
                        booking_error = to_booking_error(exc)
                        if isinstance(booking_error, TransientError):
                            booking_error.details['attempts'] = failure_count
                        raise booking_error from exc

                    wait = delay * (2 ** (failure_count - 1))
                    logger.warning(
                        "%s transient failure %d/%d, retrying in %.2fs: %s",
                        func.__name__, failure_count, attempts, wait, exc
                    )
                    if wait:
                        time.sleep(wait)

        return wrapper
    return decorator


__all__ = [
    'ErrorCategory',
    'classify_error',
    'is_auth_error',
    'is_access_error',
    'should_retry',
    'to_booking_error',
    'with_retry',
]
