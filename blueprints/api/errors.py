"""
API error handlers.
Applies the error classifier at the HTTP boundary and answers with the
standard outcome body.
"""

import logging
import sqlite3

from flask import g
from flask_login import logout_user
from flask_wtf.csrf import CSRFError

from utils.api_response import api_error
from utils.error_classifier import ErrorCategory, classify_error, to_booking_error
from utils.errors import BookingError, ConflictError
from utils.messages import get_message
from utils.permissions import invalidate_venue_cache

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    'validation': 400,
    'invalid_transition': 409,
    'not_found': 404,
    'conflict': 409,
    'auth': 401,
    'permission': 403,
    'transient': 503,
}


def _conflict_message(error: ConflictError) -> str:
    details = error.details
    if not details.get('resource_name'):
        return error.message
    return get_message('conflict_detail', resource=details['resource_name'],
                       start=details['start'], end=details['end'])


def booking_error_response(error: BookingError) -> tuple:
    """
    Turn a booking error into a response, applying its category's side effect.

    Auth errors end the session; permission errors drop cached memberships.
    """
    category = classify_error(error)

    if category is ErrorCategory.AUTH:
        logout_user()
        logger.info("Session rejected: %s", error.message)
    elif category is ErrorCategory.PERMISSION:
        invalidate_venue_cache()
        logger.warning("Access denied: %s %s", error.message, error.details)
    elif category is ErrorCategory.CONFLICT:
        logger.info("Booking conflict: %s", error.details)
    elif category is ErrorCategory.TRANSIENT:
        logger.error("Transient failure surfaced to client: %s %s", error.message, error.details)

    message = _conflict_message(error) if isinstance(error, ConflictError) else error.message
    return api_error(
        error.kind,
        message,
        status=STATUS_BY_KIND.get(error.kind, 500),
        details=error.details or None
    )


def register_api_error_handlers(app):
    """Register JSON error handlers on the app."""

    @app.errorhandler(BookingError)
    def handle_booking_error(error):
        return booking_error_response(error)

    @app.errorhandler(sqlite3.Error)
    def handle_backend_error(error):
        # Backend errors raised outside a retrying operation
        if classify_error(error) is ErrorCategory.FATAL:
            logger.error("Unrecoverable database error: %s", error, exc_info=True)
            db = g.get('db')
            if db is not None and db.in_transaction:
                db.rollback()
            return api_error('error', status=500)
        return booking_error_response(to_booking_error(error))

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        return api_error('validation', error.description, status=400)

    @app.errorhandler(404)
    def not_found_error(error):
        return api_error('not_found', status=404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return api_error('validation', 'Method not allowed', status=405)

    @app.errorhandler(500)
    def internal_error(error):
        db = g.get('db')
        if db is not None and db.in_transaction:
            db.rollback()
        return api_error('error', status=500)
