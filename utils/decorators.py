"""
Route decorators for authentication and authorization.
Failures are raised as booking errors so the API error handlers answer with
the standard outcome body.
"""

from functools import wraps

from flask_login import current_user

from utils.errors import AccessDeniedError, AuthError
from utils.permissions import has_venue_access


def venue_member_required(func):
    """
    Decorator requiring a signed-in member of the route's venue.

    Usage:
        @bp.route('/venues/<int:venue_id>/reservations')
        @venue_member_required
        def list_venue_reservations(venue_id):
            ...

    Raises:
        AuthError: No valid session, or the account was deactivated
        AccessDeniedError: User is not a member of venue_id
    """
    @wraps(func)
    def wrapper(venue_id, *args, **kwargs):
        if not current_user.is_authenticated or not current_user.is_active:
            raise AuthError()

        if not has_venue_access(current_user, venue_id):
            raise AccessDeniedError(details={'venue_id': venue_id})

        return func(venue_id, *args, **kwargs)
    return wrapper


__all__ = ['venue_member_required']
