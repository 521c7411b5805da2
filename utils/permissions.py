"""
Venue membership checking and caching utilities.

Memberships are cached in the session for read paths. Writes re-check
membership inside their transaction; when that check (or the database)
denies access, the error handler drops the cache with invalidate_venue_cache.
"""

from flask import g, session

from models.venue import get_user_venue_ids

VENUE_CACHE_KEY = 'venue_ids'


def load_user_venues(user_id: int) -> set:
    """
    Load the IDs of venues the user belongs to, bypassing the cache.

    Args:
        user_id: User ID

    Returns:
        Set of venue IDs
    """
    venue_ids = get_user_venue_ids(user_id)
    session[VENUE_CACHE_KEY] = sorted(venue_ids)
    g.user_venue_ids = venue_ids
    return venue_ids


def get_cached_venue_ids(user_id: int) -> set:
    """Venue IDs from the request or session cache, loading on a miss."""
    if hasattr(g, 'user_venue_ids'):
        return g.user_venue_ids

    cached = session.get(VENUE_CACHE_KEY)
    if cached is None:
        return load_user_venues(user_id)

    g.user_venue_ids = set(cached)
    return g.user_venue_ids


def has_venue_access(user, venue_id: int) -> bool:
    """
    Check if user is a member of a venue.

    Args:
        user: User object (Flask-Login)
        venue_id: Venue ID

    Returns:
        True if the (cached) membership includes the venue
    """
    return venue_id in get_cached_venue_ids(user.id)


def invalidate_venue_cache() -> None:
    """Forget cached memberships so the next request reloads them."""
    session.pop(VENUE_CACHE_KEY, None)
    g.pop('user_venue_ids', None)
