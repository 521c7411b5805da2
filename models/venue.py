"""
Venue (tenant) and membership data access functions.
Every resource and reservation belongs to exactly one venue.
"""

from database import get_db
from utils.errors import AccessDeniedError, NotFoundError, ValidationError


def create_venue(name: str, timezone: str = None) -> int:
    """
    Create a venue.

    Args:
        name: Venue name
        timezone: IANA timezone (None uses the configured default)

    Returns:
        int: New venue ID
    """
    if not name or not name.strip():
        raise ValidationError('Venue name is required')

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO venues (name, timezone) VALUES (?, ?)
    ''', (name.strip(), timezone))
    return cursor.lastrowid


def get_venue(venue_id: int) -> dict:
    """
    Get venue by ID.

    Returns:
        Venue dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM venues WHERE id = ?', (venue_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_venue_timezone_name(venue_id: int, cursor=None) -> str:
    """Timezone configured for the venue, or None for the application default."""
    cur = cursor or get_db().cursor()
    cur.execute('SELECT timezone FROM venues WHERE id = ?', (venue_id,))
    row = cur.fetchone()
    return row['timezone'] if row else None


def add_venue_member(venue_id: int, user_id: int, role: str = 'staff') -> int:
    """
    Grant a user access to a venue.

    Returns:
        int: Membership ID
    """
    if not get_venue(venue_id):
        raise NotFoundError('Venue not found', details={'venue_id': venue_id})

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO venue_members (venue_id, user_id, role)
        VALUES (?, ?, ?)
        ON CONFLICT(venue_id, user_id) DO UPDATE SET role = excluded.role, active = 1
    ''', (venue_id, user_id, role))
    cursor.execute('''
        SELECT id FROM venue_members WHERE venue_id = ? AND user_id = ?
    ''', (venue_id, user_id))
    return cursor.fetchone()['id']


def remove_venue_member(venue_id: int, user_id: int) -> bool:
    """Revoke a user's access to a venue (soft)."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        UPDATE venue_members SET active = 0
        WHERE venue_id = ? AND user_id = ?
    ''', (venue_id, user_id))
    return cursor.rowcount > 0


def get_user_venue_ids(user_id: int) -> set:
    """
    Get IDs of all active venues the user is an active member of.

    Returns:
        Set of venue IDs
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT vm.venue_id
        FROM venue_members vm
        JOIN venues v ON v.id = vm.venue_id
        WHERE vm.user_id = ? AND vm.active = 1 AND v.active = 1
    ''', (user_id,))
    return {row['venue_id'] for row in cursor.fetchall()}


def is_venue_member(venue_id: int, user_id: int) -> bool:
    """Check live (uncached) membership."""
    return venue_id in get_user_venue_ids(user_id)


def require_venue_access(venue_id: int, user_id: int, cursor=None):
    """
    Re-check membership at a write boundary.

    Run with the transaction cursor so a membership revoked after the
    request was authorized cannot keep writing. No-op when user_id is None
    (internal callers, CLI).

    Raises:
        AccessDeniedError: If the user is not an active member of an active venue
    """
    if user_id is None:
        return

    cur = cursor or get_db().cursor()
    cur.execute('''
        SELECT 1
        FROM venue_members vm
        JOIN venues v ON v.id = vm.venue_id
        WHERE vm.venue_id = ? AND vm.user_id = ? AND vm.active = 1 AND v.active = 1
    ''', (venue_id, user_id))
    if cur.fetchone() is None:
        raise AccessDeniedError(details={'venue_id': venue_id})
