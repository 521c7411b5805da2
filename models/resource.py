"""
Bookable resource data access functions.
Resources are spaces or professionals with an hourly or per-service rate.
Resources referenced by reservations are never deleted, only deactivated.
"""

from database import get_db
from utils.errors import NotFoundError, ValidationError
from utils.validators import validate_amount

RESOURCE_KINDS = ('space', 'professional')
PRICING_MODES = ('hourly', 'flat')


def create_resource(
    venue_id: int,
    name: str,
    rate=0,
    kind: str = 'space',
    pricing_mode: str = 'hourly'
) -> int:
    """
    Create a bookable resource.

    Args:
        venue_id: Owning venue
        name: Display name
        rate: Hourly rate (hourly mode) or price per service (flat mode)
        kind: 'space' or 'professional'
        pricing_mode: 'hourly' or 'flat'

    Returns:
        int: New resource ID

    Raises:
        ValidationError: If any field is invalid
    """
    if not name or not name.strip():
        raise ValidationError('Resource name is required')
    if kind not in RESOURCE_KINDS:
        raise ValidationError(f'Invalid resource kind: {kind}')
    if pricing_mode not in PRICING_MODES:
        raise ValidationError(f'Invalid pricing mode: {pricing_mode}')

    valid, amount, err = validate_amount(rate, 'rate')
    if not valid:
        raise ValidationError(err)

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO resources (venue_id, name, kind, pricing_mode, rate)
        VALUES (?, ?, ?, ?, ?)
    ''', (venue_id, name.strip(), kind, pricing_mode, float(amount)))
    return cursor.lastrowid


def get_resource(venue_id: int, resource_id: int) -> dict:
    """
    Get a resource scoped to a venue.

    Returns:
        Resource dict or None if not found in this venue
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM resources WHERE id = ? AND venue_id = ?
    ''', (resource_id, venue_id))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_venue_resources(venue_id: int, kind: str = None, active_only: bool = True) -> list:
    """
    List a venue's resources.

    Args:
        venue_id: Venue ID
        kind: Filter by 'space' or 'professional' (optional)
        active_only: Only return active resources

    Returns:
        List of resource dicts
    """
    db = get_db()
    cursor = db.cursor()

    query = 'SELECT * FROM resources WHERE venue_id = ?'
    params = [venue_id]

    if kind:
        query += ' AND kind = ?'
        params.append(kind)

    if active_only:
        query += ' AND active = 1'

    query += ' ORDER BY name'

    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


def update_resource_rate(venue_id: int, resource_id: int, rate, pricing_mode: str = None) -> bool:
    """
    Change a resource's rate. Existing reservations keep their totals until
    they are explicitly re-priced.

    Returns:
        bool: True if updated
    """
    valid, amount, err = validate_amount(rate, 'rate')
    if not valid:
        raise ValidationError(err)
    if pricing_mode is not None and pricing_mode not in PRICING_MODES:
        raise ValidationError(f'Invalid pricing mode: {pricing_mode}')

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        UPDATE resources
        SET rate = ?,
            pricing_mode = COALESCE(?, pricing_mode),
            updated_at = CURRENT_TIMESTAMP
        WHERE id = ? AND venue_id = ?
    ''', (float(amount), pricing_mode, resource_id, venue_id))

    if cursor.rowcount == 0:
        raise NotFoundError('Resource not found', details={'resource_id': resource_id})
    return True


def deactivate_resource(venue_id: int, resource_id: int) -> bool:
    """
    Soft-deactivate a resource. New bookings are rejected; existing ones stay.

    Returns:
        bool: True if the resource was active before
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        UPDATE resources
        SET active = 0, updated_at = CURRENT_TIMESTAMP
        WHERE id = ? AND venue_id = ? AND active = 1
    ''', (resource_id, venue_id))
    if cursor.rowcount == 0 and not get_resource(venue_id, resource_id):
        raise NotFoundError('Resource not found', details={'resource_id': resource_id})
    return cursor.rowcount > 0
