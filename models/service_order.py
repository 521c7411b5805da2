"""
Service order data access functions.
An order groups priced items (labor, parts) optionally linked to a
reservation. Totals are recomputed from the items in the same transaction
as every item change, and every write re-checks the acting user's venue
membership inside that transaction.
"""

import logging

from database import get_db
from models.pricing import compute_item_subtotal, compute_order_totals
from models.venue import require_venue_access
from utils.error_classifier import with_retry
from utils.errors import NotFoundError, ValidationError
from utils.validators import sanitize_input, validate_amount

logger = logging.getLogger(__name__)

ORDER_TYPES = ('simple', 'complete')

ORDER_STATUSES = {
    'simple': ('open', 'finished', 'invoiced'),
    'complete': ('draft', 'approved', 'in_progress', 'finished', 'invoiced', 'cancelled'),
}

INITIAL_ORDER_STATUS = {'simple': 'open', 'complete': 'draft'}


# =============================================================================
# HELPERS
# =============================================================================

def _amount(value, field_name: str, default=None):
    if value is None and default is not None:
        value = default
    valid, amount, err = validate_amount(value, field_name)
    if not valid:
        raise ValidationError(err, details={field_name: value})
    return amount


def _tax_rate(value):
    rate = _amount(value, 'tax_rate', default=0)
    if rate > 100:
        raise ValidationError('tax_rate is a percentage between 0 and 100',
                              details={'tax_rate': str(rate)})
    return rate


def _clean_item(description: str, quantity, unit_price) -> tuple:
    description = sanitize_input(description, max_length=500)
    if not description:
        raise ValidationError('Item description is required')
    quantity = _amount(quantity, 'quantity', default=1)
    if quantity <= 0:
        raise ValidationError('quantity must be positive', details={'quantity': str(quantity)})
    unit_price = _amount(unit_price, 'unit_price', default=0)
    return description, quantity, unit_price


def _clean_items(items) -> list:
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValidationError('items must be a list')

    clean = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError('Each item must be an object', details={'item': index})
        clean.append(_clean_item(item.get('description'), item.get('quantity'),
                                 item.get('unit_price')))
    return clean


def _fetch_order(cursor, tenant_id: int, order_id: int) -> dict:
    cursor.execute('''
        SELECT * FROM service_orders WHERE id = ? AND venue_id = ?
    ''', (order_id, tenant_id))
    row = cursor.fetchone()
    if row is None:
        raise NotFoundError('Service order not found', details={'service_order_id': order_id})
    order = dict(row)
    cursor.execute('''
        SELECT * FROM service_order_items WHERE service_order_id = ? ORDER BY id
    ''', (order_id,))
    order['items'] = [dict(r) for r in cursor.fetchall()]
    return order


def _insert_item(cursor, order_id: int, description: str, quantity, unit_price) -> int:
    cursor.execute('''
        INSERT INTO service_order_items
        (service_order_id, description, quantity, unit_price, subtotal)
        VALUES (?, ?, ?, ?, ?)
    ''', (order_id, description, float(quantity), float(unit_price),
          float(compute_item_subtotal(quantity, unit_price))))
    return cursor.lastrowid


def recalculate_service_order(cursor, order_id: int) -> dict:
    """
    Recompute and store an order's totals from its items.

    Returns:
        dict: {'subtotal', 'tax_amount', 'total'} as Decimal
    """
    cursor.execute('''
        SELECT order_type, discount, tax_rate FROM service_orders WHERE id = ?
    ''', (order_id,))
    order = cursor.fetchone()
    cursor.execute('''
        SELECT quantity, unit_price FROM service_order_items WHERE service_order_id = ?
    ''', (order_id,))
    items = [dict(r) for r in cursor.fetchall()]

    totals = compute_order_totals(
        items,
        order_type=order['order_type'],
        tax_rate=order['tax_rate'],
        discount=order['discount']
    )
    cursor.execute('''
        UPDATE service_orders
        SET subtotal = ?, tax_amount = ?, total = ?, updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
    ''', (float(totals['subtotal']), float(totals['tax_amount']), float(totals['total']), order_id))
    return totals


def _item_order_id(cursor, tenant_id: int, item_id: int) -> int:
    cursor.execute('''
        SELECT i.service_order_id
        FROM service_order_items i
        JOIN service_orders o ON o.id = i.service_order_id
        WHERE i.id = ? AND o.venue_id = ?
    ''', (item_id, tenant_id))
    row = cursor.fetchone()
    if row is None:
        raise NotFoundError('Service order item not found', details={'item_id': item_id})
    return row['service_order_id']


# =============================================================================
# ORDERS
# =============================================================================

@with_retry()
def create_service_order(
    tenant_id: int,
    customer_name: str,
    description: str = None,
    order_type: str = 'simple',
    reservation_id: int = None,
    customer_id: int = None,
    discount=0,
    tax_rate=0,
    items: list = None,
    created_by: str = None,
    user_id: int = None
) -> dict:
    """
    Create a service order with its items.

    Args:
        tenant_id: Venue ID
        customer_name: Customer display name
        description: Work description
        order_type: 'simple' (never taxed) or 'complete'
        reservation_id: Linked reservation (optional)
        customer_id: Linked customer (optional)
        discount: Absolute discount
        tax_rate: Tax percentage, applied to 'complete' orders only
        items: List of dicts with description, quantity, unit_price
        created_by: Username
        user_id: Acting user, re-checked for venue membership

    Returns:
        dict: Order with items and computed totals

    Raises:
        ValidationError: Malformed order or items
        NotFoundError: Reservation or customer not in this venue
        AccessDeniedError: user_id is no longer a member of the venue
    """
    customer_name = sanitize_input(customer_name, max_length=200)
    if not customer_name:
        raise ValidationError('Customer name is required')
    if order_type not in ORDER_TYPES:
        raise ValidationError(f'Invalid order type: {order_type}', details={'order_type': order_type})

    discount = _amount(discount, 'discount', default=0)
    tax_rate = _tax_rate(tax_rate) if order_type == 'complete' else 0
    clean_items = _clean_items(items)

    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')
        require_venue_access(tenant_id, user_id, cursor=cursor)

        if reservation_id is not None:
            cursor.execute('''
                SELECT id FROM reservations WHERE id = ? AND venue_id = ?
            ''', (reservation_id, tenant_id))
            if cursor.fetchone() is None:
                raise NotFoundError('Reservation not found', details={'reservation_id': reservation_id})

        if customer_id is not None:
            cursor.execute('''
                SELECT id FROM customers WHERE id = ? AND venue_id = ?
            ''', (customer_id, tenant_id))
            if cursor.fetchone() is None:
                raise NotFoundError('Customer not found', details={'customer_id': customer_id})

        cursor.execute('''
            INSERT INTO service_orders (
                venue_id, reservation_id, customer_id, customer_name, description,
                order_type, status, discount, tax_rate, created_by
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            tenant_id, reservation_id, customer_id, customer_name,
            sanitize_input(description, max_length=1000) or None,
            order_type, INITIAL_ORDER_STATUS[order_type],
            float(discount), float(tax_rate), created_by
        ))
        order_id = cursor.lastrowid

        for description_, quantity, unit_price in clean_items:
            _insert_item(cursor, order_id, description_, quantity, unit_price)

        recalculate_service_order(cursor, order_id)
        order = _fetch_order(cursor, tenant_id, order_id)
        db.commit()

    except Exception:
        db.rollback()
        raise

    logger.info("Service order %s created (%s, total %.2f)", order_id, order_type, order['total'])
    return order


@with_retry()
def get_service_order(tenant_id: int, order_id: int) -> dict:
    """
    Get a service order with its items.

    Returns:
        Order dict or None if not found in this venue
    """
    cursor = get_db().cursor()
    try:
        return _fetch_order(cursor, tenant_id, order_id)
    except NotFoundError:
        return None


@with_retry()
def list_service_orders(tenant_id: int, reservation_id: int = None) -> list:
    """List a venue's service orders, newest first (items not included)."""
    db = get_db()
    cursor = db.cursor()

    query = 'SELECT * FROM service_orders WHERE venue_id = ?'
    params = [tenant_id]

    if reservation_id is not None:
        query += ' AND reservation_id = ?'
        params.append(reservation_id)

    query += ' ORDER BY id DESC'

    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


@with_retry()
def update_service_order(
    tenant_id: int,
    order_id: int,
    discount=None,
    tax_rate=None,
    status: str = None,
    description: str = None,
    order_type: str = None,
    user_id: int = None
) -> dict:
    """
    Change order-level fields and recompute totals.

    Switching order_type resets the status to the new type's initial status;
    switching to 'simple' also drops the tax rate.

    Returns:
        dict: Updated order with items
    """
    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')
        require_venue_access(tenant_id, user_id, cursor=cursor)
        order = _fetch_order(cursor, tenant_id, order_id)

        updates = {}
        if order_type is not None and order_type != order['order_type']:
            if order_type not in ORDER_TYPES:
                raise ValidationError(f'Invalid order type: {order_type}',
                                      details={'order_type': order_type})
            updates['order_type'] = order_type
            updates['status'] = INITIAL_ORDER_STATUS[order_type]
            if order_type == 'simple':
                updates['tax_rate'] = 0.0
            order['order_type'] = order_type

        if discount is not None:
            updates['discount'] = float(_amount(discount, 'discount'))
        if tax_rate is not None:
            if order['order_type'] != 'complete':
                raise ValidationError('Only complete orders are taxed')
            updates['tax_rate'] = float(_tax_rate(tax_rate))
        if status is not None:
            if status not in ORDER_STATUSES[order['order_type']]:
                raise ValidationError(f'Invalid status for {order["order_type"]} order: {status}',
                                      details={'status': status})
            updates['status'] = status
        if description is not None:
            updates['description'] = sanitize_input(description, max_length=1000)

        if updates:
            set_clause = ', '.join(f'{column} = ?' for column in updates)
            cursor.execute(f'''
                UPDATE service_orders SET {set_clause} WHERE id = ?
            ''', (*updates.values(), order_id))
            recalculate_service_order(cursor, order_id)

        order = _fetch_order(cursor, tenant_id, order_id)
        db.commit()

    except Exception:
        db.rollback()
        raise

    return order


# =============================================================================
# ITEMS
# =============================================================================

@with_retry()
def add_service_order_item(tenant_id: int, order_id: int, description: str,
                           quantity=1, unit_price=0, user_id: int = None) -> dict:
    """
    Add an item and recompute totals.

    Returns:
        dict: Updated order with items
    """
    description, quantity, unit_price = _clean_item(description, quantity, unit_price)

    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')
        require_venue_access(tenant_id, user_id, cursor=cursor)
        _fetch_order(cursor, tenant_id, order_id)
        _insert_item(cursor, order_id, description, quantity, unit_price)
        recalculate_service_order(cursor, order_id)
        order = _fetch_order(cursor, tenant_id, order_id)
        db.commit()

    except Exception:
        db.rollback()
        raise

    return order


@with_retry()
def update_service_order_item(tenant_id: int, item_id: int, description: str = None,
                              quantity=None, unit_price=None, user_id: int = None) -> dict:
    """
    Change an item's description, quantity or price and recompute totals.

    Returns:
        dict: Updated order with items
    """
    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')
        require_venue_access(tenant_id, user_id, cursor=cursor)
        order_id = _item_order_id(cursor, tenant_id, item_id)

        cursor.execute('SELECT * FROM service_order_items WHERE id = ?', (item_id,))
        item = dict(cursor.fetchone())

        description, quantity, unit_price = _clean_item(
            description if description is not None else item['description'],
            quantity if quantity is not None else item['quantity'],
            unit_price if unit_price is not None else item['unit_price']
        )
        cursor.execute('''
            UPDATE service_order_items
            SET description = ?, quantity = ?, unit_price = ?, subtotal = ?
            WHERE id = ?
        ''', (description, float(quantity), float(unit_price),
              float(compute_item_subtotal(quantity, unit_price)), item_id))

        recalculate_service_order(cursor, order_id)
        order = _fetch_order(cursor, tenant_id, order_id)
        db.commit()

    except Exception:
        db.rollback()
        raise

    return order


@with_retry()
def remove_service_order_item(tenant_id: int, item_id: int, user_id: int = None) -> dict:
    """
    Delete an item and recompute totals.

    Returns:
        dict: Updated order with items
    """
    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')
        require_venue_access(tenant_id, user_id, cursor=cursor)
        order_id = _item_order_id(cursor, tenant_id, item_id)
        cursor.execute('DELETE FROM service_order_items WHERE id = ?', (item_id,))
        recalculate_service_order(cursor, order_id)
        order = _fetch_order(cursor, tenant_id, order_id)
        db.commit()

    except Exception:
        db.rollback()
        raise

    return order
