"""
Customer data access functions.
Duplicate detection lives outside this system; reservations only link to a
customer record through customer_id.
"""

from database import get_db
from utils.errors import ValidationError
from utils.validators import validate_email, validate_phone, sanitize_input


def create_customer(venue_id: int, name: str, email: str = None, phone: str = None) -> int:
    """
    Create a customer record.

    Args:
        venue_id: Owning venue
        name: Full name
        email: Optional email
        phone: Optional phone

    Returns:
        int: New customer ID
    """
    name = sanitize_input(name, max_length=200)
    if not name:
        raise ValidationError('Customer name is required')
    if email and not validate_email(email):
        raise ValidationError('Invalid email format', details={'email': email})
    if phone and not validate_phone(phone):
        raise ValidationError('Invalid phone format', details={'phone': phone})

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO customers (venue_id, name, email, phone)
        VALUES (?, ?, ?, ?)
    ''', (venue_id, name, email or None, phone or None))
    return cursor.lastrowid


def get_customer_by_id(venue_id: int, customer_id: int) -> dict:
    """
    Get customer by ID within a venue.

    Returns:
        Customer dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM customers WHERE id = ? AND venue_id = ?
    ''', (customer_id, venue_id))
    row = cursor.fetchone()
    return dict(row) if row else None
