"""
Input validation helper functions.
Provides validation for common input types.
"""

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation


def validate_email(email: str) -> bool:
    """
    Validate email format.

    Args:
        email: Email address to validate

    Returns:
        True if valid email format
    """
    if not email:
        return False

    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))


def validate_phone(phone: str) -> bool:
    """
    Validate phone number format.
    Accepts an optional leading '+' followed by 8 to 15 digits; spaces,
    dashes and parentheses are ignored.

    Args:
        phone: Phone number to validate

    Returns:
        True if valid phone format
    """
    if not phone:
        return False

    cleaned = re.sub(r'[\s\-\(\)]', '', phone)
    return bool(re.match(r'^\+?[0-9]{8,15}$', cleaned))


def validate_time_range(start: datetime, end: datetime) -> bool:
    """
    Validate that an interval has a positive duration.

    Args:
        start: Interval start
        end: Interval end (exclusive)

    Returns:
        True if start < end
    """
    if start is None or end is None:
        return False
    return start < end


def validate_positive_integer(value, field_name: str) -> tuple:
    """
    Validate a required positive integer (ids, counts).

    Args:
        value: Raw value (int or numeric string)
        field_name: Field name used in the error message

    Returns:
        Tuple of (is_valid, parsed_value, error_message)
    """
    if value is None or value == '' or isinstance(value, bool):
        return False, None, f'{field_name} is required'

    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return False, None, f'{field_name} must be an integer'

    if isinstance(value, float) and value != parsed:
        return False, None, f'{field_name} must be an integer'

    if parsed <= 0:
        return False, None, f'{field_name} must be positive'

    return True, parsed, ''


def validate_amount(value, field_name: str, allow_negative: bool = False) -> tuple:
    """
    Validate a monetary amount or rate.

    Args:
        value: Raw value (number or numeric string)
        field_name: Field name used in the error message
        allow_negative: Accept amounts below zero

    Returns:
        Tuple of (is_valid, Decimal value, error_message)
    """
    if value is None or value == '' or isinstance(value, bool):
        return False, None, f'{field_name} is required'

    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return False, None, f'{field_name} must be a number'

    if not amount.is_finite():
        return False, None, f'{field_name} must be a number'

    if amount < 0 and not allow_negative:
        return False, None, f'{field_name} cannot be negative'

    return True, amount, ''


def sanitize_input(text: str, max_length: int = None) -> str:
    """
    Sanitize text input by trimming and limiting length.

    Args:
        text: Text to sanitize
        max_length: Maximum length (optional)

    Returns:
        Sanitized text
    """
    if not text:
        return ''

    sanitized = text.strip()

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized
