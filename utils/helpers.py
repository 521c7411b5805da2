"""
Miscellaneous request helper functions.
"""

from flask import request

from utils.errors import ValidationError

TRUE_VALUES = ('1', 'true', 'yes', 'on')


def json_body() -> dict:
    """
    Request JSON object.

    Returns:
        dict payload, or {} when the body is empty

    Raises:
        ValidationError: If the body is JSON but not an object
    """
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


def require_fields(payload: dict, *fields) -> None:
    """
    Check that required payload fields are present and non-empty.

    Raises:
        ValidationError: Listing every missing field
    """
    missing = [f for f in fields if payload.get(f) in (None, '')]
    if missing:
        raise ValidationError(f'Missing required fields: {", ".join(missing)}',
                              details={'missing': missing})


def pick(payload: dict, allowed) -> dict:
    """Subset of payload restricted to allowed keys."""
    return {key: payload[key] for key in allowed if key in payload}


def parse_bool(value) -> bool:
    """Interpret a query string flag."""
    if value is None:
        return False
    return str(value).strip().lower() in TRUE_VALUES
