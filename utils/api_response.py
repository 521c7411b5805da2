"""
Standardized API response helpers.

Every reservation endpoint answers with one outcome shape:

    Success:  {"ok": true, "kind": "reservation_created", "message": "...", "data": {...}}
    Error:    {"ok": false, "kind": "conflict", "message": "...", "details": {...}}
    Warning:  {"ok": true, ..., "warnings": ["calendar_sync_failed"]}

Usage:
    from utils.api_response import api_success, api_error

    return api_success('reservation_created', data=reservation, status=201)
    return api_error('validation', 'start is required', status=400)
"""

from typing import Any

from flask import jsonify

from utils.messages import get_message


def booking_outcome(ok: bool, kind: str, message: str = None, details: dict = None,
                    **extra_fields: Any) -> dict:
    """
    Build the outcome body.

    Args:
        ok: Whether the operation succeeded
        kind: Stable outcome kind the UI keys on
        message: Human-readable text (default: message for kind)
        details: Optional structured context
        **extra_fields: Additional top-level fields (data, warnings)

    Returns:
        dict outcome
    """
    outcome = {'ok': ok, 'kind': kind, 'message': message or get_message(kind)}

    if details:
        outcome['details'] = details

    if extra_fields:
        outcome.update(extra_fields)

    return outcome


def api_success(
    kind: str,
    data: Any = None,
    message: str | None = None,
    warnings: list | None = None,
    status: int = 200,
    **extra_fields: Any
) -> tuple:
    """
    Build a success JSON response.

    Args:
        kind: Outcome kind (also the default message key)
        data: Optional payload
        message: Override for the default message
        warnings: Non-fatal warning kinds
        status: HTTP status code (default 200)

    Returns:
        Tuple of (Response, status_code)
    """
    if data is not None:
        extra_fields['data'] = data

    if warnings:
        extra_fields['warnings'] = warnings
        extra_fields['warning'] = '; '.join(get_message(w) for w in warnings)

    return jsonify(booking_outcome(True, kind, message, **extra_fields)), status


def api_error(kind: str, message: str | None = None, status: int = 400,
              details: dict | None = None, **extra_fields: Any) -> tuple:
    """
    Build an error JSON response.

    Args:
        kind: Error kind
        message: Error message (default: message for kind)
        status: HTTP status code (default 400)
        details: Structured error context

    Returns:
        Tuple of (Response, status_code)
    """
    return jsonify(booking_outcome(False, kind, message, details, **extra_fields)), status
