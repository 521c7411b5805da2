"""Timezone-aware date/time helpers for the booking engine."""

import calendar
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app, has_app_context

from utils.errors import ValidationError


def get_timezone(tz_name: str = None) -> ZoneInfo:
    """Get a timezone by name, falling back to the configured default."""
    if not tz_name:
        tz_name = current_app.config.get('TIMEZONE', 'UTC') if has_app_context() else 'UTC'
    try:
        return ZoneInfo(tz_name)
    except ZoneInfoNotFoundError:
        raise ValidationError(f'Unknown timezone: {tz_name}', details={'timezone': tz_name})


def get_now() -> datetime:
    """Get the current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(value, tz: ZoneInfo = None) -> datetime:
    """
    Normalize a timestamp to an aware UTC datetime.

    Naive values (and ISO strings without an offset) are wall-clock times in
    ``tz``, the venue's timezone.

    Args:
        value: datetime or ISO 8601 string
        tz: Timezone for naive values (default: configured TIMEZONE)

    Returns:
        Aware datetime in UTC

    Raises:
        ValidationError: If value is missing or not a valid timestamp
    """
    if value is None or value == '':
        raise ValidationError('Timestamp is required')

    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            raise ValidationError(f'Invalid timestamp: {value}', details={'value': value})
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, datetime.min.time())
    elif not isinstance(value, datetime):
        raise ValidationError(f'Invalid timestamp: {value!r}')

    if value.tzinfo is None:
        value = value.replace(tzinfo=tz or get_timezone())
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Storage format: ISO 8601 in UTC, second precision."""
    return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp back into an aware UTC datetime."""
    return datetime.fromisoformat(value).astimezone(timezone.utc)


def parse_date(value) -> date:
    """
    Parse a YYYY-MM-DD date.

    Raises:
        ValidationError: If the value is not a valid date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid date: {value}', details={'value': value})


def add_months(base: date, months: int) -> date:
    """
    Add calendar months keeping the day of month.

    When the day does not exist in the target month it is clamped to the
    month's last day (Jan 31 + 1 month -> Feb 28/29).
    """
    month_index = base.month - 1 + months
    year = base.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(base.day, last_day))


def at_hour(day: date, hour, tz: ZoneInfo) -> datetime:
    """Wall-clock ``hour`` (may be fractional, up to 24) on ``day`` in ``tz``."""
    midnight = datetime.combine(day, datetime.min.time())
    local = midnight + timedelta(hours=float(hour))
    return local.replace(tzinfo=tz)
