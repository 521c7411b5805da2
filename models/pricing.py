"""
Pricing calculations.
Derives reservation totals from resource rates and service order totals from
item lists. All amounts are Decimal and rounded to the currency minor unit.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from utils.errors import ValidationError

SECONDS_PER_HOUR = Decimal(3600)
CENT = Decimal('0.01')


def to_decimal(value) -> Decimal:
    """Convert a float/int/str amount to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value or 0))


def round_currency(amount) -> Decimal:
    """Round to 2 decimals, half up."""
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def hours_between(start: datetime, end: datetime) -> Decimal:
    """
    Fractional hours in [start, end).

    Raises:
        ValidationError: If start >= end
    """
    if start >= end:
        raise ValidationError('Start must be before end', details={
            'start': start.isoformat(), 'end': end.isoformat()
        })
    return Decimal(int((end - start).total_seconds())) / SECONDS_PER_HOUR


def compute_space_total(rate_per_hour, start: datetime, end: datetime) -> Decimal:
    """
    Price an hourly booking.

    Args:
        rate_per_hour: Hourly rate
        start: Interval start
        end: Interval end (exclusive)

    Returns:
        Decimal: duration_hours x rate_per_hour, rounded to cents

    Example:
        compute_space_total(100, 10:00, 12:00) -> Decimal('200.00')
    """
    rate = to_decimal(rate_per_hour)
    if rate < 0:
        raise ValidationError('Rate cannot be negative', details={'rate': str(rate)})
    return round_currency(hours_between(start, end) * rate)


def compute_resource_total(resource: dict, start: datetime, end: datetime,
                           rate_override=None) -> Decimal:
    """
    Price a booking against a resource's pricing mode.

    Hourly resources charge per hour; flat (per-service) resources charge the
    rate once regardless of duration.

    Args:
        resource: Resource dict (pricing_mode, rate)
        start: Interval start
        end: Interval end
        rate_override: Rate supplied by the caller instead of the resource's

    Returns:
        Decimal total
    """
    rate = resource.get('rate') if rate_override is None else rate_override
    if resource.get('pricing_mode') == 'flat':
        hours_between(start, end)  # still reject empty intervals
        rate = to_decimal(rate)
        if rate < 0:
            raise ValidationError('Rate cannot be negative', details={'rate': str(rate)})
        return round_currency(rate)
    return compute_space_total(rate, start, end)


def compute_item_subtotal(quantity, unit_price) -> Decimal:
    """quantity x unit_price, rounded to cents."""
    return round_currency(to_decimal(quantity) * to_decimal(unit_price))


def compute_order_totals(items: list, order_type: str = 'simple', tax_rate=0,
                         discount=0, clamp: bool = False) -> dict:
    """
    Compute service order totals.

    subtotal   = sum(quantity x unit_price)
    tax_amount = subtotal x tax_rate / 100, only for 'complete' orders
    total      = subtotal - discount + tax_amount

    A discount larger than subtotal + tax yields a negative total unless
    ``clamp`` is set, in which case the total floors at zero.

    Args:
        items: List of dicts with quantity and unit_price
        order_type: 'simple' (never taxed) or 'complete'
        tax_rate: Tax percentage (5 means 5%)
        discount: Absolute discount amount
        clamp: Floor the total at zero

    Returns:
        dict: {'subtotal', 'tax_amount', 'total'} as Decimal
    """
    subtotal = sum(
        (compute_item_subtotal(item.get('quantity', 1), item.get('unit_price', 0))
         for item in items),
        Decimal('0')
    )
    subtotal = round_currency(subtotal)

    tax_amount = Decimal('0.00')
    if order_type == 'complete':
        tax_amount = round_currency(subtotal * to_decimal(tax_rate) / 100)

    total = round_currency(subtotal - to_decimal(discount) + tax_amount)
    if clamp and total < 0:
        total = Decimal('0.00')

    return {
        'subtotal': subtotal,
        'tax_amount': tax_amount,
        'total': total
    }
