"""
Tests for pricing calculations.
"""

from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

import pytest

from models.pricing import (
    compute_item_subtotal,
    compute_order_totals,
    compute_resource_total,
    compute_space_total,
    hours_between,
)
from utils.errors import ValidationError

START = datetime(2030, 1, 7, 10, tzinfo=timezone.utc)


class TestSpaceTotal:
    """Tests for hourly pricing."""

    def test_two_hours(self):
        """100/hr for 10:00-12:00 costs 200.00."""
        assert compute_space_total(100, START, START + timedelta(hours=2)) == Decimal('200.00')

    def test_fractional_hours(self):
        """90 minutes at 50/hr."""
        assert compute_space_total(50, START, START + timedelta(minutes=90)) == Decimal('75.00')

    def test_rounds_to_cents(self):
        """20 minutes at 10/hr is 3.333... rounded to 3.33."""
        assert compute_space_total(10, START, START + timedelta(minutes=20)) == Decimal('3.33')

    def test_rounds_half_up(self):
        """0.025 rounds up to 0.03."""
        assert compute_space_total('0.05', START, START + timedelta(minutes=30)) == Decimal('0.03')

    def test_matches_rate_times_hours(self):
        """Total equals rate x hours for a spread of durations."""
        for minutes in (15, 45, 60, 135, 600):
            end = START + timedelta(minutes=minutes)
            expected = (Decimal('37.5') * hours_between(START, end)).quantize(
                Decimal('0.01'), rounding=ROUND_HALF_UP)
            assert compute_space_total('37.5', START, end) == expected

    def test_three_quarter_hour_rounds_up(self):
        """45 minutes at 37.5/hr is 28.125, stored as 28.13."""
        assert compute_space_total('37.5', START, START + timedelta(minutes=45)) == Decimal('28.13')

    def test_rejects_empty_interval(self):
        with pytest.raises(ValidationError):
            compute_space_total(100, START, START)

    def test_rejects_negative_rate(self):
        with pytest.raises(ValidationError):
            compute_space_total(-1, START, START + timedelta(hours=1))


class TestResourceTotal:
    """Tests for pricing by resource mode."""

    def test_hourly_resource(self):
        resource = {'pricing_mode': 'hourly', 'rate': 100.0}
        assert compute_resource_total(resource, START, START + timedelta(hours=3)) == Decimal('300.00')

    def test_flat_resource_ignores_duration(self):
        resource = {'pricing_mode': 'flat', 'rate': 80.0}
        assert compute_resource_total(resource, START, START + timedelta(hours=3)) == Decimal('80.00')

    def test_rate_override(self):
        resource = {'pricing_mode': 'hourly', 'rate': 100.0}
        total = compute_resource_total(resource, START, START + timedelta(hours=1), rate_override=120)
        assert total == Decimal('120.00')


class TestOrderTotals:
    """Tests for service order totals."""

    def test_item_subtotal(self):
        assert compute_item_subtotal(3, '19.99') == Decimal('59.97')

    def test_discount_larger_than_subtotal_goes_negative(self):
        """Discount 100 on subtotal 50 without tax gives -50."""
        totals = compute_order_totals([{'quantity': 1, 'unit_price': 50}], discount=100)
        assert totals['subtotal'] == Decimal('50.00')
        assert totals['total'] == Decimal('-50.00')

    def test_clamp_floors_at_zero(self):
        totals = compute_order_totals([{'quantity': 1, 'unit_price': 50}], discount=100, clamp=True)
        assert totals['total'] == Decimal('0.00')

    def test_complete_order_is_taxed(self):
        """tax_rate is a percentage."""
        items = [{'quantity': 2, 'unit_price': 100}]
        totals = compute_order_totals(items, order_type='complete', tax_rate=5, discount=20)
        assert totals['tax_amount'] == Decimal('10.00')
        assert totals['total'] == Decimal('190.00')

    def test_simple_order_never_taxed(self):
        items = [{'quantity': 2, 'unit_price': 100}]
        totals = compute_order_totals(items, order_type='simple', tax_rate=5)
        assert totals['tax_amount'] == Decimal('0.00')
        assert totals['total'] == Decimal('200.00')

    def test_empty_order(self):
        totals = compute_order_totals([])
        assert totals == {'subtotal': Decimal('0.00'), 'tax_amount': Decimal('0.00'),
                          'total': Decimal('0.00')}
