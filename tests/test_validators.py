"""
Tests for input validation utilities.
"""

from datetime import datetime, timezone
from decimal import Decimal

from utils.validators import (
    validate_email,
    validate_phone,
    validate_time_range,
    validate_positive_integer,
    validate_amount,
    sanitize_input
)


class TestValidateEmail:
    """Tests for email validation."""

    def test_valid_email(self):
        """Test valid email formats."""
        assert validate_email('user@example.com') is True
        assert validate_email('user.name@example.com') is True
        assert validate_email('user+tag@example.co.uk') is True

    def test_invalid_email(self):
        """Test invalid email formats."""
        assert validate_email('') is False
        assert validate_email(None) is False
        assert validate_email('invalid') is False
        assert validate_email('missing@domain') is False
        assert validate_email('@nodomain.com') is False


class TestValidatePhone:
    """Tests for phone validation."""

    def test_valid_phones(self):
        """International and local formats with separators."""
        assert validate_phone('+5511987654321') is True
        assert validate_phone('11987654321') is True
        assert validate_phone('(11) 98765-4321') is True

    def test_invalid_phones(self):
        """Too short, letters or empty."""
        assert validate_phone('') is False
        assert validate_phone('1234') is False
        assert validate_phone('phone123456') is False


class TestValidateTimeRange:
    """Tests for interval validation."""

    def test_positive_duration(self):
        start = datetime(2030, 1, 7, 10, tzinfo=timezone.utc)
        end = datetime(2030, 1, 7, 11, tzinfo=timezone.utc)
        assert validate_time_range(start, end) is True

    def test_empty_or_inverted(self):
        start = datetime(2030, 1, 7, 10, tzinfo=timezone.utc)
        assert validate_time_range(start, start) is False
        assert validate_time_range(start, start.replace(hour=9)) is False
        assert validate_time_range(None, start) is False


class TestValidateNumbers:
    """Tests for id and amount validation."""

    def test_positive_integer(self):
        assert validate_positive_integer('12', 'resource_id') == (True, 12, '')
        assert validate_positive_integer(0, 'resource_id')[0] is False
        assert validate_positive_integer('abc', 'resource_id')[0] is False
        assert validate_positive_integer(True, 'resource_id')[0] is False
        assert validate_positive_integer(None, 'resource_id')[2] == 'resource_id is required'

    def test_amount(self):
        assert validate_amount('10.50', 'rate') == (True, Decimal('10.50'), '')
        assert validate_amount(-1, 'rate')[0] is False
        assert validate_amount(-1, 'discount', allow_negative=True)[0] is True
        assert validate_amount('nan', 'rate')[0] is False
        assert validate_amount('ten', 'rate')[2] == 'rate must be a number'


class TestSanitizeInput:
    """Tests for text sanitizing."""

    def test_trims_and_limits(self):
        assert sanitize_input('  Ana  ') == 'Ana'
        assert sanitize_input('abcdef', max_length=3) == 'abc'
        assert sanitize_input(None) == ''
