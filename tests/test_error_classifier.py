"""
Tests for backend error classification and the retry decorator.
"""

import sqlite3

import pytest

from utils.error_classifier import (
    ErrorCategory,
    classify_error,
    is_access_error,
    is_auth_error,
    should_retry,
    to_booking_error,
    with_retry,
)
from utils.errors import (
    AccessDeniedError,
    AuthError,
    ConflictError,
    NotFoundError,
    TransientError,
    ValidationError,
)


class BackendError(Exception):
    """Error shaped like a hosted backend client error."""

    def __init__(self, code=None, message='', details=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class TestClassifyError:
    """Tests for classify_error."""

    def test_auth_codes_and_messages(self):
        assert classify_error({'code': 'PGRST301', 'message': 'x'}) is ErrorCategory.AUTH
        assert classify_error({'code': 401}) is ErrorCategory.AUTH
        assert classify_error({'message': 'JWT expired'}) is ErrorCategory.AUTH
        assert classify_error(BackendError(message='Invalid token')) is ErrorCategory.AUTH

    def test_permission_codes_and_messages(self):
        assert classify_error({'code': '42501'}) is ErrorCategory.PERMISSION
        assert classify_error({'message': 'new row violates row-level security policy'}) \
            is ErrorCategory.PERMISSION
        assert classify_error({'code': 'X', 'message': '', 'details': 'Permission denied'}) \
            is ErrorCategory.PERMISSION

    def test_other_backend_errors_are_transient(self):
        assert classify_error({'code': '500', 'message': 'upstream timeout'}) is ErrorCategory.TRANSIENT
        assert classify_error(sqlite3.OperationalError('database is locked')) is ErrorCategory.TRANSIENT
        assert classify_error(ConnectionError('reset')) is ErrorCategory.TRANSIENT

    def test_engine_decisions(self):
        assert classify_error(ConflictError()) is ErrorCategory.CONFLICT
        assert classify_error(ValidationError('bad')) is ErrorCategory.VALIDATION
        assert classify_error(NotFoundError()) is ErrorCategory.VALIDATION
        assert classify_error(AuthError()) is ErrorCategory.AUTH
        assert classify_error(AccessDeniedError()) is ErrorCategory.PERMISSION

    def test_programming_errors_are_fatal(self):
        assert classify_error(ValueError('bug')) is ErrorCategory.FATAL
        assert classify_error(KeyError('missing')) is ErrorCategory.FATAL

    def test_constraint_violations_are_fatal(self):
        error = sqlite3.IntegrityError('CHECK constraint failed: start_time < end_time')

        assert classify_error(error) is ErrorCategory.FATAL
        assert should_retry(error, 1) is False

    def test_none_is_not_auth_or_access(self):
        assert is_auth_error(None) is False
        assert is_access_error(None) is False


class TestShouldRetry:
    """Tests for should_retry."""

    def test_transient_retried_until_max(self):
        error = sqlite3.OperationalError('database is locked')
        assert should_retry(error, 1) is True
        assert should_retry(error, 2) is True
        assert should_retry(error, 3) is False
        assert should_retry(error, 4, max_attempts=5) is True

    def test_non_transient_never_retried(self):
        assert should_retry({'code': 'PGRST301'}, 1) is False
        assert should_retry({'code': '42501'}, 1) is False
        assert should_retry(ConflictError(), 1) is False
        assert should_retry(ValueError('bug'), 1) is False

    def test_exhausted_transient_error_not_retried_again(self):
        assert should_retry(TransientError(), 1) is False


class TestToBookingError:
    """Tests for wrapping backend errors."""

    def test_wraps_by_category(self):
        assert isinstance(to_booking_error({'code': 'PGRST301'}), AuthError)
        assert isinstance(to_booking_error({'code': '42501'}), AccessDeniedError)
        wrapped = to_booking_error({'code': '503', 'message': 'unavailable'})
        assert isinstance(wrapped, TransientError)
        assert wrapped.details == {'code': '503'}

    def test_booking_error_passes_through(self):
        error = ConflictError()
        assert to_booking_error(error) is error


class TestWithRetry:
    """Tests for the with_retry decorator."""

    def test_recovers_after_transient_failures(self):
        calls = []

        @with_retry(max_attempts=3, backoff=0)
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise sqlite3.OperationalError('database is locked')
            return 'ok'

        assert flaky() == 'ok'
        assert len(calls) == 3

    def test_exhausted_retries_raise_transient_error(self):
        calls = []

        @with_retry(max_attempts=3, backoff=0)
        def always_down():
            calls.append(1)
            raise BackendError(code='503', message='service unavailable')

        with pytest.raises(TransientError) as exc_info:
            always_down()

        assert len(calls) == 3
        assert exc_info.value.details['attempts'] == 3
        assert exc_info.value.details['code'] == '503'

    def test_auth_error_not_retried(self):
        calls = []

        @with_retry(max_attempts=3, backoff=0)
        def expired():
            calls.append(1)
            raise BackendError(code='PGRST301', message='JWT expired')

        with pytest.raises(AuthError):
            expired()
        assert len(calls) == 1

    def test_permission_error_not_retried(self):
        calls = []

        @with_retry(max_attempts=3, backoff=0)
        def denied():
            calls.append(1)
            raise BackendError(code='42501', message='permission denied for table')

        with pytest.raises(AccessDeniedError):
            denied()
        assert len(calls) == 1

    def test_booking_errors_propagate_untouched(self):
        calls = []
        error = ConflictError(details={'resource_id': 1})

        @with_retry(max_attempts=3, backoff=0)
        def conflicting():
            calls.append(1)
            raise error

        with pytest.raises(ConflictError) as exc_info:
            conflicting()
        assert exc_info.value is error
        assert len(calls) == 1

    def test_fatal_errors_propagate(self):
        calls = []

        @with_retry(max_attempts=3, backoff=0)
        def buggy():
            calls.append(1)
            raise ValueError('bug')

        with pytest.raises(ValueError):
            buggy()
        assert len(calls) == 1

    def test_constraint_violation_not_retried(self):
        calls = []

        @with_retry(max_attempts=3, backoff=0)
        def insert_bad_row():
            calls.append(1)
            raise sqlite3.IntegrityError('CHECK constraint failed')

        with pytest.raises(sqlite3.IntegrityError):
            insert_bad_row()
        assert len(calls) == 1

    def test_reads_attempts_from_config(self, app):
        app.config['BOOKING_MAX_RETRIES'] = 2
        calls = []

        @with_retry()
        def always_locked():
            calls.append(1)
            raise sqlite3.OperationalError('database is locked')

        with pytest.raises(TransientError):
            always_locked()
        assert len(calls) == 2
