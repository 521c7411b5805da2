"""
Flask application configuration classes.
Provides configuration for development, production, and testing environments.
"""

import os
from datetime import timedelta


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes')


class Config:
    """Base configuration class with common settings."""

    # Secret key for session management and CSRF protection
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database configuration
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or 'instance/agenda.db'
    # Seconds a writer waits on the resource lock before SQLite reports "database is locked"
    DATABASE_TIMEOUT = float(os.environ.get('DATABASE_TIMEOUT', 10))

    # Security settings
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = 3600
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = False
    PERMANENT_SESSION_LIFETIME = timedelta(
        hours=int(os.environ.get('SESSION_TIMEOUT_HOURS', 8))
    )

    # Default venue timezone (venues may override)
    TIMEZONE = os.environ.get('TIMEZONE', 'America/Sao_Paulo')

    # Pricing
    CURRENCY_DECIMALS = 2

    # Transient backend errors
    BOOKING_MAX_RETRIES = int(os.environ.get('BOOKING_MAX_RETRIES', 3))
    BOOKING_RETRY_BACKOFF = float(os.environ.get('BOOKING_RETRY_BACKOFF', 0.2))

    # Recurring bookings
    RECURRING_MAX_OCCURRENCES = int(os.environ.get('RECURRING_MAX_OCCURRENCES', 52))

    # External calendar sync
    CALENDAR_SYNC_ENABLED = _env_bool('CALENDAR_SYNC_ENABLED')
    CALENDAR_SYNC_URL = os.environ.get('CALENDAR_SYNC_URL')
    CALENDAR_SYNC_TOKEN = os.environ.get('CALENDAR_SYNC_TOKEN')
    CALENDAR_SYNC_TIMEOUT = float(os.environ.get('CALENDAR_SYNC_TIMEOUT', 10))
    CALENDAR_SYNC_MAX_ATTEMPTS = int(os.environ.get('CALENDAR_SYNC_MAX_ATTEMPTS', 5))
    CALENDAR_SYNC_BACKOFF = float(os.environ.get('CALENDAR_SYNC_BACKOFF', 30))
    CALENDAR_SYNC_WORKER = _env_bool('CALENDAR_SYNC_WORKER')
    CALENDAR_SYNC_POLL_INTERVAL = float(os.environ.get('CALENDAR_SYNC_POLL_INTERVAL', 5))

    # Application settings
    APP_NAME = 'Agenda'
    APP_VERSION = '1.0.0'


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    TESTING = False
    SESSION_COOKIE_SECURE = False
    WTF_CSRF_SSL_STRICT = False


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = os.environ.get('SESSION_COOKIE_SECURE', 'true').lower() == 'true'
    WTF_CSRF_SSL_STRICT = SESSION_COOKIE_SECURE

    SECRET_KEY = os.environ.get('SECRET_KEY') or Config.SECRET_KEY
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or Config.DATABASE_PATH

    PREFERRED_URL_SCHEME = 'https' if SESSION_COOKIE_SECURE else 'http'

    @classmethod
    def validate(cls) -> None:
        """Validate that required production environment variables are set."""
        secret_key = os.environ.get('SECRET_KEY')
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable must be set in production")
        if len(secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters in production")
        if not os.environ.get('DATABASE_PATH'):
            raise ValueError("DATABASE_PATH environment variable must be set in production")
        if cls.CALENDAR_SYNC_ENABLED and not cls.CALENDAR_SYNC_URL:
            raise ValueError("CALENDAR_SYNC_URL must be set when calendar sync is enabled")


class TestConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    DEBUG = True
    WTF_CSRF_ENABLED = False  # Disable CSRF for tests
    DATABASE_PATH = os.environ.get('DATABASE_PATH', ':memory:')
    SECRET_KEY = 'test-secret-key'
    TIMEZONE = 'UTC'
    BOOKING_RETRY_BACKOFF = 0
    CALENDAR_SYNC_ENABLED = False
    CALENDAR_SYNC_WORKER = False
    CALENDAR_SYNC_BACKOFF = 0


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'test': TestConfig,
    'default': DevelopmentConfig
}
