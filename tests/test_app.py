"""
Test application factory and configuration.
"""

import pytest
from app import create_app


class TestAppFactory:
    """Test Flask application factory."""

    def test_create_app_development(self):
        """Test app creation with development config."""
        app = create_app('development')
        assert app is not None
        assert app.config['DEBUG'] is True
        assert app.config['TESTING'] is False

    def test_create_app_test(self):
        """Test app creation with test config."""
        app = create_app('test')
        assert app is not None
        assert app.config['TESTING'] is True
        assert app.config['WTF_CSRF_ENABLED'] is False
        assert app.config['CALENDAR_SYNC_ENABLED'] is False

    def test_create_app_default(self):
        """Test app creation with default config."""
        app = create_app()
        assert app is not None

    def test_app_has_blueprints(self):
        """Test that all blueprints are registered."""
        app = create_app('test')
        blueprint_names = list(app.blueprints.keys())

        assert 'auth' in blueprint_names
        assert 'api' in blueprint_names

    def test_app_has_extensions(self):
        """Test that extensions are initialized."""
        app = create_app('test')

        assert hasattr(app, 'login_manager')
        assert 'csrf' in app.extensions

    def test_calendar_service_from_config(self, monkeypatch):
        """A configured sync URL registers the HTTP service."""
        from config import TestConfig
        from models.calendar_sync import HttpCalendarSyncService

        monkeypatch.setattr(TestConfig, 'CALENDAR_SYNC_URL', 'https://calendar.example.com/sync')
        app = create_app('test')

        assert isinstance(app.extensions['calendar_sync'], HttpCalendarSyncService)

    def test_no_calendar_service_without_url(self):
        app = create_app('test')
        assert app.extensions.get('calendar_sync') is None

    def test_api_blueprint_is_a_package(self):
        """The API blueprint package has its own __init__ module."""
        import blueprints.api

        assert blueprints.api.__file__.endswith('__init__.py')


class TestAppConfiguration:
    """Test application configuration."""

    def test_secret_key_set(self):
        """Test that secret key is configured."""
        app = create_app('test')
        assert app.config['SECRET_KEY'] is not None
        assert len(app.config['SECRET_KEY']) > 0

    def test_database_path_set(self):
        """Test that database path is configured."""
        app = create_app('test')
        assert 'DATABASE_PATH' in app.config

    def test_app_name_set(self):
        """Test that app name is configured."""
        app = create_app('test')
        assert app.config.get('APP_NAME') == 'Agenda'

    def test_production_requires_secret_key(self, monkeypatch):
        """Production refuses to start without a strong SECRET_KEY."""
        monkeypatch.delenv('SECRET_KEY', raising=False)
        with pytest.raises(ValueError):
            create_app('production')


class TestCLICommands:
    """Test CLI command registration."""

    def test_commands_registered(self):
        app = create_app('test')
        commands = app.cli.list_commands(None)

        assert 'init-db' in commands
        assert 'create-user' in commands
        assert 'sync-calendar' in commands

    def test_sync_calendar_without_service(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['sync-calendar'])

        assert 'No calendar sync service configured' in result.output

    def test_sync_calendar_delivers(self, app, venue, calendar):
        from models.reservation import create_reservation

        create_reservation(venue['venue_id'], venue['space_id'], 'Ana',
                           '2030-01-07T10:00:00', '2030-01-07T11:00:00')

        runner = app.test_cli_runner()
        result = runner.invoke(args=['sync-calendar', '--limit', '10'])

        assert 'Processed 1: 1 delivered' in result.output
        assert calendar.actions() == ['create']

    def test_create_user_with_venue(self, app, venue):
        from models.user import get_user_by_username
        from models.venue import is_venue_member

        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            'create-user', 'maria', 'maria@example.com',
            '--venue-id', str(venue['venue_id']),
            '--password', 'long-enough-pw'
        ])

        assert 'User created successfully' in result.output
        user = get_user_by_username('maria')
        assert is_venue_member(venue['venue_id'], user['id'])
