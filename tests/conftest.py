"""
Pytest configuration and fixtures.
Ensures tests use an isolated test database, not the production database.
"""

import os
import tempfile

import pytest

from models.calendar_sync import CalendarSyncService

# Set test database path BEFORE importing app
# This ensures all tests use an isolated database
TEST_DB_PATH = os.path.join(tempfile.gettempdir(), 'agenda_test.db')
os.environ['DATABASE_PATH'] = TEST_DB_PATH


class FakeCalendarService(CalendarSyncService):
    """Records deliveries; fails the next ``fail_next`` calls."""

    def __init__(self):
        self.calls = []
        self.payloads = []
        self.fail_next = 0

    def sync(self, payload, action):
        self.calls.append((action, payload['id']))
        self.payloads.append(payload)
        if self.fail_next:
            self.fail_next -= 1
            raise ConnectionError('calendar unavailable')
        if action == 'delete':
            return {}
        return {'external_event_id': f"evt-{payload['id']}"}

    def actions(self, reservation_id=None):
        return [a for a, rid in self.calls if reservation_id is None or rid == reservation_id]


@pytest.fixture(scope='session', autouse=True)
def setup_test_environment():
    """Set up test environment before any tests run."""
    os.environ['FLASK_ENV'] = 'test'
    yield


@pytest.fixture
def app(tmp_path):
    """Create test application with an isolated database file per test."""
    from app import create_app
    from database import init_db

    app = create_app('test')
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    app.config['DATABASE_PATH'] = str(tmp_path / 'agenda_test.db')

    with app.app_context():
        init_db()
        yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def authenticated_client(app, client):
    """Test client logged in as the seeded admin."""
    response = client.post('/auth/login', json={
        'username': 'admin',
        'password': 'admin123'
    })
    assert response.status_code == 200
    return client


@pytest.fixture
def venue(app):
    """IDs of the seeded venue, its resources and admin user."""
    from database import get_db

    db = get_db()
    venue_id = db.execute("SELECT id FROM venues WHERE name = 'Demo Venue'").fetchone()['id']
    space_id = db.execute("SELECT id FROM resources WHERE name = 'Sala 1'").fetchone()['id']
    professional_id = db.execute("SELECT id FROM resources WHERE kind = 'professional'").fetchone()['id']
    admin_id = db.execute("SELECT id FROM users WHERE username = 'admin'").fetchone()['id']

    return {
        'venue_id': venue_id,
        'space_id': space_id,
        'professional_id': professional_id,
        'admin_id': admin_id,
    }


@pytest.fixture
def calendar(app):
    """Enable calendar sync with a recording fake service."""
    service = FakeCalendarService()
    app.config['CALENDAR_SYNC_ENABLED'] = True
    app.extensions['calendar_sync'] = service
    return service
