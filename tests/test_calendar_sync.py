"""
Tests for the calendar sync outbox and dispatcher.
"""

import pytest


def _book(venue, start='2030-01-07T10:00:00', end='2030-01-07T12:00:00', **kwargs):
    from models.reservation import create_reservation

    return create_reservation(venue['venue_id'], venue['space_id'], 'Ana', start, end, **kwargs)


def _dispatcher(app, **kwargs):
    from models.calendar_sync import CalendarSyncDispatcher

    dispatcher = CalendarSyncDispatcher.from_app(app)
    for name, value in kwargs.items():
        setattr(dispatcher, name, value)
    return dispatcher


class TestEnqueue:
    """Tests for queueing calendar jobs."""

    def test_disabled_queues_nothing(self, app, venue):
        from models.calendar_sync import get_sync_jobs

        reservation = _book(venue)
        assert reservation['warnings'] == []
        assert get_sync_jobs() == []

    def test_create_job_has_snapshot(self, app, venue, calendar):
        from models.calendar_sync import get_sync_jobs

        reservation = _book(venue, customer_email='ana@example.com')
        jobs = get_sync_jobs(reservation['id'])

        assert len(jobs) == 1
        assert jobs[0]['action'] == 'create'
        assert jobs[0]['status'] == 'pending'
        assert jobs[0]['payload']['customer_email'] == 'ana@example.com'
        assert jobs[0]['payload']['start_time'] == '2030-01-07T10:00:00+00:00'

    def test_enqueue_failure_does_not_fail_booking(self, app, venue, calendar):
        from database import get_db
        from models.reservation import get_reservation

        get_db().execute('DROP TABLE calendar_sync_queue')

        reservation = _book(venue)

        assert reservation['warnings'] == ['calendar_sync_failed']
        assert get_reservation(venue['venue_id'], reservation['id'])['status'] == 'CONFIRMED'

    def test_unknown_action_rejected(self, app, venue, calendar):
        from models.calendar_sync import enqueue_calendar_sync

        reservation = _book(venue)
        assert enqueue_calendar_sync(reservation, 'archive') is None


class TestDispatcher:
    """Tests for CalendarSyncDispatcher."""

    def test_create_sets_external_event_id(self, app, venue, calendar):
        from models.calendar_sync import get_sync_jobs
        from models.reservation import get_reservation

        reservation = _book(venue)
        stats = _dispatcher(app).dispatch_pending()

        assert stats['processed'] == 1
        assert stats['succeeded'] == 1
        assert get_reservation(venue['venue_id'], reservation['id'])['external_event_id'] == \
            f"evt-{reservation['id']}"
        assert get_sync_jobs(reservation['id'])[0]['status'] == 'done'

    def test_update_after_sync(self, app, venue, calendar):
        """Rescheduling a synced reservation queues an update, not a second create."""
        from models.calendar_sync import get_sync_jobs
        from models.reservation import update_reservation

        reservation = _book(venue)
        _dispatcher(app).dispatch_pending()

        update_reservation(venue['venue_id'], reservation['id'], start='2030-01-07T11:00:00')
        _dispatcher(app).dispatch_pending()

        assert [job['action'] for job in get_sync_jobs(reservation['id'])] == ['create', 'update']
        assert calendar.actions(reservation['id']) == ['create', 'update']

    def test_update_before_sync_keeps_single_create(self, app, venue, calendar):
        """An edit before delivery folds into the queued create."""
        from models.calendar_sync import get_sync_jobs
        from models.reservation import get_reservation, update_reservation

        reservation = _book(venue)
        result = update_reservation(venue['venue_id'], reservation['id'],
                                    start='2030-01-07T12:00:00', end='2030-01-07T13:00:00')
        assert result['warnings'] == []

        assert [job['action'] for job in get_sync_jobs(reservation['id'])] == ['create']

        _dispatcher(app).dispatch_pending()
        assert calendar.actions(reservation['id']) == ['create']
        assert calendar.payloads[0]['start_time'] == '2030-01-07T12:00:00+00:00'
        assert get_reservation(venue['venue_id'], reservation['id'])['external_event_id'] == \
            f"evt-{reservation['id']}"

    def test_create_requeued_after_failed_delivery(self, app, venue, calendar):
        """Only a pending create suppresses another one."""
        from models.calendar_sync import get_sync_jobs
        from models.reservation import update_reservation

        reservation = _book(venue)
        calendar.fail_next = 1
        _dispatcher(app, max_attempts=1).dispatch_pending()

        update_reservation(venue['venue_id'], reservation['id'], notes='Bring cables')

        jobs = get_sync_jobs(reservation['id'])
        assert [(job['action'], job['status']) for job in jobs] == \
            [('create', 'failed'), ('create', 'pending')]

    def test_job_timestamps_read_back(self, app, venue, calendar):
        """Queue rows stay readable after scheduling a retry and finishing."""
        from models.calendar_sync import get_sync_jobs

        reservation = _book(venue)
        calendar.fail_next = 1
        dispatcher = _dispatcher(app, backoff=0)

        assert dispatcher.dispatch_pending()['retrying'] == 1
        assert dispatcher.dispatch_pending()['succeeded'] == 1

        job = get_sync_jobs(reservation['id'])[0]
        assert job['status'] == 'done'
        assert isinstance(job['next_attempt_at'], str)
        assert job['next_attempt_at'].endswith('+00:00')
        assert job['processed_at'].endswith('+00:00')

    def test_transient_failure_retried(self, app, venue, calendar):
        from models.calendar_sync import get_sync_jobs

        reservation = _book(venue)
        calendar.fail_next = 1

        first = _dispatcher(app).dispatch_pending()
        assert first['retrying'] == 1
        job = get_sync_jobs(reservation['id'])[0]
        assert job['status'] == 'pending'
        assert job['attempts'] == 1
        assert 'calendar unavailable' in job['last_error']

        second = _dispatcher(app).dispatch_pending()
        assert second['succeeded'] == 1
        assert get_sync_jobs(reservation['id'])[0]['status'] == 'done'

    def test_permanent_failure(self, app, venue, calendar):
        from models.calendar_sync import get_sync_jobs
        from models.reservation import get_reservation

        reservation = _book(venue)
        calendar.fail_next = 5
        dispatcher = _dispatcher(app, max_attempts=2)

        assert dispatcher.dispatch_pending()['retrying'] == 1
        assert dispatcher.dispatch_pending()['failed'] == 1
        assert dispatcher.dispatch_pending()['processed'] == 0

        job = get_sync_jobs(reservation['id'])[0]
        assert job['status'] == 'failed'
        assert job['attempts'] == 2
        assert get_reservation(venue['venue_id'], reservation['id'])['status'] == 'CONFIRMED'

    def test_backoff_delays_retry(self, app, venue, calendar):
        reservation = _book(venue)
        calendar.fail_next = 1
        dispatcher = _dispatcher(app, backoff=3600)

        assert dispatcher.dispatch_pending()['retrying'] == 1
        assert dispatcher.dispatch_pending()['processed'] == 0
        assert calendar.actions(reservation['id']) == ['create']

    def test_stale_create_skipped(self, app, venue, calendar):
        """A reservation cancelled before delivery never reaches the calendar."""
        from models.reservation import cancel_reservation

        reservation = _book(venue)
        cancel_reservation(venue['venue_id'], reservation['id'])

        stats = _dispatcher(app).dispatch_pending()
        assert stats['skipped'] == 1
        assert calendar.calls == []

    def test_delete_outlives_reservation(self, app, venue, calendar):
        from models.calendar_sync import get_sync_jobs
        from models.reservation import delete_reservation

        reservation = _book(venue)
        _dispatcher(app).dispatch_pending()

        result = delete_reservation(venue['venue_id'], reservation['id'])
        assert result['warnings'] == []

        jobs = get_sync_jobs(reservation['id'])
        assert jobs[-1]['action'] == 'delete'
        assert jobs[-1]['payload']['customer_name'] == 'Ana'

        _dispatcher(app).dispatch_pending()
        assert calendar.actions(reservation['id']) == ['create', 'delete']

    def test_no_service_leaves_jobs_queued(self, app, venue, calendar):
        from models.calendar_sync import CalendarSyncDispatcher, get_sync_jobs

        _book(venue)
        stats = CalendarSyncDispatcher(None).dispatch_pending()

        assert stats['processed'] == 0
        assert len(get_sync_jobs(status='pending')) == 1


class FakeResponse:
    def __init__(self, status_code=200, data=None):
        self.status_code = status_code
        self._data = data
        self.content = b'{}' if data is not None else b''
        self.text = str(data)

    def json(self):
        return self._data

    def raise_for_status(self):
        import requests

        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} error')


class TestHttpCalendarSyncService:
    """Tests for the HTTP delivery service."""

    def test_posts_json(self, monkeypatch):
        from models.calendar_sync import HttpCalendarSyncService

        sent = {}

        def fake_post(url, json=None, headers=None, timeout=None):
            sent.update(url=url, json=json, headers=headers, timeout=timeout)
            return FakeResponse(data={'external_event_id': 'gcal-1'})

        monkeypatch.setattr('models.calendar_sync.requests.post', fake_post)

        service = HttpCalendarSyncService('https://calendar.example.com/sync', token='tok', timeout=5)
        result = service.sync({'id': 7, 'venue_id': 1, 'status': 'CONFIRMED'}, 'create')

        assert result == {'external_event_id': 'gcal-1'}
        assert sent['url'] == 'https://calendar.example.com/sync'
        assert sent['json']['action'] == 'create'
        assert sent['json']['booking_id'] == 7
        assert sent['headers']['Authorization'] == 'Bearer tok'
        assert sent['timeout'] == 5

    def test_http_error_raises(self, monkeypatch):
        import requests
        from models.calendar_sync import HttpCalendarSyncService

        monkeypatch.setattr('models.calendar_sync.requests.post',
                            lambda *args, **kwargs: FakeResponse(status_code=502, data={}))

        service = HttpCalendarSyncService('https://calendar.example.com/sync')
        with pytest.raises(requests.HTTPError):
            service.sync({'id': 7, 'venue_id': 1}, 'delete')

    def test_empty_body(self, monkeypatch):
        from models.calendar_sync import HttpCalendarSyncService

        monkeypatch.setattr('models.calendar_sync.requests.post',
                            lambda *args, **kwargs: FakeResponse(status_code=204))

        service = HttpCalendarSyncService('https://calendar.example.com/sync')
        assert service.sync({'id': 7, 'venue_id': 1}, 'delete') == {}
