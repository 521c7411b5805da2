"""
External calendar synchronization.

Reservation writes never talk to the calendar directly. After a reservation
transaction commits, the lifecycle code appends a job to calendar_sync_queue
(an outbox); CalendarSyncDispatcher later delivers queued jobs to the
configured CalendarSyncService, retrying with exponential backoff. Failures
are logged and recorded on the job, and never reach the reservation write.

Jobs carry a snapshot of the reservation so a 'delete' can still be
delivered after the row itself was removed.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from datetime import timedelta

import requests
from flask import current_app

from database import get_db
from utils.datetime_helpers import format_timestamp, get_now

logger = logging.getLogger(__name__)

SYNC_ACTIONS = ('create', 'update', 'delete')

SNAPSHOT_FIELDS = (
    'id', 'venue_id', 'resource_id', 'professional_id', 'customer_name',
    'customer_email', 'customer_phone', 'start_time', 'end_time', 'status',
    'notes', 'external_event_id'
)


# =============================================================================
# SERVICES
# =============================================================================

class CalendarSyncService(ABC):
    """Delivers one reservation change to an external calendar."""

    @abstractmethod
    def sync(self, payload: dict, action: str) -> dict:
        """
        Push a change.

        Args:
            payload: Reservation snapshot (see SNAPSHOT_FIELDS)
            action: 'create', 'update' or 'delete'

        Returns:
            dict: May contain 'external_event_id' for create/update

        Raises:
            Exception: Any failure; the dispatcher schedules a retry
        """


class HttpCalendarSyncService(CalendarSyncService):
    """Posts changes as JSON to a calendar sync endpoint."""

    def __init__(self, url: str, token: str = None, timeout: float = 10):
        self.url = url
        self.token = token
        self.timeout = timeout

    def sync(self, payload: dict, action: str) -> dict:
        headers = {'Content-Type': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'

        body = {
            'action': action,
            'booking_id': payload['id'],
            'venue_id': payload['venue_id'],
            'booking': payload,
        }

        response = requests.post(self.url, json=body, headers=headers, timeout=self.timeout)
        if response.status_code >= 400:
            logger.error(
                "Calendar sync %s for reservation %s returned %s: %s",
                action, payload['id'], response.status_code, response.text[:500]
            )
        response.raise_for_status()

        if not response.content:
            return {}
        data = response.json()
        return data if isinstance(data, dict) else {}


def init_calendar_sync(app):
    """Register the configured calendar sync service on the app."""
    if app.extensions.get('calendar_sync') is not None:
        return

    url = app.config.get('CALENDAR_SYNC_URL')
    if url:
        app.extensions['calendar_sync'] = HttpCalendarSyncService(
            url,
            token=app.config.get('CALENDAR_SYNC_TOKEN'),
            timeout=app.config.get('CALENDAR_SYNC_TIMEOUT', 10)
        )
    elif app.config.get('CALENDAR_SYNC_ENABLED'):
        app.logger.warning('Calendar sync enabled without CALENDAR_SYNC_URL; jobs will queue up')


def get_sync_service() -> CalendarSyncService:
    return current_app.extensions.get('calendar_sync')


def sync_enabled() -> bool:
    return bool(current_app.config.get('CALENDAR_SYNC_ENABLED'))


# =============================================================================
# OUTBOX
# =============================================================================

def reservation_snapshot(reservation: dict) -> dict:
    """Fields the calendar needs, detached from the database row."""
    return {field: reservation.get(field) for field in SNAPSHOT_FIELDS}


def enqueue_calendar_sync(reservation: dict, action: str) -> int:
    """
    Queue a calendar change for a committed reservation.

    Fire-and-forget: any failure is logged and reported as None, never raised.
    A 'create' is not queued twice: while one is still pending, its job ID is
    returned instead.

    Args:
        reservation: Reservation dict as committed
        action: 'create', 'update' or 'delete'

    Returns:
        int: Queue job ID, or None if sync is disabled or queueing failed
    """
    if not sync_enabled():
        return None

    if action not in SYNC_ACTIONS:
        logger.error("Unknown calendar sync action %r for reservation %s",
                     action, reservation.get('id'))
        return None

    try:
        db = get_db()
        cursor = db.cursor()

        if action == 'create':
            # An undelivered create re-reads the row on delivery
            cursor.execute('''
                SELECT id FROM calendar_sync_queue
                WHERE reservation_id = ? AND action = 'create' AND status = 'pending'
                ORDER BY id LIMIT 1
            ''', (reservation['id'],))
            queued = cursor.fetchone()
            if queued:
                logger.debug("Calendar create for reservation %s already queued as job %s",
                             reservation['id'], queued['id'])
                return queued['id']

        cursor.execute('''
            INSERT INTO calendar_sync_queue
            (venue_id, reservation_id, action, payload, next_attempt_at)
            VALUES (?, ?, ?, ?, ?)
        ''', (
            reservation['venue_id'],
            reservation['id'],
            action,
            json.dumps(reservation_snapshot(reservation)),
            format_timestamp(get_now())
        ))
        logger.debug("Queued calendar %s for reservation %s", action, reservation['id'])
        return cursor.lastrowid

    except Exception as e:
        # Calendar sync must never fail the reservation write
        logger.error("Failed to queue calendar %s for reservation %s: %s",
                     action, reservation.get('id'), e, exc_info=True)
        return None


def get_sync_jobs(reservation_id: int = None, status: str = None) -> list:
    """
    List queued calendar jobs.

    Args:
        reservation_id: Filter by reservation (optional)
        status: 'pending', 'done' or 'failed' (optional)

    Returns:
        List of job dicts with decoded payload
    """
    db = get_db()
    cursor = db.cursor()

    query = 'SELECT * FROM calendar_sync_queue WHERE 1=1'
    params = []

    if reservation_id is not None:
        query += ' AND reservation_id = ?'
        params.append(reservation_id)

    if status:
        query += ' AND status = ?'
        params.append(status)

    query += ' ORDER BY id'

    cursor.execute(query, params)
    jobs = []
    for row in cursor.fetchall():
        job = dict(row)
        job['payload'] = json.loads(job['payload'])
        jobs.append(job)
    return jobs


# =============================================================================
# DISPATCH
# =============================================================================

class CalendarSyncDispatcher:
    """
    Delivers pending outbox jobs in queue order.

    Usage:
        dispatcher = CalendarSyncDispatcher(get_sync_service())
        stats = dispatcher.dispatch_pending()
    """

    def __init__(self, service: CalendarSyncService, max_attempts: int = 5, backoff: float = 30):
        self.service = service
        self.max_attempts = max_attempts
        self.backoff = backoff

    @classmethod
    def from_app(cls, app=None):
        app = app or current_app
        return cls(
            app.extensions.get('calendar_sync'),
            max_attempts=app.config.get('CALENDAR_SYNC_MAX_ATTEMPTS', 5),
            backoff=app.config.get('CALENDAR_SYNC_BACKOFF', 30)
        )

    def dispatch_pending(self, limit: int = 50) -> dict:
        """
        Deliver due jobs.

        Args:
            limit: Maximum jobs handled in this pass

        Returns:
            dict: {'processed', 'succeeded', 'skipped', 'retrying', 'failed'}
        """
        stats = {'processed': 0, 'succeeded': 0, 'skipped': 0, 'retrying': 0, 'failed': 0}

        if self.service is None:
            logger.debug("No calendar sync service configured; leaving jobs queued")
            return stats

        db = get_db()
        cursor = db.cursor()
        cursor.execute('''
            SELECT * FROM calendar_sync_queue
            WHERE status = 'pending' AND next_attempt_at <= ?
            ORDER BY id
            LIMIT ?
        ''', (format_timestamp(get_now()), limit))
        jobs = [dict(row) for row in cursor.fetchall()]

        for job in jobs:
            outcome = self._deliver(job)
            stats['processed'] += 1
            stats[outcome] += 1

        if jobs:
            logger.info("Calendar sync pass: %s", stats)
        return stats

    def _deliver(self, job: dict) -> str:
        db = get_db()
        cursor = db.cursor()
        action = job['action']
        payload = json.loads(job['payload'])

        cursor.execute('SELECT * FROM reservations WHERE id = ?', (job['reservation_id'],))
        row = cursor.fetchone()
        current = dict(row) if row else None

        if action in ('create', 'update'):
            if current is None or current['status'] in ('CANCELLED', 'FINALIZED'):
                # Superseded before delivery: nothing to put on the calendar
                self._finish(job, 'done', note='skipped: reservation no longer active')
                return 'skipped'
            payload = reservation_snapshot(current)
        elif current is not None and current.get('external_event_id'):
            payload['external_event_id'] = current['external_event_id']

        try:
            result = self.service.sync(payload, action) or {}
        except Exception as e:
            return self._schedule_retry(job, e)

        if action == 'delete':
            cursor.execute('''
                UPDATE reservations SET external_event_id = NULL WHERE id = ?
            ''', (job['reservation_id'],))
        elif result.get('external_event_id'):
            cursor.execute('''
                UPDATE reservations SET external_event_id = ? WHERE id = ?
            ''', (result['external_event_id'], job['reservation_id']))

        self._finish(job, 'done')
        return 'succeeded'

    def _schedule_retry(self, job: dict, error: Exception) -> str:
        attempts = job['attempts'] + 1

        if attempts >= self.max_attempts:
            logger.error("Calendar %s for reservation %s failed permanently after %d attempts: %s",
                         job['action'], job['reservation_id'], attempts, error)
            self._finish(job, 'failed', note=str(error), attempts=attempts)
            return 'failed'

        next_attempt = get_now() + timedelta(seconds=self.backoff * (2 ** (attempts - 1)))
        logger.warning("Calendar %s for reservation %s failed (attempt %d/%d), retry at %s: %s",
                       job['action'], job['reservation_id'], attempts, self.max_attempts,
                       format_timestamp(next_attempt), error)

        db = get_db()
        db.execute('''
            UPDATE calendar_sync_queue
            SET attempts = ?, last_error = ?, next_attempt_at = ?
            WHERE id = ?
        ''', (attempts, str(error)[:500], format_timestamp(next_attempt), job['id']))
        return 'retrying'

    def _finish(self, job: dict, status: str, note: str = None, attempts: int = None):
        db = get_db()
        db.execute('''
            UPDATE calendar_sync_queue
            SET status = ?, last_error = ?, attempts = ?, processed_at = ?
            WHERE id = ?
        ''', (
            status,
            note[:500] if note else None,
            attempts if attempts is not None else job['attempts'] + 1,
            format_timestamp(get_now()),
            job['id']
        ))


def start_sync_worker(app) -> threading.Thread:
    """
    Run the dispatcher on a daemon thread until app.extensions['calendar_sync_stop'] is set.

    Returns:
        The started thread
    """
    stop_event = threading.Event()
    interval = app.config.get('CALENDAR_SYNC_POLL_INTERVAL', 5)

    def run():
        logger.info("Calendar sync worker started (every %ss)", interval)
        while not stop_event.wait(interval):
            with app.app_context():
                try:
                    CalendarSyncDispatcher.from_app(app).dispatch_pending()
                except Exception:
                    logger.exception("Calendar sync pass crashed")
        logger.info("Calendar sync worker stopped")

    thread = threading.Thread(target=run, name='calendar-sync', daemon=True)
    app.extensions['calendar_sync_stop'] = stop_event
    thread.start()
    return thread
