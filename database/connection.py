"""
Database connection management.
Handles request-scoped connections, initialization, teardown and the
per-resource write lock used by the reservation engine.
"""

import logging
import sqlite3
from contextlib import contextmanager

from flask import g, current_app

logger = logging.getLogger(__name__)


def get_db():
    """
    Get the request-scoped database connection with row factory.

    The connection runs in autocommit mode: writes that must be atomic open
    an explicit transaction (see resource_lock).

    Returns:
        sqlite3.Connection: Database connection object
    """
    if 'db' not in g:
        db_path = current_app.config.get('DATABASE_PATH', 'instance/agenda.db')
        g.db = sqlite3.connect(
            db_path,
            timeout=current_app.config.get('DATABASE_TIMEOUT', 10),
            detect_types=sqlite3.PARSE_DECLTYPES,
            isolation_level=None
        )
        g.db.row_factory = sqlite3.Row
        # Enable foreign key constraints
        g.db.execute('PRAGMA foreign_keys = ON')
        # Enable WAL mode so calendar reads never block the booking writer
        g.db.execute('PRAGMA journal_mode = WAL')
    return g.db


def close_db(e=None):
    """
    Close database connection.

    Args:
        e: Exception if any (from Flask teardown context)
    """
    db = g.pop('db', None)
    if db is not None:
        if db.in_transaction:
            db.rollback()
        db.close()


@contextmanager
def resource_lock(resource_id: int, tenant_id: int):
    """
    Serialize writers on a bookable resource.

    Opens a BEGIN IMMEDIATE transaction, which takes SQLite's write lock
    before anything is read, then re-reads the resource row inside it. Any
    overlap check performed with the yielded cursor therefore sees the same
    rows the following insert/update will be checked against. Commits when
    the block exits normally, rolls back on any exception.

    Not re-entrant: only one resource lock may be held per connection.

    Args:
        resource_id: Resource being booked
        tenant_id: Venue the resource must belong to

    Yields:
        tuple: (cursor, resource dict or None when the resource does not
        exist in this venue)
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('BEGIN IMMEDIATE')
    try:
        cursor.execute('''
            SELECT * FROM resources
            WHERE id = ? AND venue_id = ?
        ''', (resource_id, tenant_id))
        row = cursor.fetchone()
        yield cursor, dict(row) if row else None
        db.commit()
    except Exception:
        db.rollback()
        raise


def init_db():
    """
    Initialize database: drop existing tables, create new schema, insert seed data.
    WARNING: This will delete all existing data!
    """
    from database.schema import drop_tables, create_tables, create_indexes
    from database.seed import seed_database

    db = get_db()

    # Foreign key pragma is ignored inside a transaction, so drop first
    drop_tables(db)

    db.execute('BEGIN')
    try:
        create_tables(db)
        create_indexes(db)
        seed_database(db)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Database initialized at %s", current_app.config.get('DATABASE_PATH'))
