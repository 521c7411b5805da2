"""
Database schema definitions.
Table creation, indexes, and structure management.

Reservation times and calendar job schedules are stored as ISO 8601 strings
normalized to UTC ('YYYY-MM-DDTHH:MM:SS+00:00'), so lexical comparison in
SQL matches chronological order. Those columns are declared TEXT: the
sqlite3 TIMESTAMP converter only parses the space-separated form.
"""


def drop_tables(db):
    """Drop all existing tables."""
    # Disable foreign key constraints before dropping
    db.execute('PRAGMA foreign_keys = OFF')

    tables = [
        'calendar_sync_queue',
        'service_order_items',
        'service_orders',
        'reservation_status_history',
        'reservations',
        'customers',
        'resources',
        'venue_members',
        'venues',
        'users'
    ]

    for table in tables:
        db.execute(f'DROP TABLE IF EXISTS {table}')

    # Re-enable foreign key constraints
    db.execute('PRAGMA foreign_keys = ON')


def create_tables(db):
    """Create all database tables."""

    # 1. Users & tenants
    db.execute('''
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT UNIQUE NOT NULL,
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            full_name TEXT,
            active INTEGER DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            last_login TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE venues (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            timezone TEXT,
            active INTEGER DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE venue_members (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            venue_id INTEGER NOT NULL REFERENCES venues(id) ON DELETE CASCADE,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            role TEXT NOT NULL DEFAULT 'staff',
            active INTEGER DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(venue_id, user_id)
        )
    ''')

    # 2. Bookable resources (spaces and professionals)
    db.execute('''
        CREATE TABLE resources (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            venue_id INTEGER NOT NULL REFERENCES venues(id),
            name TEXT NOT NULL,
            kind TEXT NOT NULL DEFAULT 'space'
                CHECK(kind IN ('space', 'professional')),
            pricing_mode TEXT NOT NULL DEFAULT 'hourly'
                CHECK(pricing_mode IN ('hourly', 'flat')),
            rate REAL NOT NULL DEFAULT 0 CHECK(rate >= 0),
            active INTEGER DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 3. Customers
    db.execute('''
        CREATE TABLE customers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            venue_id INTEGER NOT NULL REFERENCES venues(id),
            name TEXT NOT NULL,
            email TEXT,
            phone TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 4. Reservations
    db.execute('''
        CREATE TABLE reservations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            venue_id INTEGER NOT NULL REFERENCES venues(id),
            resource_id INTEGER NOT NULL REFERENCES resources(id),
            professional_id INTEGER REFERENCES resources(id),
            customer_id INTEGER REFERENCES customers(id) ON DELETE SET NULL,
            customer_name TEXT NOT NULL,
            customer_email TEXT,
            customer_phone TEXT,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'CONFIRMED'
                CHECK(status IN ('PENDING', 'CONFIRMED', 'CANCELLED', 'FINALIZED')),
            booking_kind TEXT NOT NULL DEFAULT 'space'
                CHECK(booking_kind IN ('space', 'service')),
            space_total REAL NOT NULL DEFAULT 0,
            grand_total REAL NOT NULL DEFAULT 0,
            external_event_id TEXT,
            metadata TEXT,
            notes TEXT,
            created_by TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            CHECK(start_time < end_time)
        )
    ''')

    db.execute('''
        CREATE TABLE reservation_status_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            reservation_id INTEGER NOT NULL REFERENCES reservations(id) ON DELETE CASCADE,
            from_status TEXT,
            to_status TEXT NOT NULL,
            changed_by TEXT,
            notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 5. Calendar sync outbox (no FK: delete jobs outlive their reservation)
    db.execute('''
        CREATE TABLE calendar_sync_queue (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            venue_id INTEGER NOT NULL,
            reservation_id INTEGER NOT NULL,
            action TEXT NOT NULL CHECK(action IN ('create', 'update', 'delete')),
            payload TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK(status IN ('pending', 'done', 'failed')),
            attempts INTEGER NOT NULL DEFAULT 0,
            last_error TEXT,
            next_attempt_at TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            processed_at TEXT
        )
    ''')

    # 6. Service orders
    db.execute('''
        CREATE TABLE service_orders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            venue_id INTEGER NOT NULL REFERENCES venues(id),
            reservation_id INTEGER REFERENCES reservations(id) ON DELETE SET NULL,
            customer_id INTEGER REFERENCES customers(id) ON DELETE SET NULL,
            customer_name TEXT NOT NULL,
            description TEXT,
            order_type TEXT NOT NULL DEFAULT 'simple'
                CHECK(order_type IN ('simple', 'complete')),
            status TEXT NOT NULL DEFAULT 'open',
            discount REAL NOT NULL DEFAULT 0,
            tax_rate REAL NOT NULL DEFAULT 0,
            subtotal REAL NOT NULL DEFAULT 0,
            tax_amount REAL NOT NULL DEFAULT 0,
            total REAL NOT NULL DEFAULT 0,
            created_by TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE service_order_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            service_order_id INTEGER NOT NULL REFERENCES service_orders(id) ON DELETE CASCADE,
            description TEXT NOT NULL,
            quantity REAL NOT NULL DEFAULT 1,
            unit_price REAL NOT NULL DEFAULT 0,
            subtotal REAL NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')


def create_indexes(db):
    """Create performance indexes."""
    indexes = [
        'CREATE INDEX idx_reservations_resource_time ON reservations(resource_id, start_time, end_time)',
        'CREATE INDEX idx_reservations_venue_time ON reservations(venue_id, start_time)',
        'CREATE INDEX idx_reservations_status ON reservations(status)',
        'CREATE INDEX idx_status_history_reservation ON reservation_status_history(reservation_id)',
        'CREATE INDEX idx_sync_queue_pending ON calendar_sync_queue(status, next_attempt_at)',
        'CREATE INDEX idx_resources_venue ON resources(venue_id)',
        'CREATE INDEX idx_members_user ON venue_members(user_id)',
        'CREATE INDEX idx_order_items_order ON service_order_items(service_order_id)',
    ]

    for index_sql in indexes:
        db.execute(index_sql)
