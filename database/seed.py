"""
Database seed data.
Initial data population for fresh database installations.
"""

from werkzeug.security import generate_password_hash


def seed_database(db):
    """Insert initial seed data."""

    # 1. Admin user
    db.execute('''
        INSERT INTO users (username, email, password_hash, full_name)
        VALUES (?, ?, ?, ?)
    ''', ('admin', 'admin@agenda.local', generate_password_hash('admin123'), 'Administrator'))
    admin_id = db.execute('SELECT id FROM users WHERE username = ?', ('admin',)).fetchone()[0]

    # 2. Demo venue with the admin as owner
    db.execute('INSERT INTO venues (name) VALUES (?)', ('Demo Venue',))
    venue_id = db.execute('SELECT id FROM venues WHERE name = ?', ('Demo Venue',)).fetchone()[0]

    db.execute('''
        INSERT INTO venue_members (venue_id, user_id, role)
        VALUES (?, ?, 'owner')
    ''', (venue_id, admin_id))

    # 3. Bookable resources
    resources_data = [
        ('Sala 1', 'space', 'hourly', 100.0),
        ('Professional', 'professional', 'flat', 80.0),
    ]

    for name, kind, pricing_mode, rate in resources_data:
        db.execute('''
            INSERT INTO resources (venue_id, name, kind, pricing_mode, rate)
            VALUES (?, ?, ?, ?, ?)
        ''', (venue_id, name, kind, pricing_mode, rate))
