"""
User model and data access functions.
Staff accounts that act on venues; Flask-Login session integration.
"""

from werkzeug.security import generate_password_hash, check_password_hash

from database import get_db
from utils.errors import ValidationError
from utils.validators import validate_email


class User:
    """
    User class for Flask-Login integration.
    Wraps a users row with the properties Flask-Login expects.
    """

    def __init__(self, user_dict):
        self.id = user_dict['id']
        self.username = user_dict['username']
        self.email = user_dict['email']
        self.full_name = user_dict['full_name']
        self.active = user_dict['active']
        self.created_at = user_dict['created_at']
        self.last_login = user_dict.get('last_login')

    @property
    def is_authenticated(self):
        """Required by Flask-Login."""
        return True

    @property
    def is_active(self):
        """Required by Flask-Login."""
        return self.active == 1

    @property
    def is_anonymous(self):
        """Required by Flask-Login."""
        return False

    def get_id(self):
        """Required by Flask-Login. Returns user ID as string."""
        return str(self.id)


def get_user_by_id(user_id: int) -> dict:
    """
    Get user by ID.

    Returns:
        User dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM users WHERE id = ?', (user_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_user_by_username(username: str) -> dict:
    """
    Get user by username.

    Returns:
        User dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM users WHERE username = ?', (username,))
    row = cursor.fetchone()
    return dict(row) if row else None


def create_user(username: str, email: str, password: str, full_name: str = None) -> int:
    """
    Create new user with hashed password.

    Args:
        username: Unique username
        email: Unique email
        password: Plain text password (will be hashed)
        full_name: Display name

    Returns:
        int: New user ID

    Raises:
        ValidationError: Missing username, bad email or short password
    """
    if not username or not username.strip():
        raise ValidationError('Username is required')
    if not validate_email(email):
        raise ValidationError('Invalid email format', details={'email': email})
    if not password or len(password) < 8:
        raise ValidationError('Password must be at least 8 characters')

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO users (username, email, password_hash, full_name)
        VALUES (?, ?, ?, ?)
    ''', (username.strip(), email, generate_password_hash(password), full_name))
    return cursor.lastrowid


def update_last_login(user_id: int) -> None:
    """Update user's last login timestamp."""
    db = get_db()
    db.execute('''
        UPDATE users SET last_login = CURRENT_TIMESTAMP WHERE id = ?
    ''', (user_id,))


def check_password(user_dict: dict, password: str) -> bool:
    """
    Verify password against stored hash.

    Args:
        user_dict: User dictionary with password_hash
        password: Plain text password to verify

    Returns:
        True if password matches
    """
    if not user_dict or not password:
        return False
    return check_password_hash(user_dict['password_hash'], password)
