"""
Authentication routes: login, logout.
JSON session endpoints backed by Flask-Login.
"""

from flask import Blueprint
from flask_login import current_user, login_required, login_user, logout_user

from blueprints.auth.forms import LoginForm
from models.user import User, check_password, get_user_by_username, update_last_login
from utils.api_response import api_error, api_success
from utils.messages import get_message
from utils.permissions import invalidate_venue_cache, load_user_venues

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Start a session.

    Request JSON:
        {"username": "admin", "password": "...", "remember_me": false}
    """
    form = LoginForm()

    if not form.validate_on_submit():
        return api_error('validation', status=400, details=form.errors)

    user_dict = get_user_by_username(form.username.data)

    if user_dict is None or not check_password(user_dict, form.password.data):
        return api_error('invalid_credentials', status=401)

    if not user_dict.get('active'):
        return api_error('auth', 'Account disabled', status=401)

    user = User(user_dict)
    login_user(user, remember=form.remember_me.data)
    update_last_login(user.id)

    # Cache venue memberships in session
    venue_ids = load_user_venues(user.id)

    return api_success(
        'login_success',
        data={'id': user.id, 'username': user.username, 'venue_ids': sorted(venue_ids)},
        message=get_message('login_success', name=user.full_name or user.username)
    )


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """End the current session."""
    username = current_user.username
    logout_user()
    invalidate_venue_cache()
    return api_success('logout_success', data={'username': username})
