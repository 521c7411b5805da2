"""
Agenda - Venue Booking Engine
Flask application factory and initialization
"""

import os
import click
import logging
from flask import Flask
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import configuration
from config import config

# Import extensions
from extensions import login_manager, csrf

# Import database functions
from database import close_db, init_db


def create_app(config_name=None):
    """
    Application factory for Flask app.

    Args:
        config_name: Configuration name ('development', 'production', 'test')

    Returns:
        Flask application instance
    """
    # Determine config
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # Create Flask app
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])
    if hasattr(config[config_name], 'validate'):
        config[config_name].validate()

    # Initialize extensions
    initialize_extensions(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_cli_commands(app)

    # Register teardown handlers
    register_teardown_handlers(app)

    # Configure logging
    configure_logging(app)

    # Background calendar delivery
    if app.config.get('CALENDAR_SYNC_ENABLED') and app.config.get('CALENDAR_SYNC_WORKER'):
        from models.calendar_sync import start_sync_worker
        start_sync_worker(app)

    return app


def initialize_extensions(app):
    """Initialize Flask extensions."""
    from models.calendar_sync import init_calendar_sync

    # Initialize Flask-Login
    login_manager.init_app(app)
    # Initialize CSRF Protection
    csrf.init_app(app)
    # Calendar sync service
    init_calendar_sync(app)


def register_blueprints(app):
    """Register Flask blueprints."""
    # Import blueprints
    from blueprints.auth.routes import auth_bp
    from blueprints.api.routes import api_bp

    # Register blueprints
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(api_bp, url_prefix='/api')


def register_error_handlers(app):
    """Register error handlers."""
    from blueprints.api.errors import register_api_error_handlers

    register_api_error_handlers(app)


def register_cli_commands(app):
    """Register Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db_command():
        """Initialize database with schema and seed data."""
        click.echo('Initializing database...')
        with app.app_context():
            init_db()
        click.echo('Database initialized successfully!')

    @app.cli.command('create-user')
    @click.argument('username')
    @click.argument('email')
    @click.option('--venue-id', type=int, help='Venue to grant membership to')
    @click.password_option()
    def create_user_command(username, email, venue_id, password):
        """Create a new user."""
        from models.user import create_user
        from models.venue import add_venue_member
        from utils.errors import BookingError

        with app.app_context():
            try:
                user_id = create_user(username=username, email=email, password=password)
                if venue_id:
                    add_venue_member(venue_id, user_id, role='staff')
                click.echo(f'User created successfully! ID: {user_id}')
            except BookingError as e:
                click.echo(f'Error creating user: {e.message}', err=True)

    @app.cli.command('sync-calendar')
    @click.option('--limit', default=50, show_default=True, help='Maximum jobs to deliver')
    def sync_calendar_command(limit):
        """Deliver pending calendar sync jobs once."""
        from models.calendar_sync import CalendarSyncDispatcher

        with app.app_context():
            dispatcher = CalendarSyncDispatcher.from_app(app)
            if dispatcher.service is None:
                click.echo('No calendar sync service configured (CALENDAR_SYNC_URL)', err=True)
                return
            stats = dispatcher.dispatch_pending(limit=limit)
        click.echo(
            f"Processed {stats['processed']}: {stats['succeeded']} delivered, "
            f"{stats['skipped']} skipped, {stats['retrying']} retrying, {stats['failed']} failed"
        )


def register_teardown_handlers(app):
    """Register teardown handlers."""

    @app.teardown_appcontext
    def teardown_db(error):
        """Close database connection at end of request."""
        close_db(error)


def configure_logging(app):
    """Configure application logging."""
    if not app.debug and not app.testing:
        # Production logging
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = logging.FileHandler('logs/agenda.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s %(name)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        # Module loggers (models.*, utils.*) share the file
        root_logger = logging.getLogger()
        root_logger.addHandler(file_handler)
        root_logger.setLevel(logging.INFO)

        app.logger.setLevel(logging.INFO)
        app.logger.info('Agenda startup')
    else:
        # Development logging
        app.logger.setLevel(logging.DEBUG)
        logging.getLogger().setLevel(logging.DEBUG)


# Create application instance for development server
if __name__ == '__main__':
    app = create_app()
    # host='0.0.0.0' allows access from other devices on the network
    app.run(host='0.0.0.0', debug=True)
