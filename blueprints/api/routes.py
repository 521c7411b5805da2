"""
API routes for JSON endpoints.
Reservation and service order routes live in their own modules and are
registered on this blueprint.
"""

from flask import Blueprint, current_app, jsonify

from blueprints.api import reservations, service_orders

api_bp = Blueprint('api', __name__)


@api_bp.route('/health')
def health_check():
    """
    Health check endpoint (no authentication required).

    Returns:
        JSON with status and version
    """
    return jsonify({
        'status': 'ok',
        'version': current_app.config.get('APP_VERSION', '1.0.0'),
        'app': current_app.config.get('APP_NAME', 'Agenda')
    })


# Register all route functions on the blueprint
reservations.register_routes(api_bp)
service_orders.register_routes(api_bp)
