"""
Service order API endpoints.
"""

from flask import request
from flask_login import current_user

from models.service_order import (
    add_service_order_item,
    create_service_order,
    get_service_order,
    list_service_orders,
    remove_service_order_item,
    update_service_order,
    update_service_order_item,
)
from utils.api_response import api_success
from utils.decorators import venue_member_required
from utils.errors import NotFoundError
from utils.helpers import json_body, pick, require_fields

ORDER_FIELDS = (
    'description', 'order_type', 'reservation_id', 'customer_id',
    'discount', 'tax_rate', 'items'
)

ORDER_UPDATE_FIELDS = ('discount', 'tax_rate', 'status', 'description', 'order_type')

ITEM_FIELDS = ('description', 'quantity', 'unit_price')


def register_routes(bp):
    """Register service order API routes on the blueprint."""

    @bp.route('/venues/<int:venue_id>/service-orders', methods=['GET'])
    @venue_member_required
    def list_venue_service_orders(venue_id):
        """List orders, optionally for one reservation (?reservation_id=)."""
        orders = list_service_orders(venue_id, request.args.get('reservation_id', type=int))
        return api_success('service_orders', data=orders, message='OK')

    @bp.route('/venues/<int:venue_id>/service-orders', methods=['POST'])
    @venue_member_required
    def create_venue_service_order(venue_id):
        """
        Create an order with items.

        Request JSON:
        {
            "customer_name": "Ana",
            "order_type": "complete",
            "tax_rate": 5,
            "discount": 10,
            "items": [{"description": "Labor", "quantity": 2, "unit_price": 50}]
        }
        """
        payload = json_body()
        require_fields(payload, 'customer_name')
        order = create_service_order(
            venue_id,
            payload['customer_name'],
            created_by=current_user.username,
            user_id=current_user.id,
            **pick(payload, ORDER_FIELDS)
        )
        return api_success('service_order_created', data=order, status=201)

    @bp.route('/venues/<int:venue_id>/service-orders/<int:order_id>', methods=['GET'])
    @venue_member_required
    def get_venue_service_order(venue_id, order_id):
        """Get one order with items."""
        order = get_service_order(venue_id, order_id)
        if order is None:
            raise NotFoundError('Service order not found', details={'service_order_id': order_id})
        return api_success('service_order', data=order, message='OK')

    @bp.route('/venues/<int:venue_id>/service-orders/<int:order_id>', methods=['PATCH'])
    @venue_member_required
    def update_venue_service_order(venue_id, order_id):
        """Change discount, tax rate, status, description or order type."""
        order = update_service_order(venue_id, order_id, user_id=current_user.id,
                                     **pick(json_body(), ORDER_UPDATE_FIELDS))
        return api_success('service_order_updated', data=order)

    @bp.route('/venues/<int:venue_id>/service-orders/<int:order_id>/items', methods=['POST'])
    @venue_member_required
    def add_venue_service_order_item(venue_id, order_id):
        """Add an item: {"description", "quantity", "unit_price"}."""
        payload = json_body()
        require_fields(payload, 'description')
        order = add_service_order_item(venue_id, order_id, user_id=current_user.id,
                                       **pick(payload, ITEM_FIELDS))
        return api_success('service_order_updated', data=order, status=201)

    @bp.route('/venues/<int:venue_id>/service-order-items/<int:item_id>', methods=['PATCH'])
    @venue_member_required
    def update_venue_service_order_item(venue_id, item_id):
        """Change an item's description, quantity or unit price."""
        order = update_service_order_item(venue_id, item_id, user_id=current_user.id,
                                          **pick(json_body(), ITEM_FIELDS))
        return api_success('service_order_updated', data=order)

    @bp.route('/venues/<int:venue_id>/service-order-items/<int:item_id>', methods=['DELETE'])
    @venue_member_required
    def remove_venue_service_order_item(venue_id, item_id):
        """Remove an item."""
        order = remove_service_order_item(venue_id, item_id, user_id=current_user.id)
        return api_success('service_order_updated', data=order)
