"""
Reservation API endpoints.
Every route is scoped to a venue the signed-in user belongs to; writes pass
the acting user down so membership is re-checked inside the transaction.
"""

from flask import request
from flask_login import current_user

from models.reservation import (
    attach_customer,
    change_reservation_status,
    create_recurring_reservations,
    create_reservation,
    delete_reservation,
    detach_customer,
    get_reservation,
    get_status_history,
    list_reservations,
    update_reservation,
)
from utils.api_response import api_error, api_success
from utils.decorators import venue_member_required
from utils.errors import NotFoundError
from utils.helpers import json_body, parse_bool, pick, require_fields
from utils.messages import get_message

CREATE_FIELDS = (
    'status', 'professional_id', 'customer_id', 'customer_email', 'customer_phone',
    'notes', 'metadata', 'booking_kind', 'rate_per_hour'
)

UPDATE_FIELDS = (
    'resource_id', 'professional_id', 'start', 'end', 'customer_name',
    'customer_email', 'customer_phone', 'notes', 'metadata', 'booking_kind',
    'rate_per_hour'
)

STATUS_KINDS = {
    'CONFIRMED': 'reservation_confirmed',
    'CANCELLED': 'reservation_cancelled',
    'FINALIZED': 'reservation_finalized',
}


def _acting_user() -> dict:
    return {'user_id': current_user.id}


def register_routes(bp):
    """Register reservation API routes on the blueprint."""

    @bp.route('/venues/<int:venue_id>/reservations', methods=['GET'])
    @venue_member_required
    def list_venue_reservations(venue_id):
        """
        List reservations overlapping a window.

        Query params:
            start, end: Window (ISO 8601, venue-local when naive)
            resource_id: Filter by resource
            status: Filter by status
            include_cancelled: '1' to include cancelled reservations
        """
        reservations = list_reservations(
            venue_id,
            resource_id=request.args.get('resource_id', type=int),
            start=request.args.get('start'),
            end=request.args.get('end'),
            status=request.args.get('status'),
            customer_id=request.args.get('customer_id', type=int),
            include_cancelled=parse_bool(request.args.get('include_cancelled'))
        )
        return api_success('reservations', data=reservations, message='OK')

    @bp.route('/venues/<int:venue_id>/reservations', methods=['POST'])
    @venue_member_required
    def create_venue_reservation(venue_id):
        """
        Book a single interval.

        Request JSON:
        {
            "resource_id": 1,
            "customer_name": "Ana",
            "start": "2025-03-10T10:00",
            "end": "2025-03-10T12:00",
            "status": "CONFIRMED",          (optional)
            "professional_id": 2,           (optional)
            "rate_per_hour": 120            (optional)
        }
        """
        payload = json_body()
        require_fields(payload, 'resource_id', 'customer_name', 'start', 'end')

        reservation = create_reservation(
            venue_id,
            payload['resource_id'],
            payload['customer_name'],
            payload['start'],
            payload['end'],
            created_by=current_user.username,
            **pick(payload, CREATE_FIELDS),
            **_acting_user()
        )
        return api_success('reservation_created', data=reservation,
                           warnings=reservation.pop('warnings'), status=201)

    @bp.route('/venues/<int:venue_id>/reservations/recurring', methods=['POST'])
    @venue_member_required
    def create_venue_recurring_reservations(venue_id):
        """
        Book a weekly or monthly series, best effort.

        Request JSON:
        {
            "resource_id": 1,
            "customer_name": "Ana",
            "base_date": "2025-03-10",
            "start_hour": 10,
            "end_hour": 11.5,
            "recurrence_type": "weekly",
            "occurrence_count": 4
        }

        Responds 201 when at least one occurrence was booked and 409 when
        none was; the per-date results are always included.
        """
        payload = json_body()
        require_fields(payload, 'resource_id', 'customer_name', 'base_date',
                       'start_hour', 'end_hour', 'recurrence_type', 'occurrence_count')

        report = create_recurring_reservations(
            venue_id,
            payload['resource_id'],
            payload['customer_name'],
            payload['base_date'],
            payload['start_hour'],
            payload['end_hour'],
            recurrence_type=payload['recurrence_type'],
            occurrence_count=payload['occurrence_count'],
            created_by=current_user.username,
            **pick(payload, CREATE_FIELDS),
            **_acting_user()
        )

        result = report.to_dict()
        if report.outcome == 'none':
            return api_error('recurring_none', status=409, details=result)

        message = get_message(f'recurring_{report.outcome}',
                              count=report.success_count, failed=report.fail_count)
        return api_success(f'recurring_{report.outcome}', data=result, message=message, status=201)

    @bp.route('/venues/<int:venue_id>/reservations/<int:reservation_id>', methods=['GET'])
    @venue_member_required
    def get_venue_reservation(venue_id, reservation_id):
        """Get one reservation."""
        reservation = get_reservation(venue_id, reservation_id)
        if reservation is None:
            raise NotFoundError('Reservation not found', details={'reservation_id': reservation_id})
        return api_success('reservation', data=reservation, message='OK')

    @bp.route('/venues/<int:venue_id>/reservations/<int:reservation_id>', methods=['PATCH'])
    @venue_member_required
    def update_venue_reservation(venue_id, reservation_id):
        """Change interval, resource or details; re-checks overlaps and re-prices."""
        payload = json_body()
        reservation = update_reservation(
            venue_id,
            reservation_id,
            changed_by=current_user.username,
            **pick(payload, UPDATE_FIELDS),
            **_acting_user()
        )
        return api_success('reservation_updated', data=reservation,
                           warnings=reservation.pop('warnings'))

    @bp.route('/venues/<int:venue_id>/reservations/<int:reservation_id>', methods=['DELETE'])
    @venue_member_required
    def delete_venue_reservation(venue_id, reservation_id):
        """Hard-delete a reservation."""
        result = delete_reservation(venue_id, reservation_id, **_acting_user())
        return api_success('reservation_deleted', data={'reservation_id': reservation_id},
                           warnings=result['warnings'])

    @bp.route('/venues/<int:venue_id>/reservations/<int:reservation_id>/status', methods=['POST'])
    @venue_member_required
    def change_venue_reservation_status(venue_id, reservation_id):
        """
        Move a reservation through its lifecycle.

        Request JSON:
            {"status": "CANCELLED", "notes": "Customer called"}
        """
        payload = json_body()
        require_fields(payload, 'status')

        reservation = change_reservation_status(
            venue_id,
            reservation_id,
            payload['status'],
            changed_by=current_user.username,
            notes=payload.get('notes'),
            **_acting_user()
        )

        warnings = reservation.pop('warnings')
        if not reservation.pop('changed'):
            return api_success('reservation_unchanged', data=reservation,
                               message=get_message('reservation_unchanged',
                                                   status=reservation['status'].lower()))

        kind = STATUS_KINDS.get(reservation['status'], 'reservation_updated')
        return api_success(kind, data=reservation, warnings=warnings)

    @bp.route('/venues/<int:venue_id>/reservations/<int:reservation_id>/history', methods=['GET'])
    @venue_member_required
    def get_venue_reservation_history(venue_id, reservation_id):
        """Status change history, newest first."""
        if get_reservation(venue_id, reservation_id) is None:
            raise NotFoundError('Reservation not found', details={'reservation_id': reservation_id})
        return api_success('history', data=get_status_history(reservation_id), message='OK')

    @bp.route('/venues/<int:venue_id>/reservations/<int:reservation_id>/customer', methods=['POST'])
    @venue_member_required
    def attach_venue_reservation_customer(venue_id, reservation_id):
        """Link a customer record: {"customer_id": 3}."""
        payload = json_body()
        require_fields(payload, 'customer_id')
        reservation = attach_customer(venue_id, reservation_id, payload['customer_id'],
                                      **_acting_user())
        return api_success('customer_attached', data=reservation)

    @bp.route('/venues/<int:venue_id>/reservations/<int:reservation_id>/customer', methods=['DELETE'])
    @venue_member_required
    def detach_venue_reservation_customer(venue_id, reservation_id):
        """Unlink the customer record."""
        reservation = detach_customer(venue_id, reservation_id, **_acting_user())
        return api_success('customer_detached', data=reservation)
