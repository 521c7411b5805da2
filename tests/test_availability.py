"""
Tests for interval overlap checking.
"""

from datetime import datetime, timezone

import pytest


def _at(day, hour, minute=0):
    return datetime(2030, 1, day, hour, minute, tzinfo=timezone.utc)


class TestIntervalsOverlap:
    """Tests for the half-open overlap predicate."""

    def test_overlapping(self):
        from models.reservation_availability import intervals_overlap

        assert intervals_overlap(_at(7, 10), _at(7, 12), _at(7, 11), _at(7, 13)) is True
        assert intervals_overlap(_at(7, 11), _at(7, 13), _at(7, 10), _at(7, 12)) is True

    def test_containment(self):
        from models.reservation_availability import intervals_overlap

        assert intervals_overlap(_at(7, 9), _at(7, 17), _at(7, 10), _at(7, 11)) is True
        assert intervals_overlap(_at(7, 10), _at(7, 11), _at(7, 9), _at(7, 17)) is True

    def test_touching_intervals_do_not_overlap(self):
        from models.reservation_availability import intervals_overlap

        assert intervals_overlap(_at(7, 10), _at(7, 11), _at(7, 11), _at(7, 12)) is False
        assert intervals_overlap(_at(7, 11), _at(7, 12), _at(7, 10), _at(7, 11)) is False

    def test_disjoint(self):
        from models.reservation_availability import intervals_overlap

        assert intervals_overlap(_at(7, 8), _at(7, 9), _at(7, 10), _at(7, 11)) is False


class TestConflictDetection:
    """Tests for conflict checks against stored reservations."""

    def test_overlapping_booking_rejected(self, app, venue):
        """10:00-12:00 is booked at 200.00, then 11:00-13:00 conflicts."""
        from models.reservation import create_reservation
        from utils.errors import ConflictError

        first = create_reservation(
            venue['venue_id'], venue['space_id'], 'Ana',
            '2030-01-07T10:00:00', '2030-01-07T12:00:00'
        )
        assert first['space_total'] == 200.0
        assert first['status'] == 'CONFIRMED'

        with pytest.raises(ConflictError) as exc_info:
            create_reservation(
                venue['venue_id'], venue['space_id'], 'Bruno',
                '2030-01-07T11:00:00', '2030-01-07T13:00:00'
            )

        details = exc_info.value.details
        assert details['resource_name'] == 'Sala 1'
        assert [c['id'] for c in details['conflicts']] == [first['id']]

    def test_back_to_back_bookings_allowed(self, app, venue):
        """10:00-11:00 and 11:00-12:00 on the same resource both succeed."""
        from models.reservation import create_reservation

        create_reservation(venue['venue_id'], venue['space_id'], 'Ana',
                           '2030-01-07T10:00:00', '2030-01-07T11:00:00')
        second = create_reservation(venue['venue_id'], venue['space_id'], 'Bruno',
                                    '2030-01-07T11:00:00', '2030-01-07T12:00:00')
        assert second['id'] is not None

    def test_other_resource_is_independent(self, app, venue):
        from models.reservation import create_reservation
        from models.resource import create_resource

        other_id = create_resource(venue['venue_id'], 'Sala 2', rate=50)
        create_reservation(venue['venue_id'], venue['space_id'], 'Ana',
                           '2030-01-07T10:00:00', '2030-01-07T12:00:00')
        other = create_reservation(venue['venue_id'], other_id, 'Bruno',
                                   '2030-01-07T10:00:00', '2030-01-07T12:00:00')
        assert other['space_total'] == 100.0

    def test_cancelled_booking_releases_slot(self, app, venue):
        from models.reservation import cancel_reservation, create_reservation

        first = create_reservation(venue['venue_id'], venue['space_id'], 'Ana',
                                   '2030-01-07T10:00:00', '2030-01-07T12:00:00')
        cancel_reservation(venue['venue_id'], first['id'])

        second = create_reservation(venue['venue_id'], venue['space_id'], 'Bruno',
                                    '2030-01-07T10:00:00', '2030-01-07T12:00:00')
        assert second['status'] == 'CONFIRMED'

    def test_finalized_booking_still_blocks(self, app, venue):
        from models.reservation import create_reservation, finalize_reservation
        from utils.errors import ConflictError

        first = create_reservation(venue['venue_id'], venue['space_id'], 'Ana',
                                   '2030-01-07T10:00:00', '2030-01-07T12:00:00')
        finalize_reservation(venue['venue_id'], first['id'])

        with pytest.raises(ConflictError):
            create_reservation(venue['venue_id'], venue['space_id'], 'Bruno',
                               '2030-01-07T10:30:00', '2030-01-07T11:00:00')

    def test_pending_booking_blocks(self, app, venue):
        from models.reservation import create_reservation
        from utils.errors import ConflictError

        create_reservation(venue['venue_id'], venue['space_id'], 'Ana',
                           '2030-01-07T10:00:00', '2030-01-07T12:00:00', status='PENDING')
        with pytest.raises(ConflictError):
            create_reservation(venue['venue_id'], venue['space_id'], 'Bruno',
                               '2030-01-07T09:00:00', '2030-01-07T10:30:00')

    def test_find_conflicts_excludes_reservation(self, app, venue):
        from models.reservation import create_reservation, find_conflicting_reservations, has_conflict

        first = create_reservation(venue['venue_id'], venue['space_id'], 'Ana',
                                   '2030-01-07T10:00:00', '2030-01-07T12:00:00')

        assert has_conflict(venue['space_id'], _at(7, 11), _at(7, 12)) is True
        assert find_conflicting_reservations(
            venue['space_id'], _at(7, 11), _at(7, 12),
            exclude_reservation_id=first['id']
        ) == []

    def test_conflicts_compared_in_utc(self, app, venue):
        """13:00 UTC is 10:00 in a UTC-3 venue."""
        from models.reservation import create_reservation
        from utils.errors import ConflictError

        app.config['TIMEZONE'] = 'America/Sao_Paulo'
        create_reservation(venue['venue_id'], venue['space_id'], 'Ana',
                           '2030-01-07T10:00:00', '2030-01-07T11:00:00')

        with pytest.raises(ConflictError):
            create_reservation(venue['venue_id'], venue['space_id'], 'Bruno',
                               '2030-01-07T13:30:00+00:00', '2030-01-07T14:30:00+00:00')
