"""
Recurring reservation series.

A series is not stored: it expands into N independent reservations, each
created through create_reservation in its own transaction. A conflicting or
past occurrence fails on its own and the rest of the batch carries on; only
an auth or permission failure stops the batch, since the caller must not
keep writing with a dead session or revoked membership. The stopped batch
is still reported in full on the raised error's details.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta

from flask import current_app

from models.reservation_crud import create_reservation
from models.venue import get_venue_timezone_name
from utils.datetime_helpers import add_months, at_hour, format_timestamp, get_now, get_timezone, parse_date
from utils.errors import AccessDeniedError, AuthError, BookingError, ValidationError
from utils.validators import validate_positive_integer

logger = logging.getLogger(__name__)

RECURRENCE_TYPES = ('weekly', 'monthly')


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class OccurrenceCandidate:
    """One expanded interval of a series."""
    occurrence_date: date
    start: datetime
    end: datetime


@dataclass
class RecurringOccurrenceResult:
    """Outcome of one occurrence; every candidate yields exactly one."""
    date: str
    success: bool
    reservation_id: int = None
    error: str = None
    error_kind: str = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RecurringBookingReport:
    """Aggregated batch outcome."""
    results: list = field(default_factory=list)
    aborted: str = None

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def fail_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def outcome(self) -> str:
        """'created' (all), 'partial' (some) or 'none'."""
        if self.success_count == 0:
            return 'none'
        if self.fail_count:
            return 'partial'
        return 'created'

    @property
    def failed_dates(self) -> list:
        return [r.date for r in self.results if not r.success]

    @property
    def reservation_ids(self) -> list:
        return [r.reservation_id for r in self.results if r.success]

    def to_dict(self) -> dict:
        return {
            'outcome': self.outcome,
            'success_count': self.success_count,
            'fail_count': self.fail_count,
            'failed_dates': self.failed_dates,
            'reservation_ids': self.reservation_ids,
            'aborted': self.aborted,
            'results': [r.to_dict() for r in self.results],
        }


# =============================================================================
# EXPANSION
# =============================================================================

def _validate_hours(start_hour, end_hour) -> tuple:
    try:
        start_hour = float(start_hour)
        end_hour = float(end_hour)
    except (TypeError, ValueError):
        raise ValidationError('Hours must be numbers',
                              details={'start_hour': start_hour, 'end_hour': end_hour})

    if not (0 <= start_hour < end_hour <= 24):
        raise ValidationError('Start hour must be before end hour, within the day',
                              details={'start_hour': start_hour, 'end_hour': end_hour})
    return start_hour, end_hour


def generate_occurrences(base_date, start_hour, end_hour, recurrence_type: str,
                         occurrence_count: int, tz=None) -> list:
    """
    Expand a series into candidate intervals.

    Weekly series advance 7 days per occurrence. Monthly series keep the base
    date's day of month, clamped to the last day of shorter months; each
    occurrence is computed from the base date, so Jan 31 gives Feb 28, Mar 31.

    Args:
        base_date: First occurrence (date or YYYY-MM-DD)
        start_hour: Local start hour, fractional allowed (9.5 = 09:30)
        end_hour: Local end hour, up to 24
        recurrence_type: 'weekly' or 'monthly'
        occurrence_count: Number of occurrences, including the first
        tz: Venue timezone (default: configured TIMEZONE)

    Returns:
        list of OccurrenceCandidate, in date order

    Raises:
        ValidationError: Invalid rule, hours or count
    """
    if recurrence_type not in RECURRENCE_TYPES:
        raise ValidationError(f'Invalid recurrence type: {recurrence_type}',
                              details={'recurrence_type': recurrence_type})

    valid, count, err = validate_positive_integer(occurrence_count, 'occurrence_count')
    if not valid:
        raise ValidationError(err, details={'occurrence_count': occurrence_count})

    max_count = current_app.config.get('RECURRING_MAX_OCCURRENCES', 52)
    if count > max_count:
        raise ValidationError(f'At most {max_count} occurrences per series',
                              details={'occurrence_count': count, 'max': max_count})

    start_hour, end_hour = _validate_hours(start_hour, end_hour)
    base = parse_date(base_date)
    tz = tz or get_timezone()

    candidates = []
    for index in range(count):
        if recurrence_type == 'weekly':
            day = base + timedelta(days=7 * index)
        else:
            day = add_months(base, index)

        candidates.append(OccurrenceCandidate(
            occurrence_date=day,
            start=at_hour(day, start_hour, tz),
            end=at_hour(day, end_hour, tz)
        ))

    return candidates


# =============================================================================
# BATCH CREATION
# =============================================================================

def create_recurring_reservations(
    tenant_id: int,
    resource_id: int,
    customer_name: str,
    base_date,
    start_hour,
    end_hour,
    recurrence_type: str = 'weekly',
    occurrence_count: int = 4,
    now: datetime = None,
    **reservation_fields
) -> RecurringBookingReport:
    """
    Book every occurrence of a series, best effort.

    Args:
        tenant_id: Venue ID
        resource_id: Resource to book
        customer_name: Customer display name
        base_date: First occurrence date
        start_hour: Local start hour
        end_hour: Local end hour
        recurrence_type: 'weekly' or 'monthly'
        occurrence_count: Number of occurrences
        now: Reference instant for the past-date check (default: now)
        **reservation_fields: Passed to create_reservation for every occurrence

    Returns:
        RecurringBookingReport with one result per occurrence

    Raises:
        ValidationError: Invalid series definition (nothing is booked)
        AuthError: Session expired mid-batch. Remaining occurrences are not
            attempted; details['report'] still lists every occurrence,
            including the reservations already created.
        AccessDeniedError: Membership revoked mid-batch (same report)
    """
    tz = get_timezone(get_venue_timezone_name(tenant_id))
    candidates = generate_occurrences(base_date, start_hour, end_hour,
                                      recurrence_type, occurrence_count, tz=tz)
    now = now or get_now()

    report = RecurringBookingReport()
    for index, candidate in enumerate(candidates):
        day = candidate.occurrence_date.isoformat()

        if candidate.start < now:
            report.results.append(RecurringOccurrenceResult(
                date=day, success=False,
                error='Date is in the past', error_kind='past_date'
            ))
            continue

        try:
            reservation = create_reservation(
                tenant_id, resource_id, customer_name,
                candidate.start, candidate.end,
                **reservation_fields
            )
        except (AuthError, AccessDeniedError) as e:
            logger.warning("Recurring batch on resource %s stopped at %s after %d created",
                           resource_id, day, report.success_count)
            report.aborted = e.kind
            for skipped in candidates[index:]:
                report.results.append(RecurringOccurrenceResult(
                    date=skipped.occurrence_date.isoformat(), success=False,
                    error=e.message, error_kind=e.kind
                ))
            e.details = dict(e.details, report=report.to_dict())
            raise
        except BookingError as e:
            logger.info("Recurring occurrence %s on resource %s failed: %s", day, resource_id, e.kind)
            report.results.append(RecurringOccurrenceResult(
                date=day, success=False, error=e.message, error_kind=e.kind
            ))
            continue

        report.results.append(RecurringOccurrenceResult(
            date=day, success=True, reservation_id=reservation['id']
        ))

    logger.info("Recurring %s series on resource %s from %s: %d created, %d failed",
                recurrence_type, resource_id, format_timestamp(candidates[0].start),
                report.success_count, report.fail_count)
    return report
