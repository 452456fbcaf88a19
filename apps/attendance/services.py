"""
Attendance state changes

Every change of a day's row goes through here so the web views, the JSON API
and the Celery auto-checkout share the same rules:

    (no row) --check_in--> checked in --start_lunch--> on break
    on break --end_lunch--> checked in --check_out--> done

One lunch break per day. Anything out of order raises AttendanceError.
"""

import logging
from datetime import datetime, time

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.core.geo import classify_location
from apps.core.models import Office
from . import scoring
from .models import Attendance

logger = logging.getLogger(__name__)


class AttendanceError(Exception):
    """Attendance action not allowed in the current state"""


def today_record(user, day=None):
    day = day or timezone.localdate()
    return Attendance.objects.filter(user=user, date=day).first()


def _open_record(user, now):
    record = today_record(user, timezone.localdate(now))
    if record is None or record.check_in is None:
        raise AttendanceError('You have not checked in today.')
    if record.check_out is not None:
        raise AttendanceError('You have already checked out today.')
    return record


@transaction.atomic
def check_in(user, location=None, ip=None, now=None):
    """
    Start the day

    Classifies lateness against the configured threshold and the location
    against active offices.
    """
    now = now or timezone.now()
    day = timezone.localdate(now)

    record, created = Attendance.objects.select_for_update().get_or_create(user=user, date=day)
    if record.check_in is not None:
        raise AttendanceError('You have already checked in today.')

    where = classify_location(location, Office.objects.filter(is_active=True))

    record.check_in = now
    record.status = scoring.classify_record({'check_in': now})
    record.work_mode = where['mode']
    record.office_name = where['office'] or ''
    record.distance_m = where['distance_m']
    record.location_check_in = location if isinstance(location, (dict, list)) else (
        {'coordinates': location} if location else None
    )
    record.ip_check_in = ip
    record.save()

    logger.info(
        "%s checked in at %s (%s, %s)",
        user.email, timezone.localtime(now).strftime('%H:%M'), record.status, record.work_mode,
    )
    return record


@transaction.atomic
def start_lunch(user, now=None):
    now = now or timezone.now()
    record = _open_record(user, now)

    if record.lunch_start is not None:
        raise AttendanceError('Lunch break already taken today.')

    record.lunch_start = now
    record.save(update_fields=['lunch_start', 'updated_at'])
    return record


@transaction.atomic
def end_lunch(user, now=None):
    now = now or timezone.now()
    record = _open_record(user, now)

    if record.lunch_start is None:
        raise AttendanceError('Lunch break has not started.')
    if record.lunch_end is not None:
        raise AttendanceError('Lunch break already ended.')

    record.lunch_end = now
    record.break_hours = scoring.format_hours(scoring.break_minutes(record.lunch_start, now))
    record.save(update_fields=['lunch_end', 'break_hours', 'updated_at'])
    return record


def _close(record, check_out_at):
    if record.is_on_break():
        record.lunch_end = check_out_at

    record.check_out = check_out_at
    record.total_hours = scoring.format_hours(
        scoring.working_minutes(record.check_in, check_out_at, record.lunch_start, record.lunch_end)
    )
    if record.lunch_start:
        record.break_hours = scoring.format_hours(
            scoring.break_minutes(record.lunch_start, record.lunch_end, until=check_out_at)
        )


@transaction.atomic
def check_out(user, location=None, ip=None, now=None):
    """End the day; an open lunch break is closed at check-out time"""
    now = now or timezone.now()
    record = _open_record(user, now)

    _close(record, now)
    record.location_check_out = location if isinstance(location, (dict, list)) else (
        {'coordinates': location} if location else None
    )
    record.ip_check_out = ip
    record.save()

    logger.info("%s checked out, worked %s", user.email, record.total_hours)
    return record


def auto_checkout_time(day):
    hour = getattr(settings, 'AUTO_CHECKOUT_HOUR', 19)
    return timezone.make_aware(datetime.combine(day, time(hour, 0)))


def auto_checkout(day=None):
    """
    Close every session still open on `day` at the auto-checkout hour

    Returns:
        int: number of sessions closed
    """
    day = day or timezone.localdate()
    cutoff = auto_checkout_time(day)
    label = timezone.localtime(cutoff).strftime('%I:%M %p').lstrip('0')

    open_sessions = Attendance.objects.filter(
        date=day,
        check_in__isnull=False,
        check_out__isnull=True,
    ).select_related('user')

    closed = 0
    for record in open_sessions:
        with transaction.atomic():
            # Checked in after the cutoff: close at check-in, zero hours
            _close(record, max(cutoff, record.check_in))
            note = f'System: Auto-checked out at {label}'
            record.notes = f'{record.notes}\n{note}' if record.notes else note
            record.save()
        closed += 1

    if closed:
        logger.info("Auto-checked out %s session(s) for %s", closed, day)
    return closed


def checked_in_telecallers(day=None):
    """Active telecallers who checked in on `day` (auto-distribution pool)"""
    day = day or timezone.localdate()
    return User.objects.telecallers().filter(
        attendance_records__date=day,
        attendance_records__check_in__isnull=False,
    ).distinct()


def widget_state(user, now=None):
    """
    Everything the attendance widget shows for today

    Returns:
        dict with the record (or None), flags and running totals
    """
    now = now or timezone.now()
    record = today_record(user, timezone.localdate(now))

    state = {
        'record': record,
        'checked_in': False,
        'checked_out': False,
        'on_break': False,
        'worked': '0:00',
        'expected_checkout': None,
        'late_by_minutes': 0,
    }
    if record is None or record.check_in is None:
        return state

    until = record.check_out or now
    state.update(
        checked_in=record.check_out is None,
        checked_out=record.check_out is not None,
        on_break=record.is_on_break(),
        worked=scoring.format_hours(
            scoring.working_minutes(record.check_in, until, record.lunch_start, record.lunch_end or (None if record.check_out else now))
        ),
        expected_checkout=scoring.expected_checkout(record.check_in),
        late_by_minutes=scoring.late_by_minutes(record.check_in),
    )
    return state
