"""
Attendance arithmetic: lateness, reliability score, worked hours

No database access. Records can be Attendance instances or plain dicts with
the same keys (check_in, status, ...), which keeps the report code and the
tests free to build them however they like.
"""

from datetime import timedelta

from django.conf import settings
from django.utils import timezone

PRESENT = 'present'
LATE = 'late'
ABSENT = 'absent'
HALF_DAY = 'half_day'
ON_LEAVE = 'on_leave'

# Stored statuses that classification never overrides
MANUAL_STATUSES = (HALF_DAY, ON_LEAVE)

MIN_SCORE_RECORDS = 5


def _get(record, name):
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def late_threshold():
    """(hour, minute) after which a check-in is late"""
    return (
        getattr(settings, 'ATTENDANCE_LATE_HOUR', 9),
        getattr(settings, 'ATTENDANCE_LATE_MINUTE', 30),
    )


def _threshold_minutes(threshold_hour=None, threshold_minute=None):
    default_hour, default_minute = late_threshold()
    hour = default_hour if threshold_hour is None else threshold_hour
    minute = default_minute if threshold_minute is None else threshold_minute
    return hour * 60 + minute


def minutes_of_day(dt):
    """Local wall-clock minutes since midnight; seconds are dropped"""
    if timezone.is_aware(dt):
        dt = timezone.localtime(dt)
    return dt.hour * 60 + dt.minute


def classify_record(record, threshold_hour=None, threshold_minute=None):
    """
    present / late / absent for one day

    A check-in during the threshold minute itself is on time.
    """
    status = _get(record, 'status')
    if status in MANUAL_STATUSES:
        return status

    check_in = _get(record, 'check_in')
    if not check_in:
        return ABSENT

    if minutes_of_day(check_in) <= _threshold_minutes(threshold_hour, threshold_minute):
        return PRESENT
    return LATE


def late_by_minutes(check_in, threshold_hour=None, threshold_minute=None):
    if not check_in:
        return 0
    return max(0, minutes_of_day(check_in) - _threshold_minutes(threshold_hour, threshold_minute))


def summarize(records, threshold_hour=None, threshold_minute=None):
    """Counts per class plus total"""
    counts = {PRESENT: 0, LATE: 0, ABSENT: 0, HALF_DAY: 0, ON_LEAVE: 0}
    for record in records:
        counts[classify_record(record, threshold_hour, threshold_minute)] += 1
    counts['total'] = len(records)
    return counts


def reliability_score(records, threshold_hour=None, threshold_minute=None):
    """
    (present*3 - late) / (max(n, 5) * 3) * 100, clamped to 0..100

    Fewer than five records are scored as if the missing days were absences,
    so a single on-time day does not read as 100.
    """
    records = list(records)
    counts = summarize(records, threshold_hour, threshold_minute)

    denominator = max(len(records), MIN_SCORE_RECORDS) * 3
    raw = (counts[PRESENT] * 3 - counts[LATE]) / denominator * 100
    return int(round(min(100, max(0, raw))))


def reliability_label(score):
    if score >= 80:
        return 'Excellent'
    if score >= 60:
        return 'Good'
    return 'Needs Improvement'


def work_duration():
    return timedelta(minutes=getattr(settings, 'WORK_DURATION_MINUTES', 510))


def expected_checkout(check_in):
    """Check-in plus the standard shift (8h30m by default)"""
    if not check_in:
        return None
    return check_in + work_duration()


def break_minutes(lunch_start, lunch_end, until=None):
    """
    Minutes on lunch break

    An open break runs until `until` (usually check-out time).
    """
    if not lunch_start:
        return 0
    end = lunch_end or until
    if not end:
        return 0
    return max(0, int((end - lunch_start).total_seconds() // 60))


def working_minutes(check_in, check_out, lunch_start=None, lunch_end=None):
    """Check-in to check-out minus the lunch break, never negative"""
    if not check_in or not check_out:
        return 0
    total = int((check_out - check_in).total_seconds() // 60)
    return max(0, total - break_minutes(lunch_start, lunch_end, until=check_out))


def format_hours(minutes):
    """125 → "2:05" """
    minutes = max(0, int(minutes or 0))
    hours, mins = divmod(minutes, 60)
    return f"{hours}:{mins:02d}"


def parse_hours(value):
    """Inverse of format_hours; blank or malformed → 0"""
    if not value or ':' not in value:
        return 0
    hours, _, mins = value.partition(':')
    try:
        return int(hours) * 60 + int(mins)
    except ValueError:
        return 0
