"""
Report aggregation

Each function runs one or two queries and does the rest in memory; the row
counts involved (a month of leads, a team's calls for a day) are small.
"""

import calendar
from datetime import datetime, time, timedelta
from decimal import Decimal

from django.db.models import Count, Sum
from django.utils import timezone

from apps.accounts.models import User
from apps.attendance import scoring
from apps.attendance.models import Attendance
from apps.leads.models import Lead, CallLog

# (excellent, good) thresholds in percent
CONNECT_RATE_THRESHOLDS = (60, 40)
CONVERSION_RATE_THRESHOLDS = (15, 8)

# Statuses that count as a conversion for a telecaller
CONVERTED_STATUSES = [
    Lead.STATUS_INTERESTED, Lead.STATUS_LOGIN_DONE, Lead.STATUS_AWAITING_KYC,
    Lead.STATUS_UNDERWRITING, Lead.STATUS_APPROVED, Lead.STATUS_DISBURSED,
]


def _day_bounds(day):
    start = timezone.make_aware(datetime.combine(day, time.min))
    return start, start + timedelta(days=1)


def month_bounds(year, month):
    """Aware [start, end) datetimes covering a calendar month"""
    start = timezone.make_aware(datetime(year, month, 1))
    if month == 12:
        end = timezone.make_aware(datetime(year + 1, 1, 1))
    else:
        end = timezone.make_aware(datetime(year, month + 1, 1))
    return start, end


def previous_month(year, month):
    if month == 1:
        return year - 1, 12
    return year, month - 1


def trend(current, previous):
    """
    Percentage change from previous to current, one decimal

    A zero baseline reads as +100% when anything happened, else 0.
    """
    current = Decimal(current or 0)
    previous = Decimal(previous or 0)
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round(float((current - previous) / previous * 100), 1)


def rate(part, whole):
    if not whole:
        return 0.0
    return round(part / whole * 100, 1)


def performance_badge(value, kind='connect'):
    """Excellent / Good / Improve for a connect or conversion rate"""
    excellent, good = CONNECT_RATE_THRESHOLDS if kind == 'connect' else CONVERSION_RATE_THRESHOLDS
    if value >= excellent:
        return 'Excellent'
    if value >= good:
        return 'Good'
    return 'Improve'


# DISBURSEMENT
def disbursed_leads(start, end):
    return Lead.objects.filter(
        status=Lead.STATUS_DISBURSED,
        disbursed_at__gte=start,
        disbursed_at__lt=end,
    )


def disbursement_by_user(leads, users=None):
    """
    Per-telecaller disbursement rollup against monthly targets

    Returns rows sorted by amount, highest first.
    """
    totals = {
        row['assigned_to']: row
        for row in leads.order_by().values('assigned_to').annotate(
            count=Count('id'), amount=Sum('disbursed_amount'),
        )
    }

    if users is None:
        users = User.objects.telecallers()

    rows = []
    for user in users:
        row = totals.get(user.pk, {})
        amount = row.get('amount') or Decimal('0')
        target = user.monthly_target or Decimal('0')
        rows.append({
            'user': user,
            'count': row.get('count', 0),
            'amount': amount,
            'target': target,
            'achievement': rate(float(amount), float(target)),
            'gap': max(Decimal('0'), target - amount),
        })

    rows.sort(key=lambda r: r['amount'], reverse=True)
    return rows


def disbursement_report(year, month):
    start, end = month_bounds(year, month)
    leads = disbursed_leads(start, end).select_related('assigned_to')

    prev_year, prev_month = previous_month(year, month)
    prev_start, prev_end = month_bounds(prev_year, prev_month)

    total = leads.aggregate(total=Sum('disbursed_amount'))['total'] or Decimal('0')
    count = leads.count()
    previous_total = disbursed_leads(prev_start, prev_end).aggregate(total=Sum('disbursed_amount'))['total'] or Decimal('0')

    by_bank = list(
        leads.order_by().values('bank_name').annotate(count=Count('id'), amount=Sum('disbursed_amount')).order_by('-amount')
    )

    daily = {}
    for lead in leads:
        day = timezone.localtime(lead.disbursed_at).date()
        daily[day] = daily.get(day, Decimal('0')) + (lead.disbursed_amount or Decimal('0'))

    days_in_month = calendar.monthrange(year, month)[1]
    by_user = disbursement_by_user(leads)
    team_target = sum((row['target'] for row in by_user), Decimal('0'))

    return {
        'year': year,
        'month': month,
        'month_label': start.strftime('%B %Y'),
        'total': total,
        'count': count,
        'average': (total / count) if count else Decimal('0'),
        'previous_total': previous_total,
        'trend': trend(total, previous_total),
        'team_target': team_target,
        'team_achievement': rate(float(total), float(team_target)),
        'by_user': by_user,
        'by_bank': by_bank,
        'daily': [
            {'day': day, 'amount': daily[day]}
            for day in sorted(daily)
        ],
        'days_in_month': days_in_month,
        'leads': leads.order_by('-disbursed_at'),
    }


def target_progress(user, today=None):
    """Month-to-date disbursement and the daily run rate needed to hit target"""
    today = today or timezone.localdate()
    start, end = month_bounds(today.year, today.month)

    achieved = disbursed_leads(start, end).filter(assigned_to=user).aggregate(
        total=Sum('disbursed_amount')
    )['total'] or Decimal('0')

    target = user.monthly_target or Decimal('0')
    gap = max(Decimal('0'), target - achieved)
    days_in_month = calendar.monthrange(today.year, today.month)[1]
    days_remaining = max(1, days_in_month - today.day)

    day_start, day_end = _day_bounds(today)
    calls_today = CallLog.objects.filter(user=user, created_at__gte=day_start, created_at__lt=day_end).count()

    return {
        'achieved': achieved,
        'target': target,
        'gap': gap,
        'achievement': rate(float(achieved), float(target)),
        'days_remaining': days_remaining,
        'daily_required': (gap / days_remaining).quantize(Decimal('0.01')),
        'calls_today': calls_today,
        'call_target': user.daily_call_target,
        'call_progress': min(100.0, rate(calls_today, user.daily_call_target)),
    }


# TELECALLER PERFORMANCE
def telecaller_performance(start, end, users=None):
    """
    Calls, connect rate, conversion rate per telecaller for [start, end)

    Connected means the call lasted more than zero seconds. Conversion is
    measured over the leads currently assigned to the telecaller.
    """
    if users is None:
        users = User.objects.telecallers()
    users = list(users)
    user_ids = [u.pk for u in users]

    calls = CallLog.objects.filter(user_id__in=user_ids, created_at__gte=start, created_at__lt=end).order_by('-created_at')
    stats = {
        pk: {'calls': 0, 'connected': 0, 'duration': 0, 'last_call': None, 'breakdown': {}}
        for pk in user_ids
    }
    for call in calls:
        row = stats[call.user_id]
        row['calls'] += 1
        row['duration'] += call.duration_seconds
        if call.is_connected():
            row['connected'] += 1
        if row['last_call'] is None:
            row['last_call'] = call.created_at
        row['breakdown'][call.call_status] = row['breakdown'].get(call.call_status, 0) + 1

    lead_counts = {}
    for row in Lead.objects.filter(assigned_to_id__in=user_ids).order_by().values('assigned_to', 'status').annotate(count=Count('id')):
        counts = lead_counts.setdefault(row['assigned_to'], {'total': 0, 'converted': 0})
        counts['total'] += row['count']
        if row['status'] in CONVERTED_STATUSES:
            counts['converted'] += row['count']

    checked_in = set(
        Attendance.objects.filter(
            user_id__in=user_ids, date=timezone.localdate(),
            check_in__isnull=False, check_out__isnull=True,
        ).values_list('user_id', flat=True)
    )

    rows = []
    for user in users:
        row = stats[user.pk]
        leads = lead_counts.get(user.pk, {'total': 0, 'converted': 0})
        connect_rate = rate(row['connected'], row['calls'])
        conversion_rate = rate(leads['converted'], leads['total'])
        rows.append({
            'user': user,
            'leads': leads['total'],
            'converted': leads['converted'],
            'calls': row['calls'],
            'connected': row['connected'],
            'connect_rate': connect_rate,
            'connect_badge': performance_badge(connect_rate, 'connect'),
            'conversion_rate': conversion_rate,
            'conversion_badge': performance_badge(conversion_rate, 'conversion'),
            'total_duration': row['duration'],
            'avg_duration': row['duration'] // row['connected'] if row['connected'] else 0,
            'last_call': row['last_call'],
            'breakdown': row['breakdown'],
            'is_checked_in': user.pk in checked_in,
        })

    rows.sort(key=lambda r: r['calls'], reverse=True)
    return rows


def ticker(day=None, limit=5):
    """Top telecallers by calls today, for the dashboard ticker"""
    day = day or timezone.localdate()
    start, end = _day_bounds(day)
    rows = telecaller_performance(start, end)
    return [row for row in rows if row['calls']][:limit]


# ATTENDANCE
def attendance_report(start_date, end_date, users=None):
    """Per-user attendance summary and reliability score for a date range"""
    if users is None:
        users = User.objects.filter(is_active=True).exclude(role=User.ROLE_ADMIN).order_by('full_name')

    records = Attendance.objects.filter(date__gte=start_date, date__lte=end_date)
    by_user = {}
    for record in records:
        by_user.setdefault(record.user_id, []).append(record)

    rows = []
    for user in users:
        user_records = by_user.get(user.pk, [])
        score = scoring.reliability_score(user_records)
        worked = sum(scoring.parse_hours(r.total_hours) for r in user_records)
        rows.append({
            'user': user,
            'summary': scoring.summarize(user_records),
            'score': score,
            'label': scoring.reliability_label(score),
            'worked_hours': scoring.format_hours(worked),
            'avg_late_minutes': _average_late(user_records),
        })

    rows.sort(key=lambda r: r['score'], reverse=True)
    return rows


def _average_late(records):
    late = [
        scoring.late_by_minutes(r.check_in)
        for r in records
        if scoring.classify_record(r) == scoring.LATE
    ]
    if not late:
        return 0
    return round(sum(late) / len(late))


def daily_late_report(day=None):
    """Late arrivals for one day, latest first"""
    day = day or timezone.localdate()
    records = Attendance.objects.filter(date=day, check_in__isnull=False).select_related('user')

    rows = [
        {
            'record': record,
            'user': record.user,
            'check_in': record.check_in,
            'late_by': scoring.late_by_minutes(record.check_in),
        }
        for record in records
        if scoring.classify_record(record) == scoring.LATE
    ]
    rows.sort(key=lambda r: r['late_by'], reverse=True)
    return rows


# PIPELINE
def pipeline_summary(leads=None):
    """Lead count per status, in pipeline order, with share of total"""
    if leads is None:
        leads = Lead.objects.all()

    counts = {
        row['status']: row['count']
        for row in leads.order_by().values('status').annotate(count=Count('id'))
    }
    total = sum(counts.values())

    return [
        {
            'status': value,
            'label': label,
            'count': counts.get(value, 0),
            'percentage': rate(counts.get(value, 0), total),
        }
        for value, label in Lead.STATUS_CHOICES
    ]


def daily_report_context(day=None):
    """Everything the end-of-day email shows"""
    day = day or timezone.localdate()
    start, end = _day_bounds(day)
    month_start, month_end = month_bounds(day.year, day.month)

    month_total = disbursed_leads(month_start, month_end).aggregate(total=Sum('disbursed_amount'))['total'] or Decimal('0')

    return {
        'day': day,
        'performance': telecaller_performance(start, end),
        'late': daily_late_report(day),
        'attendance': scoring.summarize(list(Attendance.objects.filter(date=day))),
        'new_leads': Lead.objects.filter(created_at__gte=start, created_at__lt=end).count(),
        'disbursed_today': disbursed_leads(start, end).aggregate(total=Sum('disbursed_amount'))['total'] or Decimal('0'),
        'month_total': month_total,
        'pipeline': pipeline_summary(),
    }
