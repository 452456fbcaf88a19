from datetime import timedelta

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.paginator import Paginator
from django.shortcuts import render, redirect, get_object_or_404
from django.urls import reverse
from django.utils import timezone
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST

from apps.accounts.decorators import admin_required, team_required
from apps.accounts.models import User
from apps.accounts.views import get_client_ip
from . import scoring, services
from .forms import AttendanceNoteForm, AttendanceFilterForm, LeaveRequestForm, LeaveDecisionForm
from .models import Attendance, Leave


def _posted_location(request):
    """Hidden lat/lng inputs filled by the browser's geolocation API"""
    lat = request.POST.get('latitude', '').strip()
    lng = request.POST.get('longitude', '').strip()
    if lat and lng:
        return {'lat': lat, 'lng': lng}
    return None


@login_required
def my_attendance_view(request):
    state = services.widget_state(request.user)

    since = timezone.localdate() - timedelta(days=30)
    history = list(
        Attendance.objects.filter(user=request.user, date__gte=since).order_by('-date')
    )
    rows = [
        {
            'record': record,
            'classification': scoring.classify_record(record),
            'late_by': scoring.late_by_minutes(record.check_in),
        }
        for record in history
    ]

    score = scoring.reliability_score(history)

    context = {
        'state': state,
        'rows': rows,
        'summary': scoring.summarize(history),
        'reliability_score': score,
        'reliability_label': scoring.reliability_label(score),
        'leaves': Leave.objects.filter(user=request.user)[:10],
        'page_title': 'My Attendance',
    }
    return render(request, 'attendance/my_attendance.html', context)


@login_required
@require_POST
def attendance_action_view(request):
    """Form-button fallback for the widget (same rules as the JSON API)"""
    action = request.POST.get('action')
    ip = get_client_ip(request)

    actions = {
        'check_in': lambda: services.check_in(request.user, location=_posted_location(request), ip=ip),
        'check_out': lambda: services.check_out(request.user, location=_posted_location(request), ip=ip),
        'lunch_start': lambda: services.start_lunch(request.user),
        'lunch_end': lambda: services.end_lunch(request.user),
    }

    if action not in actions:
        messages.error(request, 'Invalid attendance action')
        return redirect('attendance:my_attendance')

    try:
        record = actions[action]()
    except services.AttendanceError as e:
        messages.error(request, str(e))
        return redirect('attendance:my_attendance')

    if action == 'check_in':
        if record.status == Attendance.STATUS_LATE:
            messages.warning(request, f'Checked in {scoring.late_by_minutes(record.check_in)} minute(s) late ({record.get_work_mode_display()})')
        else:
            messages.success(request, f'Checked in on time ({record.get_work_mode_display()})')
    elif action == 'check_out':
        messages.success(request, f'Checked out. Worked {record.total_hours} hours today')
    elif action == 'lunch_start':
        messages.success(request, 'Lunch break started')
    else:
        messages.success(request, 'Welcome back!')

    next_url = request.POST.get('next')
    if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
        return redirect(next_url)
    return redirect('attendance:my_attendance')


@login_required
@team_required
def attendance_dashboard_view(request):
    """Who is in, who is late, who is missing, for one day"""
    filter_form = AttendanceFilterForm(request.GET)
    day = timezone.localdate()
    records = Attendance.objects.select_related('user')

    if filter_form.is_valid():
        day = filter_form.cleaned_data.get('date') or day
        records = records.filter(date=day)
        if filter_form.cleaned_data.get('status'):
            records = records.filter(status=filter_form.cleaned_data['status'])
        if filter_form.cleaned_data.get('work_mode'):
            records = records.filter(work_mode=filter_form.cleaned_data['work_mode'])
    else:
        records = records.filter(date=day)

    records = list(records.order_by('check_in'))
    staff = User.objects.filter(is_active=True).exclude(role=User.ROLE_ADMIN).order_by('full_name')
    present_ids = {r.user_id for r in records}
    missing = [u for u in staff if u.pk not in present_ids]

    since = day - timedelta(days=29)
    recent = Attendance.objects.filter(date__gte=since, date__lte=day)
    by_user = {}
    for record in recent:
        by_user.setdefault(record.user_id, []).append(record)

    reliability = [
        {
            'user': user,
            'score': scoring.reliability_score(by_user.get(user.pk, [])),
            'summary': scoring.summarize(by_user.get(user.pk, [])),
        }
        for user in staff
    ]
    reliability.sort(key=lambda row: row['score'], reverse=True)

    context = {
        'filter_form': filter_form,
        'day': day,
        'records': [
            {'record': r, 'late_by': scoring.late_by_minutes(r.check_in)}
            for r in records
        ],
        'summary': scoring.summarize(records),
        'missing': missing,
        'open_sessions': [r for r in records if r.is_checked_in()],
        'on_site_count': sum(1 for r in records if r.work_mode == 'on_site'),
        'remote_count': sum(1 for r in records if r.work_mode == 'remote'),
        'reliability': reliability,
        'page_title': 'Attendance',
    }
    return render(request, 'attendance/dashboard.html', context)


@login_required
@admin_required
def attendance_note_view(request, pk):
    record = get_object_or_404(Attendance.objects.select_related('user'), pk=pk)

    if request.method == 'POST':
        form = AttendanceNoteForm(request.POST, instance=record)
        if form.is_valid():
            form.save()
            messages.success(request, f'Note saved for {record.user.get_full_name()}')
            return redirect(f"{reverse('attendance:dashboard')}?date={record.date.isoformat()}")
        messages.error(request, 'Please correct the errors below.')
    else:
        form = AttendanceNoteForm(instance=record)

    context = {
        'form': form,
        'record': record,
        'form_title': f'Admin note: {record.user.get_full_name()} on {record.date:%d %b %Y}',
        'page_title': 'Admin Note',
    }
    return render(request, 'attendance/note_form.html', context)


@login_required
def leave_request_view(request):
    if request.method == 'POST':
        form = LeaveRequestForm(request.POST)
        if form.is_valid():
            leave = form.save(commit=False)
            leave.user = request.user
            leave.save()
            messages.success(request, 'Leave request submitted!')
            return redirect('attendance:leave_request')
        messages.error(request, 'Please correct the errors below.')
    else:
        form = LeaveRequestForm()

    context = {
        'form': form,
        'leaves': Leave.objects.filter(user=request.user),
        'page_title': 'Leave',
    }
    return render(request, 'attendance/leave_request.html', context)


@login_required
@team_required
def leave_manage_view(request):
    status_filter = request.GET.get('status', 'pending')
    leaves = Leave.objects.select_related('user', 'approved_by')
    if status_filter in dict(Leave.STATUS_CHOICES):
        leaves = leaves.filter(status=status_filter)

    page_obj = Paginator(leaves, 25).get_page(request.GET.get('page', 1))

    context = {
        'leaves': page_obj,
        'page_obj': page_obj,
        'status_filter': status_filter,
        'status_choices': Leave.STATUS_CHOICES,
        'pending_count': Leave.objects.filter(status='pending').count(),
        'page_title': 'Leave Management',
    }
    return render(request, 'attendance/leave_manage.html', context)


@login_required
@team_required
@require_POST
def leave_decide_view(request, pk):
    leave = get_object_or_404(Leave, pk=pk)
    form = LeaveDecisionForm(request.POST)

    if not form.is_valid():
        for errors in form.errors.values():
            messages.error(request, errors[0])
        return redirect('attendance:leave_manage')

    if form.cleaned_data['decision'] == 'approve':
        done = leave.approve(request.user)
    else:
        done = leave.reject(request.user, form.cleaned_data['rejection_reason'].strip())

    if done:
        messages.success(request, f'Leave {leave.status} for {leave.user.get_full_name()}')
    else:
        messages.error(request, 'This request has already been decided')

    return redirect('attendance:leave_manage')
