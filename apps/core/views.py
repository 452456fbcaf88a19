from datetime import timedelta

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.paginator import Paginator
from django.db.models import Count, Q
from django.http import JsonResponse
from django.shortcuts import render, redirect, get_object_or_404
from django.utils import timezone
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST

from apps.accounts.decorators import admin_required
from apps.attendance import scoring, services as attendance_services
from apps.attendance.models import Attendance
from apps.leads.models import Lead, FollowUp, Activity
from apps.reports import services as reports
from .forms import OfficeForm
from .models import Office, Notification


def _last_7_days(leads, today):
    seven_days_ago = today - timedelta(days=6)
    daily_counts = leads.filter(created_at__date__gte=seven_days_ago) \
        .values('created_at__date') \
        .annotate(count=Count('id'))

    daily_map = {item['created_at__date']: item['count'] for item in daily_counts}

    days = []
    for i in range(6, -1, -1):
        day = today - timedelta(days=i)
        days.append({
            'date': day.strftime('%Y-%m-%d'),
            'date_label': day.strftime('%d %b'),
            'count': daily_map.get(day, 0),
        })
    return days


@login_required
def dashboard_view(request):
    """
    Main dashboard, routed by role
    - Admin / team leader: team-wide pipeline, disbursement, attendance
    - Telecaller: own leads, follow-ups, targets, attendance widget
    - KYC team: own files plus the unclaimed queue
    """
    if request.user.is_kyc():
        return _kyc_dashboard(request)
    if request.user.is_telecaller():
        return _telecaller_dashboard(request)
    return _team_dashboard(request)


def _team_dashboard(request):
    today = timezone.localdate()
    leads_qs = Lead.objects.all()

    # 1. Key Metrics
    start_of_week = today - timedelta(days=today.weekday())
    disbursement = reports.disbursement_report(today.year, today.month)

    # 2. Attendance today
    records = list(Attendance.objects.filter(date=today).select_related('user'))

    context = {
        'total_leads': leads_qs.count(),
        'new_today': leads_qs.filter(created_at__date=today).count(),
        'new_this_week': leads_qs.filter(created_at__date__gte=start_of_week).count(),
        'unassigned': leads_qs.filter(assigned_to__isnull=True).exclude(status__in=[Lead.STATUS_DISBURSED, Lead.STATUS_CLOSED]).count(),
        'kyc_queue': leads_qs.filter(status=Lead.STATUS_AWAITING_KYC).count(),
        'pipeline': reports.pipeline_summary(leads_qs),
        'disbursement': disbursement,
        'attendance_summary': scoring.summarize(records),
        'checked_in_now': sum(1 for r in records if r.is_checked_in()),
        'late_today': reports.daily_late_report(today)[:5],
        'ticker': reports.ticker(today),
        'recent_leads': leads_qs.select_related('assigned_to').order_by('-created_at')[:10],
        'last_7_days': _last_7_days(leads_qs, today),
        'active_page': 'dashboard',
    }
    return render(request, 'core/dashboard_team.html', context)


def _telecaller_dashboard(request):
    user = request.user
    today = timezone.localdate()
    now = timezone.now()
    my_leads = Lead.objects.filter(assigned_to=user)

    follow_ups = FollowUp.objects.filter(
        Q(lead__assigned_to=user) | Q(user=user),
        status='pending',
    ).select_related('lead').distinct()

    end_of_today = timezone.localtime(now).replace(hour=23, minute=59, second=59)

    context = {
        'my_total': my_leads.count(),
        'my_new': my_leads.filter(status=Lead.STATUS_NEW).count(),
        'my_interested': my_leads.filter(status=Lead.STATUS_INTERESTED).count(),
        'my_logins': my_leads.filter(status=Lead.STATUS_LOGIN_DONE).count(),
        'overdue_follow_ups': follow_ups.filter(scheduled_at__lt=now).order_by('scheduled_at')[:10],
        'today_follow_ups': follow_ups.filter(scheduled_at__gte=now, scheduled_at__lte=end_of_today).order_by('scheduled_at'),
        'fresh_leads': my_leads.filter(status=Lead.STATUS_NEW).order_by('-assigned_at', '-created_at')[:10],
        'progress': reports.target_progress(user, today),
        'attendance': attendance_services.widget_state(user),
        'ticker': reports.ticker(today),
        'recent_activity': Activity.objects.filter(user=user).select_related('lead')[:10],
        'active_page': 'dashboard',
    }
    return render(request, 'core/dashboard_telecaller.html', context)


def _kyc_dashboard(request):
    user = request.user
    today = timezone.localdate()
    my_files = Lead.objects.filter(kyc_member=user)
    start, end = reports.month_bounds(today.year, today.month)

    context = {
        'status_counts': [
            {'status': status, 'label': dict(Lead.STATUS_CHOICES)[status], 'count': my_files.filter(status=status).count()}
            for status in Lead.KYC_STATUSES
        ],
        'my_files': my_files.exclude(status__in=[Lead.STATUS_DISBURSED, Lead.STATUS_REJECTED]).select_related('assigned_to').order_by('updated_at')[:25],
        'queue': Lead.objects.filter(status=Lead.STATUS_AWAITING_KYC, kyc_member__isnull=True).select_related('assigned_to').order_by('updated_at'),
        'disbursed_this_month': reports.disbursed_leads(start, end).filter(kyc_member=user).count(),
        'attendance': attendance_services.widget_state(user),
        'active_page': 'dashboard',
    }
    return render(request, 'core/dashboard_kyc.html', context)


# OFFICES
@login_required
@admin_required
def office_list_view(request):
    context = {
        'offices': Office.objects.all(),
        'active_page': 'offices',
    }
    return render(request, 'core/office_list.html', context)


@login_required
@admin_required
def office_create_view(request):
    if request.method == 'POST':
        form = OfficeForm(request.POST)
        if form.is_valid():
            office = form.save()
            messages.success(request, f'Office "{office.name}" created successfully.')
            return redirect('core:office_list')
        messages.error(request, 'Please correct the errors below.')
    else:
        form = OfficeForm()

    context = {
        'form': form,
        'form_title': 'Add Office',
        'active_page': 'offices',
    }
    return render(request, 'core/office_form.html', context)


@login_required
@admin_required
def office_edit_view(request, pk):
    office = get_object_or_404(Office, pk=pk)

    if request.method == 'POST':
        form = OfficeForm(request.POST, instance=office)
        if form.is_valid():
            form.save()
            messages.success(request, f'Office "{office.name}" updated successfully.')
            return redirect('core:office_list')
        messages.error(request, 'Please correct the errors below.')
    else:
        form = OfficeForm(instance=office)

    context = {
        'form': form,
        'office': office,
        'form_title': f'Edit Office: {office.name}',
        'active_page': 'offices',
    }
    return render(request, 'core/office_form.html', context)


@login_required
@admin_required
@require_POST
def office_delete_view(request, pk):
    office = get_object_or_404(Office, pk=pk)
    name = office.name
    office.delete()
    messages.success(request, f'Office "{name}" deleted.')
    return redirect('core:office_list')


# NOTIFICATIONS
@login_required
def notification_list_view(request):
    notifications = request.user.notifications.all()
    page_obj = Paginator(notifications, 25).get_page(request.GET.get('page', 1))

    context = {
        'notifications': page_obj,
        'page_obj': page_obj,
        'active_page': 'notifications',
    }
    return render(request, 'core/notification_list.html', context)


@login_required
@require_POST
def notification_read_view(request, pk):
    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    notification.mark_read()

    if request.headers.get('X-Requested-With') == 'XMLHttpRequest':
        return JsonResponse({'success': True, 'unread': request.user.notifications.filter(is_read=False).count()})

    if notification.link and url_has_allowed_host_and_scheme(notification.link, allowed_hosts={request.get_host()}):
        return redirect(notification.link)
    return redirect('core:notification_list')


@login_required
@require_POST
def notification_read_all_view(request):
    count = request.user.notifications.filter(is_read=False).update(is_read=True)

    if request.headers.get('X-Requested-With') == 'XMLHttpRequest':
        return JsonResponse({'success': True, 'count': count})

    messages.success(request, f'{count} notification(s) marked as read')
    return redirect('core:notification_list')
