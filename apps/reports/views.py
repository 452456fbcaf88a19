from datetime import datetime, time, timedelta

import openpyxl
from openpyxl.styles import Font, PatternFill
from django.contrib.auth.decorators import login_required
from django.http import HttpResponse
from django.shortcuts import render
from django.utils import timezone

from apps.accounts.decorators import team_required
from . import services
from .forms import MonthForm, DateRangeForm


def _aware_range(start_date, end_date):
    """Inclusive date range → aware [start, end) datetimes"""
    start = timezone.make_aware(datetime.combine(start_date, time.min))
    end = timezone.make_aware(datetime.combine(end_date + timedelta(days=1), time.min))
    return start, end


@login_required
@team_required
def reports_index_view(request):
    today = timezone.localdate()
    report = services.disbursement_report(today.year, today.month)

    context = {
        'pipeline': services.pipeline_summary(),
        'month_total': report['total'],
        'month_count': report['count'],
        'month_trend': report['trend'],
        'late_today': services.daily_late_report(today),
        'page_title': 'Reports',
    }
    return render(request, 'reports/index.html', context)


@login_required
@team_required
def disbursement_report_view(request):
    form = MonthForm(request.GET or None)
    year, month = form.period()
    report = services.disbursement_report(year, month)

    if request.GET.get('format') == 'excel':
        return _disbursement_workbook(report)

    context = {
        'form': form,
        'report': report,
        'page_title': 'Disbursement Report',
    }
    return render(request, 'reports/disbursements.html', context)


def _disbursement_workbook(report):
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Disbursements"

    headers = ['Date', 'Customer', 'Phone', 'Bank', 'Application No.', 'Telecaller', 'Amount']
    for col, header in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill(start_color="667eea", end_color="667eea", fill_type="solid")

    for lead in report['leads']:
        ws.append([
            timezone.localtime(lead.disbursed_at).strftime('%Y-%m-%d'),
            lead.name,
            lead.phone,
            lead.bank_name,
            lead.application_number,
            lead.assigned_to.get_full_name() if lead.assigned_to else '',
            float(lead.disbursed_amount or 0),
        ])

    summary = wb.create_sheet("By Telecaller")
    summary.append(['Telecaller', 'Files', 'Amount', 'Target', 'Achievement %'])
    for row in report['by_user']:
        summary.append([
            row['user'].get_full_name(),
            row['count'],
            float(row['amount']),
            float(row['target']),
            row['achievement'],
        ])

    response = HttpResponse(content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')
    response['Content-Disposition'] = f'attachment; filename="disbursements_{report["year"]}_{report["month"]:02d}.xlsx"'
    wb.save(response)
    return response


@login_required
@team_required
def performance_report_view(request):
    form = DateRangeForm(request.GET or None, default_days=1)
    start_date, end_date = form.date_range()
    start, end = _aware_range(start_date, end_date)

    rows = services.telecaller_performance(start, end, users=form.selected_users())
    totals = {
        'calls': sum(r['calls'] for r in rows),
        'connected': sum(r['connected'] for r in rows),
    }
    totals['connect_rate'] = services.rate(totals['connected'], totals['calls'])

    # Same-length window immediately before, for the trend arrow
    span = end - start
    previous = services.telecaller_performance(start - span, start, users=form.selected_users())
    totals['trend'] = services.trend(totals['calls'], sum(r['calls'] for r in previous))

    context = {
        'form': form,
        'rows': rows,
        'totals': totals,
        'start_date': start_date,
        'end_date': end_date,
        'page_title': 'Telecaller Performance',
    }
    return render(request, 'reports/performance.html', context)


@login_required
@team_required
def attendance_report_view(request):
    form = DateRangeForm(request.GET or None, default_days=30)
    start_date, end_date = form.date_range()

    context = {
        'form': form,
        'rows': services.attendance_report(start_date, end_date, users=form.selected_users()),
        'late': services.daily_late_report(end_date),
        'start_date': start_date,
        'end_date': end_date,
        'page_title': 'Attendance Report',
    }
    return render(request, 'reports/attendance.html', context)
