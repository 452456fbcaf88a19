from datetime import datetime, time
import csv
import json
import logging

import openpyxl
from openpyxl.styles import Font, PatternFill
from django.conf import settings
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.paginator import Paginator
from django.db.models import Q, Count
from django.http import JsonResponse, HttpResponse
from django.shortcuts import render, redirect, get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_POST

from apps.accounts.decorators import (
    admin_required, team_required, telecaller_required, kyc_required, admin_or_owner_required,
)
from .forms import (
    LeadCreateForm, LeadEditForm, LeadKycForm, LeadAssignForm, LeadStatusChangeForm,
    KycTransferForm, DisbursementForm, NoteForm, CallLogForm, FollowUpForm,
    LeadFilterForm, LeadImportForm, LeadBulkActionForm, LoanLoginForm, BankAttemptForm,
)
from .importer import LeadImporter, LeadImportError, read_upload, template_csv
from .models import Lead, Note, Activity, FollowUp, LoanLogin, normalize_status

logger = logging.getLogger(__name__)


def _is_ajax(request):
    return request.headers.get('X-Requested-With') == 'XMLHttpRequest'


def visible_leads(user):
    """
    Leads a user may see

    - Admin / team leader: everything
    - Telecaller: assigned to them
    - KYC: files handed to them, plus the unclaimed KYC queue
    """
    leads = Lead.objects.select_related('assigned_to', 'kyc_member')
    if user.can_manage_team():
        return leads
    if user.is_kyc():
        return leads.filter(
            Q(kyc_member=user) |
            Q(kyc_member__isnull=True, status=Lead.STATUS_AWAITING_KYC)
        )
    return leads.filter(assigned_to=user)


def _export_rows(leads):
    headers = [
        'ID', 'Name', 'Phone', 'Email', 'Company', 'Source', 'Status', 'Priority',
        'Loan Type', 'Loan Amount', 'Assigned To', 'KYC Member', 'Disbursed Amount',
        'Disbursed At', 'City', 'Created Date', 'Next Follow-up',
    ]
    rows = []
    for lead in leads:
        rows.append([
            lead.id,
            lead.name,
            lead.phone,
            lead.email or '',
            lead.company_name,
            lead.source,
            lead.get_status_display(),
            lead.get_priority_display(),
            lead.get_loan_type_display() if lead.loan_type else '',
            float(lead.loan_amount) if lead.loan_amount is not None else '',
            lead.assigned_to.get_full_name() if lead.assigned_to else '',
            lead.kyc_member.get_full_name() if lead.kyc_member else '',
            float(lead.disbursed_amount) if lead.disbursed_amount is not None else '',
            timezone.localtime(lead.disbursed_at).strftime('%Y-%m-%d') if lead.disbursed_at else '',
            lead.city,
            timezone.localtime(lead.created_at).strftime('%Y-%m-%d %H:%M'),
            timezone.localtime(lead.next_follow_up).strftime('%Y-%m-%d %H:%M') if lead.next_follow_up else '',
        ])
    return headers, rows


# LIST / DETAIL
@login_required
def lead_list_view(request):
    leads = visible_leads(request.user).prefetch_related('tags').order_by('-created_at')

    filter_form = LeadFilterForm(request.GET)
    if filter_form.is_valid():
        leads = filter_form.filter_queryset(leads)

    total_count = leads.count()
    status_counts = {
        row['status']: row['count']
        for row in leads.order_by().values('status').annotate(count=Count('id'))
    }

    paginator = Paginator(leads, 50)
    page_obj = paginator.get_page(request.GET.get('page', 1))

    context = {
        'leads': page_obj,
        'page_obj': page_obj,
        'filter_form': filter_form,
        'total_count': total_count,
        'status_counts': [
            {'value': value, 'label': label, 'count': status_counts.get(value, 0)}
            for value, label in Lead.STATUS_CHOICES
        ],
        'is_paginated': page_obj.has_other_pages(),
        'page_range': paginator.get_elided_page_range(page_obj.number, on_each_side=2, on_ends=1),
        'bulk_form': LeadBulkActionForm() if request.user.can_manage_team() else None,
        'page_title': 'Leads',
    }
    return render(request, 'leads/lead_list.html', context)


@login_required
def lead_detail_view(request, pk):
    lead = get_object_or_404(visible_leads(request.user), pk=pk)

    if request.method == 'POST':
        note_form = NoteForm(request.POST)
        if note_form.is_valid():
            lead.add_note(content=note_form.cleaned_data['content'], user=request.user)
            messages.success(request, 'Note added successfully')
            return redirect('leads:lead_detail', pk=lead.pk)
        messages.error(request, 'Error adding note')
    else:
        note_form = NoteForm()

    user = request.user
    is_owner = lead.assigned_to_id == user.pk
    message = settings.WHATSAPP_DOCUMENT_MESSAGE.format(telecaller_name=user.get_full_name())

    context = {
        'lead': lead,
        'notes': lead.get_notes(),
        'activities': lead.get_activities()[:50],
        'calls': lead.calls.select_related('user')[:20],
        'follow_ups': lead.follow_ups.filter(status='pending'),
        'logins': lead.loan_logins.all(),
        'note_form': note_form,
        'call_form': CallLogForm(),
        'follow_up_form': FollowUpForm(),
        'status_form': LeadStatusChangeForm(initial={'status': lead.status}),
        'assign_form': LeadAssignForm(initial={'assigned_to': lead.assigned_to}) if user.can_manage_team() else None,
        'kyc_transfer_form': KycTransferForm() if lead.can_transfer_to_kyc() else None,
        'kyc_form': LeadKycForm(instance=lead) if (user.is_kyc() or user.is_admin()) and lead.status in Lead.KYC_STATUSES else None,
        'disbursement_form': DisbursementForm(initial={'bank_name': lead.bank_name, 'application_number': lead.application_number}),
        'can_edit': user.can_manage_team() or is_owner,
        'can_delete': user.is_admin(),
        'can_disburse': (user.is_kyc() or user.is_admin()) and lead.status != Lead.STATUS_DISBURSED,
        'whatsapp_link': lead.whatsapp_link(),
        'whatsapp_document_link': lead.whatsapp_link(message),
        'page_title': lead.name,
    }
    return render(request, 'leads/lead_detail.html', context)


@login_required
@admin_or_owner_required(Lead)
def lead_json_view(request, pk):
    lead = get_object_or_404(Lead.objects.select_related('assigned_to', 'kyc_member'), pk=pk)

    data = {
        'id': lead.id,
        'name': lead.name,
        'phone': lead.phone,
        'email': lead.email,
        'status': lead.status,
        'status_display': lead.get_status_display(),
        'priority': lead.priority,
        'priority_display': lead.get_priority_display(),
        'loan_type': lead.loan_type,
        'loan_amount': str(lead.loan_amount) if lead.loan_amount is not None else None,
        'disbursed_amount': str(lead.disbursed_amount) if lead.disbursed_amount is not None else None,
        'assigned_to': {
            'id': lead.assigned_to.id,
            'name': lead.assigned_to.get_full_name(),
        } if lead.assigned_to else None,
        'kyc_member': {
            'id': lead.kyc_member.id,
            'name': lead.kyc_member.get_full_name(),
        } if lead.kyc_member else None,
        'tags': list(lead.tags.names()),
        'links': {
            'tel': lead.tel_link(),
            'mailto': lead.mailto_link(),
            'whatsapp': lead.whatsapp_link(),
        },
        'next_follow_up': lead.next_follow_up.isoformat() if lead.next_follow_up else None,
        'created_at': lead.created_at.isoformat(),
        'updated_at': lead.updated_at.isoformat(),
        'time_since_created': lead.time_since_created(),
        'time_until_follow_up': lead.time_until_follow_up(),
        'can_transfer_to_kyc': lead.can_transfer_to_kyc(),
    }
    return JsonResponse(data)


@login_required
@admin_or_owner_required(Lead)
def lead_activities_view(request, pk):
    lead = get_object_or_404(Lead, pk=pk)
    activities = Activity.objects.filter(lead=lead).select_related('user').order_by('-created_at')

    try:
        per_page = min(100, max(1, int(request.GET.get('per_page', 20))))
    except ValueError:
        per_page = 20

    paginator = Paginator(activities, per_page)
    page_obj = paginator.get_page(request.GET.get('page', 1))

    activities_data = [
        {
            'id': activity.id,
            'type': activity.activity_type,
            'type_display': activity.get_activity_type_display(),
            'description': activity.description,
            'user': {
                'id': activity.user.id,
                'name': activity.user.get_full_name(),
                'initials': activity.user.get_initials(),
            } if activity.user else None,
            'created_at': activity.created_at.isoformat(),
        }
        for activity in page_obj
    ]

    return JsonResponse({
        'activities': activities_data,
        'has_next': page_obj.has_next(),
        'has_previous': page_obj.has_previous(),
        'total_count': paginator.count,
        'page': page_obj.number,
        'num_pages': paginator.num_pages,
    })


# CREATE / EDIT / DELETE
@login_required
@telecaller_required
def lead_create_view(request):
    if request.method == 'POST':
        form = LeadCreateForm(request.POST)

        if form.is_valid():
            lead = form.save(commit=False)

            if not lead.assigned_to and request.user.is_telecaller():
                lead.assigned_to = request.user
            if lead.assigned_to:
                lead.assigned_by = request.user
                lead.assigned_at = timezone.now()
            lead.save()
            form.save_m2m()

            messages.success(request, f'Lead "{lead.name}" created successfully')
            return redirect('leads:lead_detail', pk=lead.pk)

        messages.error(request, 'Please correct the errors in the form')
    else:
        form = LeadCreateForm()

    context = {
        'form': form,
        'form_title': 'Create New Lead',
        'submit_text': 'Create',
        'page_title': 'New Lead',
    }
    return render(request, 'leads/lead_form.html', context)


@login_required
@admin_or_owner_required(Lead)
def lead_edit_view(request, pk):
    lead = get_object_or_404(Lead, pk=pk)
    can_assign = request.user.can_manage_team()

    if request.method == 'POST':
        form = LeadEditForm(request.POST, instance=lead, can_assign=can_assign)

        if form.is_valid():
            changed_fields = [
                str(form.fields[field].label or field)
                for field in form.changed_data
                if field in form.fields
            ]
            lead = form.save()

            if changed_fields:
                Activity.objects.create(
                    lead=lead,
                    user=request.user,
                    activity_type='status_changed',
                    description=f'Updated: {", ".join(changed_fields)}'
                )

            messages.success(request, f'Lead "{lead.name}" updated successfully')
            return redirect('leads:lead_detail', pk=lead.pk)

        messages.error(request, 'Please correct the errors in the form')
    else:
        form = LeadEditForm(instance=lead, can_assign=can_assign)

    context = {
        'form': form,
        'lead': lead,
        'form_title': f'Edit Lead: {lead.name}',
        'submit_text': 'Save Changes',
        'page_title': f'Edit {lead.name}',
    }
    return render(request, 'leads/lead_form.html', context)


@login_required
@admin_required
@require_POST
def lead_delete_view(request, pk):
    lead = get_object_or_404(Lead, pk=pk)

    if lead.status == Lead.STATUS_DISBURSED:
        messages.error(request, 'Cannot delete disbursed leads')
        return redirect('leads:lead_detail', pk=lead.pk)

    lead_name = lead.name
    lead.delete()
    logger.info("Lead %s (%s) deleted by %s", pk, lead_name, request.user.email)

    messages.success(request, f'Lead "{lead_name}" deleted successfully')
    return redirect('leads:lead_list')


# PIPELINE ACTIONS
@login_required
@team_required
def lead_assign_view(request, pk):
    lead = get_object_or_404(Lead, pk=pk)

    if not lead.can_be_assigned():
        messages.error(request, 'Cannot reassign disbursed or closed leads')
        return redirect('leads:lead_detail', pk=lead.pk)

    if request.method == 'POST':
        form = LeadAssignForm(request.POST)

        if form.is_valid():
            new_agent = form.cleaned_data['assigned_to']
            success = lead.assign_to(user=new_agent, assigned_by=request.user)

            if success:
                messages.success(request, f'Lead assigned to {new_agent.get_full_name()}')
            else:
                messages.error(request, 'Assignment failed')

            if _is_ajax(request):
                return JsonResponse({'success': success})
            return redirect('leads:lead_detail', pk=lead.pk)
    else:
        form = LeadAssignForm(initial={'assigned_to': lead.assigned_to})

    return render(request, 'leads/lead_assign.html', {'form': form, 'lead': lead, 'page_title': 'Assign Lead'})


@login_required
@admin_or_owner_required(Lead)
@require_POST
def lead_change_status_view(request, pk):
    lead = get_object_or_404(Lead, pk=pk)
    form = LeadStatusChangeForm(request.POST)

    if not form.is_valid():
        messages.error(request, 'Invalid status')
        if _is_ajax(request):
            return JsonResponse({'success': False, 'error': 'Invalid status'}, status=400)
        return redirect('leads:lead_detail', pk=lead.pk)

    new_status = form.cleaned_data['status']
    if not lead.can_move_to(new_status):
        if new_status == Lead.STATUS_DISBURSED:
            error = 'Use the disbursement form to mark a lead as disbursed'
        else:
            error = 'Transfer the lead to KYC before moving it to a KYC status'
        messages.error(request, error)
        if _is_ajax(request):
            return JsonResponse({'success': False, 'error': error}, status=400)
        return redirect('leads:lead_detail', pk=lead.pk)

    changed = lead.change_status(new_status, user=request.user)
    if changed:
        messages.success(request, f'Status changed to "{lead.get_status_display()}"')

    if _is_ajax(request):
        return JsonResponse({
            'success': True,
            'changed': changed,
            'status': lead.status,
            'status_display': lead.get_status_display(),
        })
    return redirect('leads:lead_detail', pk=lead.pk)


@login_required
@admin_or_owner_required(Lead)
@require_POST
def lead_transfer_kyc_view(request, pk):
    lead = get_object_or_404(Lead, pk=pk)
    form = KycTransferForm(request.POST)

    if not form.is_valid():
        messages.error(request, 'Invalid KYC team member')
        return redirect('leads:lead_detail', pk=lead.pk)

    if lead.transfer_to_kyc(form.cleaned_data.get('kyc_member'), user=request.user):
        messages.success(request, 'Lead transferred to the KYC team')
    else:
        messages.error(request, 'Only leads with status "Login Done" can be transferred to KYC')

    return redirect('leads:lead_detail', pk=lead.pk)


@login_required
@kyc_required
@require_POST
def lead_kyc_update_view(request, pk):
    lead = get_object_or_404(visible_leads(request.user), pk=pk)
    form = LeadKycForm(request.POST, instance=lead)

    if form.is_valid():
        old_status = Lead.objects.values_list('status', flat=True).get(pk=lead.pk)
        lead = form.save(commit=False)
        new_status = lead.status
        lead.status = old_status
        if lead.kyc_member is None and request.user.is_kyc():
            lead.kyc_member = request.user
        lead.save()
        lead.change_status(new_status, user=request.user)
        messages.success(request, 'KYC details updated')
    else:
        messages.error(request, 'Please correct the KYC details')

    return redirect('leads:lead_detail', pk=lead.pk)


@login_required
@kyc_required
@require_POST
def lead_kyc_claim_view(request, pk):
    """A KYC member takes an unclaimed file from the queue"""
    lead = get_object_or_404(Lead, pk=pk, status=Lead.STATUS_AWAITING_KYC)

    if lead.kyc_member and lead.kyc_member != request.user:
        messages.error(request, f'Already claimed by {lead.kyc_member.get_full_name()}')
        return redirect('core:dashboard')

    lead.kyc_member = request.user
    lead.save(update_fields=['kyc_member', 'updated_at'])
    Activity.objects.create(
        lead=lead,
        user=request.user,
        activity_type='kyc_transfer',
        description=f'Claimed by {request.user.get_full_name()}',
    )
    messages.success(request, f'{lead.name} added to your KYC files')
    return redirect('leads:lead_detail', pk=lead.pk)


@login_required
@kyc_required
@require_POST
def lead_disburse_view(request, pk):
    lead = get_object_or_404(visible_leads(request.user), pk=pk)
    form = DisbursementForm(request.POST)

    if not form.is_valid():
        for errors in form.errors.values():
            messages.error(request, errors[0])
        return redirect('leads:lead_detail', pk=lead.pk)

    data = form.cleaned_data
    if data.get('bank_name'):
        lead.bank_name = data['bank_name']
    if data.get('application_number'):
        lead.application_number = data['application_number']

    disbursed_at = None
    if data.get('disbursed_on'):
        disbursed_at = timezone.make_aware(
            datetime.combine(data['disbursed_on'], time.min)
        )

    if lead.record_disbursement(data['amount'], user=request.user, disbursed_at=disbursed_at):
        messages.success(request, f'Disbursement of ₹{data["amount"]:,.2f} recorded')
    else:
        messages.error(request, 'Disbursed amount must be greater than zero')

    return redirect('leads:lead_detail', pk=lead.pk)


# ACTIVITY RECORDS
@login_required
@admin_or_owner_required(Lead)
@require_POST
def lead_add_note_view(request, pk):
    lead = get_object_or_404(Lead, pk=pk)
    form = NoteForm(request.POST)

    if form.is_valid():
        note = lead.add_note(content=form.cleaned_data['content'], user=request.user)

        if _is_ajax(request):
            return JsonResponse({
                'success': True,
                'note': {
                    'id': note.id,
                    'content': note.content,
                    'user': note.user.get_full_name(),
                    'created_at': note.created_at.isoformat(),
                }
            })

        messages.success(request, 'Note added successfully')
        return redirect('leads:lead_detail', pk=lead.pk)

    if _is_ajax(request):
        return JsonResponse({'success': False, 'errors': form.errors}, status=400)

    messages.error(request, 'Please enter note text')
    return redirect('leads:lead_detail', pk=lead.pk)


@login_required
@require_POST
def note_delete_view(request, note_id):
    note = get_object_or_404(Note.objects.select_related('lead', 'user'), pk=note_id)

    if not (request.user.is_admin() or note.user == request.user):
        messages.error(request, 'You do not have permission to delete this note')
        return redirect('leads:lead_detail', pk=note.lead.pk)

    lead_pk = note.lead.pk
    note.delete()

    messages.success(request, 'Note deleted successfully')
    return redirect('leads:lead_detail', pk=lead_pk)


@login_required
@admin_or_owner_required(Lead)
@require_POST
def lead_log_call_view(request, pk):
    lead = get_object_or_404(Lead, pk=pk)
    form = CallLogForm(request.POST)

    if not form.is_valid():
        if _is_ajax(request):
            return JsonResponse({'success': False, 'errors': form.errors}, status=400)
        messages.error(request, 'Please correct the call details')
        return redirect('leads:lead_detail', pk=lead.pk)

    call = lead.log_call(
        request.user,
        call_status=form.cleaned_data['call_status'],
        duration_seconds=form.cleaned_data['duration_seconds'],
        notes=form.cleaned_data['notes'],
    )

    if _is_ajax(request):
        return JsonResponse({'success': True, 'call_id': call.id, 'status': lead.status})

    messages.success(request, 'Call logged')
    return redirect('leads:lead_detail', pk=lead.pk)


@login_required
@admin_or_owner_required(Lead)
@require_POST
def lead_schedule_follow_up_view(request, pk):
    lead = get_object_or_404(Lead, pk=pk)
    form = FollowUpForm(request.POST)

    if form.is_valid():
        lead.schedule_follow_up(form.cleaned_data['scheduled_at'], request.user, notes=form.cleaned_data['notes'])
        messages.success(request, 'Follow-up scheduled')
    else:
        for errors in form.errors.values():
            messages.error(request, errors[0])

    return redirect('leads:lead_detail', pk=lead.pk)


@login_required
@require_POST
def follow_up_complete_view(request, pk):
    follow_up = get_object_or_404(FollowUp.objects.select_related('lead'), pk=pk)
    lead = follow_up.lead

    if not (request.user.can_manage_team() or lead.assigned_to == request.user or follow_up.user == request.user):
        messages.error(request, 'You do not have permission to update this follow-up')
        return redirect('core:dashboard')

    follow_up.mark_completed()
    if lead.next_follow_up == follow_up.scheduled_at:
        upcoming = lead.follow_ups.filter(status='pending').order_by('scheduled_at').first()
        lead.next_follow_up = upcoming.scheduled_at if upcoming else None
        lead.save(update_fields=['next_follow_up', 'updated_at'])

    messages.success(request, 'Follow-up marked as done')
    return redirect('leads:lead_detail', pk=lead.pk)


@login_required
def follow_up_list_view(request):
    """Telecaller task list: pending follow-ups, overdue first"""
    follow_ups = FollowUp.objects.filter(status='pending').select_related('lead', 'user')
    if not request.user.can_manage_team():
        follow_ups = follow_ups.filter(Q(lead__assigned_to=request.user) | Q(user=request.user))

    now = timezone.now()
    context = {
        'overdue': follow_ups.filter(scheduled_at__lt=now).order_by('scheduled_at'),
        'upcoming': follow_ups.filter(scheduled_at__gte=now).order_by('scheduled_at')[:100],
        'page_title': 'Tasks',
    }
    return render(request, 'leads/follow_up_list.html', context)


@login_required
@admin_or_owner_required(Lead)
def lead_whatsapp_view(request, pk):
    """Open WhatsApp with the standard documents-required message"""
    lead = get_object_or_404(Lead, pk=pk)
    message = settings.WHATSAPP_DOCUMENT_MESSAGE.format(telecaller_name=request.user.get_full_name())

    Activity.objects.create(
        lead=lead,
        user=request.user,
        activity_type='note_added',
        description='Document request sent on WhatsApp',
    )
    return redirect(lead.whatsapp_link(message))


# BULK ACTIONS
@login_required
@team_required
@require_POST
def lead_bulk_actions_view(request):
    if request.content_type == 'application/json':
        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse({'success': False, 'error': 'Invalid JSON format'}, status=400)
        lead_ids = data.get('lead_ids', [])
        if isinstance(lead_ids, list):
            data['lead_ids'] = ','.join(str(pk) for pk in lead_ids)
        form = LeadBulkActionForm(data)
    else:
        form = LeadBulkActionForm(request.POST)

    if not form.is_valid():
        error = next(iter(form.errors.values()))[0]
        if _is_ajax(request) or request.content_type == 'application/json':
            return JsonResponse({'success': False, 'error': error}, status=400)
        messages.error(request, error)
        return redirect('leads:lead_list')

    action = form.cleaned_data['action']
    leads = Lead.objects.filter(pk__in=form.cleaned_data['lead_ids'])
    count = leads.count()

    if count == 0:
        return JsonResponse({'success': False, 'error': 'No leads selected'}, status=400)

    if action == 'assign':
        user = form.cleaned_data['assigned_to']
        affected = sum(1 for lead in leads if lead.assign_to(user, assigned_by=request.user))
        message = f'{affected} lead(s) assigned to {user.get_full_name()}'

    elif action == 'change_status':
        status = form.cleaned_data['status']
        affected = sum(1 for lead in leads if lead.change_status(status, user=request.user))
        message = f'{affected} lead(s) status changed to "{dict(Lead.STATUS_CHOICES)[status]}"'

    elif action == 'set_priority':
        priority = form.cleaned_data['priority']
        priority_display = dict(Lead.PRIORITY_CHOICES)[priority]
        leads.update(priority=priority)
        Activity.objects.bulk_create([
            Activity(lead=lead, user=request.user, activity_type='status_changed', description=f'Priority changed to "{priority_display}"')
            for lead in leads
        ])
        affected = count
        message = f'Priority "{priority_display}" set for {count} lead(s)'

    else:
        if not request.user.is_admin():
            return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)
        deletable = leads.exclude(status=Lead.STATUS_DISBURSED)
        affected = deletable.count()
        deletable.delete()
        message = f'{affected} lead(s) deleted'
        if affected < count:
            message += f', {count - affected} disbursed lead(s) kept'

    logger.info("Bulk %s on %s of %s lead(s) by %s", action, affected, count, request.user.email)

    if _is_ajax(request) or request.content_type == 'application/json':
        return JsonResponse({'success': True, 'count': affected, 'message': message})

    messages.success(request, message)
    return redirect('leads:lead_list')


# IMPORT / EXPORT
@login_required
@team_required
def lead_export_view(request):
    export_format = request.GET.get('format', 'excel')
    leads = Lead.objects.select_related('assigned_to', 'kyc_member').order_by('-created_at')

    filter_form = LeadFilterForm(request.GET)
    if filter_form.is_valid():
        leads = filter_form.filter_queryset(leads)

    headers, rows = _export_rows(leads)
    stamp = timezone.localtime().strftime("%Y%m%d_%H%M%S")

    if export_format == 'excel':
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Leads"

        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = Font(bold=True, color="FFFFFF")
            cell.fill = PatternFill(start_color="667eea", end_color="667eea", fill_type="solid")

        for row in rows:
            ws.append(row)

        for col in ws.columns:
            width = max(len(str(cell.value)) if cell.value is not None else 0 for cell in col)
            ws.column_dimensions[col[0].column_letter].width = min(width + 2, 50)

        response = HttpResponse(content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')
        response['Content-Disposition'] = f'attachment; filename="leads_{stamp}.xlsx"'
        wb.save(response)
        return response

    if export_format == 'csv':
        response = HttpResponse(content_type='text/csv; charset=utf-8')
        response['Content-Disposition'] = f'attachment; filename="leads_{stamp}.csv"'

        # BOM for Excel UTF-8 compatibility
        response.write('\ufeff')
        writer = csv.writer(response)
        writer.writerow(headers)
        writer.writerows(rows)
        return response

    messages.error(request, 'Invalid export format')
    return redirect('leads:lead_list')


@login_required
@admin_required
def lead_import_view(request):
    if request.method == 'POST':
        form = LeadImportForm(request.POST, request.FILES)

        if form.is_valid():
            importer = LeadImporter(
                imported_by=request.user,
                assign_mode=form.cleaned_data['assign_mode'],
                assignee=form.cleaned_data.get('assigned_to'),
                default_source=form.cleaned_data.get('source'),
            )

            try:
                results = importer.run(read_upload(form.cleaned_data['file']))
            except LeadImportError as e:
                messages.error(request, str(e))
            else:
                messages.success(
                    request,
                    f'Import completed: {results["created"]} created, {results["updated"]} updated, '
                    f'skipped: {results["skipped"]}, duplicates: {results["duplicates"]}, failed: {results["failed"]}'
                )
                request.session['import_results'] = results
                return redirect('leads:lead_import')
        else:
            messages.error(request, 'Please correct the errors in the form')
    else:
        form = LeadImportForm()

    context = {
        'form': form,
        'results': request.session.pop('import_results', None),
        'page_title': 'Import Leads',
    }
    return render(request, 'leads/lead_import.html', context)


@login_required
@admin_required
def lead_import_template_view(request):
    response = HttpResponse(template_csv(), content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = 'attachment; filename="lead_import_template.csv"'
    return response


# LOAN LOGINS
@login_required
@telecaller_required
def login_list_view(request):
    logins = LoanLogin.objects.select_related('assigned_to', 'lead')
    if not request.user.can_manage_team():
        logins = logins.filter(assigned_to=request.user)

    status_filter = normalize_status(request.GET.get('status', ''))
    if status_filter in dict(LoanLogin.STATUS_CHOICES):
        logins = logins.filter(status=status_filter)

    if request.method == 'POST':
        form = LoanLoginForm(request.POST)
        if form.is_valid():
            login_record = form.save(commit=False)
            login_record.assigned_to = request.user
            login_record.lead = Lead.objects.filter(phone=login_record.phone).first()
            login_record.save()
            login_record.add_bank_attempt(form.cleaned_data['bank_name'])

            if login_record.lead and login_record.lead.status != Lead.STATUS_LOGIN_DONE:
                login_record.lead.bank_name = form.cleaned_data['bank_name']
                login_record.lead.save(update_fields=['bank_name', 'updated_at'])
                login_record.lead.change_status(Lead.STATUS_LOGIN_DONE, user=request.user)

            messages.success(request, f'Login recorded for {login_record.name}')
            return redirect('leads:login_list')
        messages.error(request, 'Please correct the errors below.')
    else:
        form = LoanLoginForm()

    page_obj = Paginator(logins, 25).get_page(request.GET.get('page', 1))

    context = {
        'logins': page_obj,
        'page_obj': page_obj,
        'form': form,
        'attempt_form': BankAttemptForm(),
        'status_filter': status_filter,
        'status_choices': LoanLogin.STATUS_CHOICES,
        'page_title': 'Logins',
    }
    return render(request, 'leads/login_list.html', context)


@login_required
@admin_or_owner_required(LoanLogin)
@require_POST
def login_add_attempt_view(request, pk):
    login_record = get_object_or_404(LoanLogin, pk=pk)
    form = BankAttemptForm(request.POST)

    if form.is_valid():
        login_record.add_bank_attempt(
            form.cleaned_data['bank'],
            status=form.cleaned_data['status'],
            reason=form.cleaned_data['reason'],
        )
        messages.success(request, f'Bank attempt added for {login_record.name}')
    else:
        messages.error(request, 'Please enter a bank and status')

    return redirect('leads:login_list')
