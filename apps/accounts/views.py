from django.shortcuts import render, redirect, get_object_or_404
from django.contrib.auth import authenticate, login, logout, update_session_auth_hash
from django.contrib.auth.decorators import login_required
from django.contrib import messages
from django.contrib.auth.forms import PasswordChangeForm
from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db.models import Q
from django.http import JsonResponse, HttpResponseForbidden
from django.core.validators import validate_ipv46_address
from django.utils.http import url_has_allowed_host_and_scheme
from django.utils.translation import gettext_lazy as _
from django.views.decorators.http import require_http_methods
from django.views.decorators.cache import never_cache
from django.utils import timezone
from datetime import timedelta

from apps.attendance import scoring
from apps.attendance.models import Attendance
from apps.reports.services import target_progress
from .models import User
from .forms import LoginForm, UserEditForm, UserCreateForm
from .decorators import admin_required


# HELPER FUNCTIONS
def _valid_ip(value):
    try:
        validate_ipv46_address(value)
    except ValidationError:
        return None
    return value


def get_client_ip(request):
    """
    Client address for the attendance audit columns

    The first X-Forwarded-For entry when it is a valid address, else
    REMOTE_ADDR, else None.
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        # X-Forwarded-For can contain multiple IPs (proxy chain)
        # First one is the original client IP
        ip = _valid_ip(x_forwarded_for.split(',')[0].strip())
        if ip:
            return ip
    return _valid_ip(request.META.get('REMOTE_ADDR') or '')


def staff_summary(user):
    """Targets, lead book and 30-day attendance shown on profile pages"""
    since = timezone.localdate() - timedelta(days=29)
    records = list(Attendance.objects.filter(user=user, date__gte=since))
    score = scoring.reliability_score(records)

    return {
        'progress': target_progress(user),
        'open_leads': user.assigned_leads.exclude(status__in=['disbursed', 'closed', 'rejected']).count(),
        'kyc_files': user.kyc_leads.count() if user.is_kyc() else None,
        'attendance': scoring.summarize(records),
        'reliability_score': score,
        'reliability_label': scoring.reliability_label(score),
    }


# AUTHENTICATION VIEWS
@never_cache
def login_view(request):
    if request.user.is_authenticated:
        return redirect('core:dashboard')

    if request.method == 'POST':
        form = LoginForm(request.POST)

        if form.is_valid():
            email = form.cleaned_data['email']
            password = form.cleaned_data['password']
            remember = form.cleaned_data.get('remember', False)

            # Returns User object if valid, None if invalid (or inactive)
            user = authenticate(request, username=email, password=password)

            if user is not None:
                login(request, user)

                if remember:
                    # Session expires in 30 days
                    request.session.set_expiry(30 * 24 * 60 * 60)
                else:
                    # Session expires when browser closes
                    request.session.set_expiry(0)

                user.increment_login_count(ip_address=get_client_ip(request))

                messages.success(
                    request,
                    _('Welcome back, {}!').format(user.get_short_name())
                )

                next_url = request.GET.get('next')
                if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
                    return redirect(next_url)
                return redirect('core:dashboard')

            messages.error(
                request,
                _('Invalid email or password, or the account is inactive.')
            )
        else:
            messages.error(request, _('Please correct the errors below.'))

    else:
        form = LoginForm()

    context = {
        'form': form,
        'page_title': _('Login'),
    }

    return render(request, 'accounts/login.html', context)


@login_required
def logout_view(request):
    user_name = request.user.get_short_name()

    logout(request)

    messages.success(
        request,
        _('You have been logged out successfully. See you soon, {}!').format(user_name)
    )

    return redirect('accounts:login')


# PROFILE VIEWS
@login_required
def profile_view(request):

    context = {
        'viewed_user': request.user,
        'summary': staff_summary(request.user),
        'page_title': _('My Profile'),
    }

    return render(request, 'accounts/user_detail.html', context)


@login_required
def profile_edit_view(request):

    if request.method == 'POST':
        form = UserEditForm(request.POST, instance=request.user)

        if form.is_valid():
            form.save()
            messages.success(request, _('Your profile has been updated successfully!'))
            return redirect('accounts:profile')

        messages.error(request, _('Please correct the errors below.'))

    else:
        form = UserEditForm(instance=request.user)

    context = {
        'form': form,
        'form_title': _('Edit Profile'),
        'page_title': _('Edit Profile'),
    }

    return render(request, 'accounts/user_form.html', context)


@login_required
def password_change_view(request):

    if request.method == 'POST':
        form = PasswordChangeForm(user=request.user, data=request.POST)

        if form.is_valid():
            user = form.save()

            # Update session (keep user logged in)
            update_session_auth_hash(request, user)
            messages.success(request, _('Your password has been changed successfully!'))
            return redirect('accounts:profile')

        messages.error(request, _('Please correct the errors below.'))

    else:
        form = PasswordChangeForm(user=request.user)

    context = {
        'form': form,
        'form_title': _('Change Password'),
        'page_title': _('Change Password'),
    }

    return render(request, 'accounts/user_form.html', context)


# USER MANAGEMENT VIEWS (Admin Only)
@login_required
@admin_required
def user_list_view(request):

    queryset = User.objects.all()

    search_query = request.GET.get('q', '').strip()
    if search_query:
        queryset = queryset.filter(
            Q(full_name__icontains=search_query) |
            Q(email__icontains=search_query) |
            Q(phone__icontains=search_query) |
            Q(department__icontains=search_query)
        )

    role_filter = request.GET.get('role', '')
    if role_filter in dict(User.ROLE_CHOICES):
        queryset = queryset.filter(role=role_filter)

    status_filter = request.GET.get('status', '')
    if status_filter == 'active':
        queryset = queryset.filter(is_active=True)
    elif status_filter == 'inactive':
        queryset = queryset.filter(is_active=False)

    sort_by = request.GET.get('sort', 'full_name')
    valid_sort_fields = ['full_name', 'email', 'date_joined', 'login_count', 'role']
    if sort_by.lstrip('-') in valid_sort_fields:
        queryset = queryset.order_by(sort_by)

    total_users = queryset.count()
    active_users = queryset.filter(is_active=True).count()

    paginator = Paginator(queryset, 25)
    page_obj = paginator.get_page(request.GET.get('page', 1))

    context = {
        'users': page_obj,
        'page_obj': page_obj,
        'total_users': total_users,
        'active_users': active_users,
        'inactive_users': total_users - active_users,
        'search_query': search_query,
        'role_filter': role_filter,
        'status_filter': status_filter,
        'role_choices': User.ROLE_CHOICES,
        'sort_by': sort_by,
        'page_title': _('Users'),
    }

    return render(request, 'accounts/user_list.html', context)


@login_required
def user_detail_view(request, pk):

    viewed_user = get_object_or_404(User, pk=pk)

    if not request.user.can_manage_team() and viewed_user != request.user:
        messages.error(request, _('You do not have permission to view this user.'))
        return redirect('accounts:profile')

    context = {
        'viewed_user': viewed_user,
        'summary': staff_summary(viewed_user),
        'page_title': viewed_user.get_full_name(),
    }

    return render(request, 'accounts/user_detail.html', context)


@login_required
@admin_required
def user_create_view(request):
    if request.method == 'POST':
        form = UserCreateForm(request.POST)

        if form.is_valid():
            user = form.save()

            messages.success(
                request,
                _('User {} has been created successfully!').format(user.get_full_name())
            )

            return redirect('accounts:user_detail', pk=user.pk)

        messages.error(request, _('Please correct the errors below.'))

    else:
        form = UserCreateForm()

    context = {
        'form': form,
        'form_title': _('Create User'),
        'page_title': _('Create User'),
    }

    return render(request, 'accounts/user_form.html', context)


@login_required
def user_edit_view(request, pk):

    user = get_object_or_404(User, pk=pk)

    can_edit_all_fields = request.user.is_admin()
    if not can_edit_all_fields and user != request.user:
        return HttpResponseForbidden(_('You do not have permission to edit this user.'))

    if request.method == 'POST':
        form = UserEditForm(request.POST, instance=user, can_edit_all_fields=can_edit_all_fields)

        if form.is_valid():
            form.save()
            messages.success(request, _('User has been updated successfully!'))
            return redirect('accounts:user_detail', pk=user.pk)

        messages.error(request, _('Please correct the errors below.'))

    else:
        form = UserEditForm(instance=user, can_edit_all_fields=can_edit_all_fields)

    context = {
        'form': form,
        'form_title': _('Edit User'),
        'edited_user': user,
        'page_title': _('Edit {}').format(user.get_full_name()),
    }

    return render(request, 'accounts/user_form.html', context)


# AJAX VIEWS
@login_required
@require_http_methods(['POST'])
def toggle_user_status(request, pk):
    if not request.user.is_admin():
        return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)

    user = get_object_or_404(User, pk=pk)

    if user == request.user:
        return JsonResponse({'success': False, 'error': 'Cannot deactivate yourself'})

    if user.is_superuser and not request.user.is_superuser:
        return JsonResponse({'success': False, 'error': 'Cannot deactivate superuser'})

    user.is_active = not user.is_active
    user.save(update_fields=['is_active', 'updated_at'])

    status_text = _('activated') if user.is_active else _('deactivated')

    return JsonResponse({
        'success': True,
        'is_active': user.is_active,
        'message': str(_('User {}').format(status_text))
    })
