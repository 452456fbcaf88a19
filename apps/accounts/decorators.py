# Decorators in this file:
# 1. admin_required - Only admins can access
# 2. team_required - Admins and team leaders
# 3. telecaller_required / kyc_required - Role-specific pages
# 4. role_required - Any of the listed roles
# 5. admin_or_owner_required - Admin, or the user the object is assigned to
# 6. ajax_required / post_required - Request type checks
#
# Why decorators?
# - Clean code (no repeated permission checks)
# - Reusable across views
# ==============================================================================

from functools import wraps
from django.shortcuts import redirect
from django.contrib import messages
from django.http import HttpResponseForbidden, JsonResponse, Http404
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import PermissionDenied


def _is_ajax(request):
    return request.headers.get('X-Requested-With') == 'XMLHttpRequest'


def _deny(request, message):
    """
    Consistent behavior:
    - AJAX → JSON 403
    - Regular → redirect to dashboard with message
    """
    if _is_ajax(request):
        return JsonResponse({'success': False, 'error': str(message)}, status=403)

    messages.error(request, message)
    return redirect('core:dashboard')


# ROLE-BASED DECORATORS
def admin_required(view_func):
    """
    Decorator: Only admins can access this view

    Checks:
    1. User is authenticated (logged in)
    2. User role is 'admin' OR is superuser
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            messages.error(request, _('Please login to continue.'))
            return redirect('accounts:login')

        if request.user.is_admin():
            return view_func(request, *args, **kwargs)

        return _deny(request, _('You do not have permission to access this page. Admin access required.'))

    return wrapper


def role_required(*allowed_roles):
    """
    Decorator: Only specific roles can access (superusers always pass)

    Usage:
        @login_required
        @role_required('telecaller', 'team_leader')
        def my_leads(request):
            ...
    """

    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                messages.error(request, _('Please login to continue.'))
                return redirect('accounts:login')

            if request.user.role in allowed_roles or request.user.is_superuser:
                return view_func(request, *args, **kwargs)

            return _deny(request, _('You do not have permission to access this page.'))

        return wrapper

    return decorator


team_required = role_required('admin', 'team_leader')
telecaller_required = role_required('telecaller', 'team_leader', 'admin')
kyc_required = role_required('kyc_team', 'admin')


def admin_or_owner_required(model_class, pk_param='pk', field_name='assigned_to'):
    """
    Decorator: Admin / team leader OR owner can access

    Access matrix:
    User Type   | Own Object | Other's Object
    ------------|------------|---------------
    Admin/TL    | ✅         | ✅
    Telecaller  | ✅         | ❌
    KYC team    | ✅ (kyc_member) | ❌

    Missing objects raise 404; foreign objects raise 403.
    """

    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return redirect('accounts:login')

            if request.user.can_manage_team():
                return view_func(request, *args, **kwargs)

            pk = kwargs.get(pk_param)

            try:
                obj = model_class.objects.get(pk=pk)
            except model_class.DoesNotExist:
                raise Http404(f"{model_class.__name__} not found.")

            owners = [getattr(obj, field_name, None)]
            if request.user.is_kyc():
                owners.append(getattr(obj, 'kyc_member', None))

            if request.user in owners:
                return view_func(request, *args, **kwargs)

            raise PermissionDenied

        return wrapper

    return decorator


# REQUEST TYPE DECORATORS
def ajax_required(view_func):
    """
    Decorator: Only AJAX requests allowed

    How it detects AJAX:
    - Checks X-Requested-With header
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if _is_ajax(request):
            return view_func(request, *args, **kwargs)

        return HttpResponseForbidden('AJAX requests only')

    return wrapper


def post_required(view_func):
    """
    Decorator: Only POST requests allowed

    Destructive actions (delete, update) should be POST
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if request.method == 'POST':
            return view_func(request, *args, **kwargs)

        return JsonResponse({
            'success': False,
            'error': 'POST requests only'
        }, status=405)

    return wrapper
