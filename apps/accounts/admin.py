from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _
from django.utils.html import format_html
from .models import User


ROLE_COLORS = {
    User.ROLE_ADMIN: '#dc3545',
    User.ROLE_TEAM_LEADER: '#6f42c1',
    User.ROLE_KYC: '#fd7e14',
    User.ROLE_TELECALLER: '#0d6efd',
}


# CUSTOM USER ADMIN
@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = (
        'email',
        'full_name',
        'role_badge',
        'department',
        'is_active_badge',
        'login_count',
        'date_joined',
    )

    list_display_links = ('email', 'full_name')

    list_filter = (
        'role',
        'department',
        'is_active',
        'is_staff',
        'date_joined',
    )
    search_fields = (
        'email',
        'full_name',
        'phone',
    )

    ordering = ('full_name',)
    list_per_page = 25

    fieldsets = (
        (_('Login Credentials'), {
            'fields': ('email', 'password'),
            'classes': ('wide',),
            'description': _('Email is used for login. Password is stored encrypted.')
        }),
        (_('Personal Information'), {
            'fields': ('full_name', 'phone', 'department'),
            'classes': ('wide',),
        }),
        (_('Role & Targets'), {
            'fields': ('role', 'monthly_target', 'daily_call_target'),
            'classes': ('wide',),
        }),
        (_('Permissions'), {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',),
        }),
        (_('Activity'), {
            'fields': ('last_login', 'last_login_ip', 'login_count', 'date_joined'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'full_name', 'role', 'password1', 'password2'),
        }),
    )

    readonly_fields = ('last_login', 'last_login_ip', 'login_count', 'date_joined')

    @admin.display(description=_('Role'), ordering='role')
    def role_badge(self, obj):
        return format_html(
            '<span style="background:{};color:#fff;padding:2px 8px;border-radius:10px;">{}</span>',
            ROLE_COLORS.get(obj.role, '#6c757d'),
            obj.get_role_display(),
        )

    @admin.display(description=_('Status'), ordering='is_active')
    def is_active_badge(self, obj):
        if obj.is_active:
            return format_html('<span style="color:#198754;">● {}</span>', _('Active'))
        return format_html('<span style="color:#6c757d;">● {}</span>', _('Inactive'))

    actions = ['activate_users', 'deactivate_users']

    @admin.action(description=_('Activate selected users'))
    def activate_users(self, request, queryset):
        updated = queryset.update(is_active=True)
        self.message_user(request, _('{} user(s) activated.').format(updated))

    @admin.action(description=_('Deactivate selected users'))
    def deactivate_users(self, request, queryset):
        updated = queryset.exclude(pk=request.user.pk).update(is_active=False)
        self.message_user(request, _('{} user(s) deactivated.').format(updated))
