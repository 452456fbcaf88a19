from django.contrib import admin
from django.utils.html import format_html
from .models import Attendance, Leave


STATUS_COLORS = {
    'present': '#198754',
    'late': '#fd7e14',
    'absent': '#dc3545',
    'half_day': '#0dcaf0',
    'on_leave': '#6c757d',
}


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ('user', 'date', 'check_in', 'check_out', 'total_hours', 'status_badge', 'work_mode', 'office_name')
    list_filter = ('status', 'work_mode', 'date')
    search_fields = ('user__full_name', 'user__email', 'admin_note')
    date_hierarchy = 'date'
    list_select_related = ('user',)
    list_per_page = 50

    # Timestamps come from the widget; admins only correct the note
    readonly_fields = (
        'user', 'date', 'check_in', 'check_out', 'lunch_start', 'lunch_end',
        'total_hours', 'break_hours', 'work_mode', 'office_name', 'distance_m',
        'location_check_in', 'location_check_out', 'ip_check_in', 'ip_check_out',
        'created_at', 'updated_at',
    )

    @admin.display(description='Status', ordering='status')
    def status_badge(self, obj):
        return format_html(
            '<span style="background:{};color:#fff;padding:2px 8px;border-radius:10px;">{}</span>',
            STATUS_COLORS.get(obj.status, '#6c757d'),
            obj.get_status_display(),
        )


@admin.register(Leave)
class LeaveAdmin(admin.ModelAdmin):
    list_display = ('user', 'leave_type', 'start_date', 'end_date', 'days', 'status', 'approved_by')
    list_filter = ('status', 'leave_type')
    search_fields = ('user__full_name', 'reason')
    list_select_related = ('user', 'approved_by')
    actions = ['approve_selected']

    @admin.action(description='Approve selected leave requests')
    def approve_selected(self, request, queryset):
        approved = sum(1 for leave in queryset.filter(status='pending') if leave.approve(request.user))
        self.message_user(request, f'{approved} leave request(s) approved.')
