from django.contrib import admin
from django.utils.html import format_html
from .models import Lead, Note, CallLog, FollowUp, Activity, LoanLogin


STATUS_COLORS = {
    'new': '#17a2b8',
    'contacted': '#ffc107',
    'follow_up': '#20c997',
    'interested': '#28a745',
    'not_interested': '#6c757d',
    'not_eligible': '#6c757d',
    'login_done': '#667eea',
    'awaiting_kyc': '#fd7e14',
    'underwriting': '#6f42c1',
    'approved': '#198754',
    'rejected': '#dc3545',
    'disbursed': '#0d6efd',
    'closed': '#343a40',
}


class NoteInline(admin.TabularInline):

    model = Note
    extra = 0
    readonly_fields = ['created_at']
    fields = ['user', 'content', 'created_at']
    classes = ['collapse']

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('user')


class CallLogInline(admin.TabularInline):

    model = CallLog
    extra = 0
    readonly_fields = ['created_at']
    fields = ['created_at', 'user', 'call_status', 'duration_seconds', 'notes']
    classes = ['collapse']


class ActivityInline(admin.TabularInline):

    model = Activity
    extra = 0  # Activities are auto-created
    readonly_fields = ['user', 'activity_type', 'description', 'created_at']
    fields = ['created_at', 'user', 'activity_type', 'description']
    classes = ['collapse']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):

    list_display = [
        'id',
        'name',
        'phone',
        'status_badge',
        'priority',
        'loan_type',
        'loan_amount',
        'assigned_to_display',
        'kyc_member',
        'disbursed_amount',
        'created_at',
    ]

    list_filter = ['status', 'priority', 'loan_type', 'assigned_to', 'kyc_member', 'created_at']
    search_fields = ['name', 'phone', 'email', 'company_name', 'application_number']
    ordering = ['-created_at']
    list_per_page = 50
    date_hierarchy = 'created_at'
    list_select_related = ['assigned_to', 'kyc_member']

    fieldsets = [
        ('Basic Information', {
            'fields': ['name', 'phone', 'alternate_phone', 'email', 'company_name', 'designation']
        }),
        ('Pipeline', {
            'fields': ['source', 'status', 'priority', 'next_follow_up', 'last_contacted']
        }),
        ('Assignment', {
            'fields': ['assigned_to', 'assigned_by', 'assigned_at', 'kyc_member']
        }),
        ('Loan', {
            'fields': ['loan_type', 'loan_amount', 'monthly_income', 'bank_name', 'application_number', 'disbursed_amount', 'disbursed_at']
        }),
        ('Address', {
            'fields': ['address', 'city', 'state', 'country', 'zip_code'],
            'classes': ['collapse'],
        }),
        ('Additional Info', {
            'fields': ['notes', 'tags'],
            'classes': ['collapse'],
        }),
        ('Timestamps', {
            'fields': ['created_at', 'updated_at'],
            'classes': ['collapse'],
        }),
    ]

    readonly_fields = ['created_at', 'updated_at']
    inlines = [NoteInline, CallLogInline, ActivityInline]

    @admin.display(description='Status', ordering='status')
    def status_badge(self, obj):
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            STATUS_COLORS.get(obj.status, '#6c757d'),
            obj.get_status_display()
        )

    @admin.display(description='Assigned To')
    def assigned_to_display(self, obj):
        if obj.assigned_to:
            return format_html(
                '<span style="background-color: #667eea; color: white; '
                'padding: 2px 6px; border-radius: 50%; font-size: 10px; '
                'margin-right: 5px;">{}</span> {}',
                obj.assigned_to.get_initials(),
                obj.assigned_to.get_full_name()
            )
        return format_html('<span style="color: #999;">{}</span>', 'Unassigned')

    actions = ['mark_as_contacted', 'mark_as_not_interested', 'set_high_priority']

    def _bulk_status(self, request, queryset, status):
        count = sum(1 for lead in queryset if lead.change_status(status, user=request.user))
        self.message_user(request, f'Updated {count} lead(s) to "{dict(Lead.STATUS_CHOICES)[status]}"')

    @admin.action(description='Mark as "Contacted"')
    def mark_as_contacted(self, request, queryset):
        self._bulk_status(request, queryset, Lead.STATUS_CONTACTED)

    @admin.action(description='Mark as "Not Interested"')
    def mark_as_not_interested(self, request, queryset):
        self._bulk_status(request, queryset, Lead.STATUS_NOT_INTERESTED)

    @admin.action(description='Set High Priority')
    def set_high_priority(self, request, queryset):
        count = queryset.update(priority='high')
        self.message_user(request, f'Set high priority for {count} leads')


@admin.register(FollowUp)
class FollowUpAdmin(admin.ModelAdmin):
    list_display = ['lead', 'user', 'scheduled_at', 'status', 'reminder_sent']
    list_filter = ['status', 'reminder_sent']
    search_fields = ['lead__name', 'lead__phone']
    list_select_related = ['lead', 'user']


@admin.register(CallLog)
class CallLogAdmin(admin.ModelAdmin):
    list_display = ['lead', 'user', 'call_type', 'call_status', 'duration_seconds', 'created_at']
    list_filter = ['call_status', 'call_type', 'created_at']
    search_fields = ['lead__name', 'lead__phone']
    list_select_related = ['lead', 'user']


@admin.register(LoanLogin)
class LoanLoginAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'status', 'assigned_to', 'created_at']
    list_filter = ['status']
    search_fields = ['name', 'phone']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ['lead', 'user', 'activity_type', 'description', 'created_at']
    list_filter = ['activity_type', 'created_at']
    search_fields = ['lead__name', 'description']
    list_select_related = ['lead', 'user']

    def has_add_permission(self, request):
        return False
