from django.contrib import admin
from django.utils.html import format_html
from .models import Office, Notification


@admin.register(Office)
class OfficeAdmin(admin.ModelAdmin):

    list_display = [
        'name',
        'coordinates',
        'radius_m',
        'status_badge',
        'updated_at',
    ]
    list_filter = ['is_active']
    search_fields = ['name', 'address']
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        ('Office', {
            'fields': ('name', 'address')
        }),
        ('Geofence', {
            'fields': ('latitude', 'longitude', 'radius_m', 'is_active')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    @admin.display(description='Coordinates')
    def coordinates(self, obj):
        return f'{obj.latitude}, {obj.longitude}'

    @admin.display(description='Status', boolean=False)
    def status_badge(self, obj):
        if obj.is_active:
            return format_html(
                '<span style="background-color: #28a745; color: white; '
                'padding: 3px 10px; border-radius: 3px; font-size: 11px;">{}</span>',
                'Active'
            )
        return format_html(
            '<span style="background-color: #dc3545; color: white; '
            'padding: 3px 10px; border-radius: 3px; font-size: 11px;">{}</span>',
            'Inactive'
        )


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):

    list_display = ['title', 'user', 'is_read', 'created_at']
    list_filter = ['is_read', 'created_at']
    search_fields = ['title', 'message', 'user__email', 'user__full_name']
    list_select_related = ['user']
    readonly_fields = ['created_at']
    actions = ['mark_as_read']

    @admin.action(description='Mark selected as read')
    def mark_as_read(self, request, queryset):
        count = queryset.update(is_read=True)
        self.message_user(request, f'{count} notification(s) marked as read')
