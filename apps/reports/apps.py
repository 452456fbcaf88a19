from django.apps import AppConfig


class ReportsConfig(AppConfig):
    """Disbursement, performance and attendance reporting plus the daily email"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.reports'
    verbose_name = 'Reports'
