from django.apps import AppConfig


class CoreConfig(AppConfig):
    """
    Configuration for Core application

    This app contains:
        - Role-routed dashboards (admin / team leader, telecaller, KYC)
        - Office geofences used by attendance check-in
        - In-app notifications
        - The ws/updates/ consumer that tells open pages to reload
    """
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'
