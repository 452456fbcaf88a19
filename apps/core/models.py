from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class Office(models.Model):

    name = models.CharField(max_length=120, unique=True, help_text="Branch name (e.g. Andheri Branch)")
    address = models.TextField(blank=True, help_text="Physical address")
    latitude = models.DecimalField(max_digits=9, decimal_places=6, validators=[MinValueValidator(-90), MaxValueValidator(90)], help_text="Office latitude in decimal degrees")
    longitude = models.DecimalField(max_digits=9, decimal_places=6, validators=[MinValueValidator(-180), MaxValueValidator(180)], help_text="Office longitude in decimal degrees")
    radius_m = models.PositiveIntegerField(default=200, help_text="Check-ins within this many metres count as on-site")
    is_active = models.BooleanField(default=True, help_text="Inactive offices are ignored for geofencing")

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Office"
        verbose_name_plural = "Offices"
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.radius_m} m)"


class Notification(models.Model):

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications', verbose_name=_('user'))
    title = models.CharField(max_length=200)
    message = models.TextField(blank=True)
    link = models.CharField(max_length=255, blank=True, help_text="Relative URL opened from the bell")
    is_read = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read']),
        ]

    def __str__(self):
        return f"{self.user.get_full_name()}: {self.title}"

    @classmethod
    def notify(cls, user, title, message='', link=''):
        """Create a notification; silently ignores a missing user"""
        if user is None:
            return None
        return cls.objects.create(user=user, title=title, message=message, link=link)

    def mark_read(self):
        if not self.is_read:
            self.is_read = True
            self.save(update_fields=['is_read'])
