from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from apps.core.realtime import broadcast_change
from .models import Attendance, Leave


@receiver(post_save, sender=Attendance)
def broadcast_attendance_saved(sender, instance, created, **kwargs):
    broadcast_change('attendance', 'created' if created else 'updated', instance.pk)


@receiver(post_delete, sender=Attendance)
def broadcast_attendance_deleted(sender, instance, **kwargs):
    broadcast_change('attendance', 'deleted', instance.pk)


@receiver(post_save, sender=Leave)
def broadcast_leave_saved(sender, instance, created, **kwargs):
    broadcast_change('leaves', 'created' if created else 'updated', instance.pk)
