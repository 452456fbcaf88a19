import logging

from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from apps.core.realtime import broadcast_change
from .models import Lead, Activity, LoanLogin

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Lead)
def create_lead_activity(sender, instance, created, **kwargs):

    # Only for newly created leads; imports write their own 'imported' rows
    if created:
        Activity.objects.create(
            lead=instance,
            user=None,  # System-generated
            activity_type='created',
            description='Lead created'
        )
        logger.info("Lead %s created (%s)", instance.pk, instance.phone)


@receiver(post_save, sender=Lead)
def broadcast_lead_saved(sender, instance, created, **kwargs):
    broadcast_change('leads', 'created' if created else 'updated', instance.pk)


@receiver(post_delete, sender=Lead)
def broadcast_lead_deleted(sender, instance, **kwargs):
    broadcast_change('leads', 'deleted', instance.pk)


@receiver(post_save, sender=LoanLogin)
def broadcast_login_saved(sender, instance, created, **kwargs):
    broadcast_change('logins', 'created' if created else 'updated', instance.pk)


@receiver(post_delete, sender=LoanLogin)
def broadcast_login_deleted(sender, instance, **kwargs):
    broadcast_change('logins', 'deleted', instance.pk)
