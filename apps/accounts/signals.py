import logging

from django.db.models.signals import post_save, pre_delete
from django.dispatch import receiver
from django.contrib.auth import get_user_model


User = get_user_model()
logger = logging.getLogger(__name__)


# SIGNAL 1: LOG ACCOUNT CREATION
@receiver(post_save, sender=User)
def log_user_saved(sender, instance, created, **kwargs):
    if created:
        logger.info("User created: %s (%s)", instance.email, instance.role)


# SIGNAL 2: RELEASE LEADS ON USER DELETION
@receiver(pre_delete, sender=User)
def release_user_leads(sender, instance, **kwargs):
    # Leads would otherwise silently lose their owner (SET_NULL);
    # record it in the activity log first
    from apps.leads.models import Lead, Activity

    leads = Lead.objects.filter(assigned_to=instance)
    activities = [
        Activity(
            lead=lead,
            user=None,
            activity_type='assigned',
            description=f'Unassigned: {instance.get_full_name()} was removed',
        )
        for lead in leads
    ]
    if activities:
        Activity.objects.bulk_create(activities)
        logger.info("Released %d lead(s) from deleted user %s", len(activities), instance.email)

    logger.info("User deleted: %s (%s)", instance.email, instance.get_full_name())
