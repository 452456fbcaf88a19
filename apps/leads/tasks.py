from datetime import timedelta
import logging

from celery import shared_task
from django.utils import timezone

from apps.core.models import Notification
from .models import FollowUp, Activity

logger = logging.getLogger(__name__)

# Remind slightly ahead so the 15-minute beat never fires late
REMINDER_LEAD_TIME = timedelta(minutes=15)


@shared_task
def send_follow_up_notifications():
    now = timezone.now()
    due = FollowUp.objects.filter(
        status='pending',
        reminder_sent=False,
        scheduled_at__lte=now + REMINDER_LEAD_TIME,
    ).select_related('lead', 'lead__assigned_to', 'user')

    notifications_sent = 0

    for follow_up in due:
        lead = follow_up.lead
        recipient = lead.assigned_to or follow_up.user

        if recipient:
            Notification.notify(
                recipient,
                'Follow-up due',
                f'Call {lead.name} ({lead.phone}) at {timezone.localtime(follow_up.scheduled_at):%H:%M}.',
                link=lead.get_absolute_url(),
            )
            Activity.objects.create(
                lead=lead,
                user=None,
                activity_type='follow_up_reminder',
                description=f'Follow-up reminder sent to {recipient.get_full_name()}',
            )
            notifications_sent += 1

        follow_up.reminder_sent = True
        follow_up.save(update_fields=['reminder_sent'])

    if notifications_sent:
        logger.info("Sent %s follow-up reminder(s)", notifications_sent)
    return f'{notifications_sent} follow-up notifications sent.'
