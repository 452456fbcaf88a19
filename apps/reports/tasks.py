from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string
from django.utils import timezone
import logging

from apps.accounts.models import User
from .services import daily_report_context

logger = logging.getLogger(__name__)


def report_recipients():
    """Configured addresses, else every active admin and team leader"""
    recipients = [email for email in getattr(settings, 'DAILY_REPORT_RECIPIENTS', []) if email]
    if recipients:
        return recipients
    return list(
        User.objects.filter(
            is_active=True,
            role__in=[User.ROLE_ADMIN, User.ROLE_TEAM_LEADER],
        ).values_list('email', flat=True)
    )


@shared_task
def send_daily_report(day=None):
    """
    End-of-day summary email
    Scheduled in config/celery.py (20:00 daily, after auto-checkout)
    """
    if day is None:
        day = timezone.localdate()

    recipients = report_recipients()
    if not recipients:
        logger.warning("Daily report skipped: no recipients")
        return 'No recipients.'

    context = daily_report_context(day)
    subject = f'Daily report: {day:%d %b %Y}'
    text_body = render_to_string('reports/email/daily_report.txt', context)
    html_body = render_to_string('reports/email/daily_report.html', context)

    send_mail(
        subject,
        text_body,
        settings.DEFAULT_FROM_EMAIL,
        recipients,
        html_message=html_body,
    )

    logger.info("Daily report for %s sent to %s recipient(s)", day, len(recipients))
    return f'Daily report sent to {len(recipients)} recipient(s).'
