from celery import shared_task
import logging

from .services import auto_checkout

logger = logging.getLogger(__name__)


@shared_task
def auto_checkout_open_sessions():
    """
    Close sessions of people who forgot to check out
    Scheduled in config/celery.py (19:00 daily)
    """
    closed = auto_checkout()
    return f'{closed} session(s) auto-checked out.'
