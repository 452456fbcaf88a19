# Celery is a distributed task queue for running background jobs
#
# - Auto check-out employees who forgot to check out
# - Remind telecallers about due follow-ups
# - Email the daily performance report
#
# Start worker: celery -A config worker -l info
# Start beat: celery -A config beat -l info
# ==============================================================================

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for Celery
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

# 'loandesk' is the app name (appears in logs and monitoring)
app = Celery('loandesk')

# All settings prefixed with 'CELERY_' will be used
# Example: CELERY_BROKER_URL, CELERY_RESULT_BACKEND
app.config_from_object('django.conf:settings', namespace='CELERY')

# Looks for tasks.py file in each app
app.autodiscover_tasks()


# CELERY BEAT SCHEDULE (Periodic Tasks)

app.conf.beat_schedule = {
    # Close every open attendance session at 7 PM
    'auto-checkout-open-sessions': {
        'task': 'apps.attendance.tasks.auto_checkout_open_sessions',
        'schedule': crontab(hour=19, minute=0),
    },

    # Notify agents about follow-ups that are due
    'send-follow-up-notifications': {
        'task': 'apps.leads.tasks.send_follow_up_notifications',
        'schedule': crontab(minute='*/15'),  # Every 15 minutes
    },

    # Send daily report at 8 PM (after auto-checkout)
    'send-daily-report': {
        'task': 'apps.reports.tasks.send_daily_report',
        'schedule': crontab(hour=20, minute=0),
    },
}


# CELERY TASK ANNOTATIONS

app.conf.task_annotations = {
    'apps.reports.tasks.send_daily_report': {
        'time_limit': 600,  # 10 minutes
        'soft_time_limit': 540,  # 9 minutes
    },
}


@app.task(bind=True, ignore_result=True)
def debug_task(self):
    """
    Debug task to test Celery is working

    Usage:
        from config.celery import debug_task
        debug_task.delay()
    """
    print(f'Request: {self.request!r}')
