import os
from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'estate.settings')

app = Celery('estate')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()


app.conf.beat_schedule = {
    'settle-due-payments': {
        'task': 'payments.tasks.settle_due_payments',
        'schedule': crontab(minute='*'),  # Every minute
    },
    'purge-expired-notifications': {
        'task': 'notifications.tasks.purge_expired_notifications',
        'schedule': crontab(minute=0),  # Every hour
    },
    'generate-daily-analytics': {
        'task': 'analytics.tasks.generate_daily_analytics',
        'schedule': crontab(hour=0, minute=0),  # Midnight
    },
}
