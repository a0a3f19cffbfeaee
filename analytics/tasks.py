from celery import shared_task
from django.conf import settings
from django.utils import timezone
from datetime import date, timedelta
import logging

from .services import generate_daily_snapshot

logger = logging.getLogger('estate.analytics')


@shared_task(bind=True, max_retries=3)
def generate_daily_analytics(self, day=None):
    """Store yesterday's snapshot; runs from beat at midnight"""
    if not settings.FEATURES.get('ANALYTICS_TRACKING', True):
        return {'success': False, 'error': 'Analytics tracking is disabled'}

    target = day or (timezone.localdate() - timedelta(days=1)).isoformat()
    try:
        snapshot, created = generate_daily_snapshot(date.fromisoformat(target))
    except Exception as e:
        if self.request.retries < self.max_retries:
            countdown = 2 ** self.request.retries * 60
            raise self.retry(countdown=countdown, exc=e)
        logger.error(f"Failed to generate analytics for {target}: {str(e)}")
        return {'success': False, 'error': str(e)}

    return {'success': True, 'date': snapshot.date.isoformat(), 'created': created}
