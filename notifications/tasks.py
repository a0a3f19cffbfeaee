from celery import shared_task
from django.conf import settings
import logging

from accounts.models import User
from .models import Notification

logger = logging.getLogger('estate.notifications')


@shared_task
def broadcast_notification(title, message, notification_type='system', priority='medium'):
    """Deliver one notification to every user, inserted in fixed-size batches"""
    batch_size = settings.BROADCAST_BATCH_SIZE
    user_ids = list(User.objects.values_list('id', flat=True))

    for start in range(0, len(user_ids), batch_size):
        Notification.objects.bulk_create([
            Notification(
                recipient_role='user',
                recipient_id=user_id,
                notification_type=notification_type,
                title=title,
                message=message,
                priority=priority,
                metadata={'broadcast': True},
            )
            for user_id in user_ids[start:start + batch_size]
        ])

    logger.info(f"Broadcast '{title}' delivered to {len(user_ids)} users")
    return {'success': True, 'count': len(user_ids)}


@shared_task
def purge_expired_notifications():
    deleted, _ = Notification.objects.expired().delete()
    if deleted:
        logger.info(f"Purged {deleted} expired notifications")
    return {'success': True, 'deleted_count': deleted}
