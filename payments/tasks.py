from celery import shared_task
from django.db import DatabaseError
import logging

from . import services

logger = logging.getLogger('estate.payments')


@shared_task(bind=True, max_retries=5)
def settle_payment(self, payment_id):
    """Settle one payment; re-running for a settled payment is a no-op"""
    try:
        payment = services.settle(payment_id)
    except DatabaseError as e:
        if self.request.retries < self.max_retries:
            countdown = 2 ** self.request.retries * 60
            raise self.retry(countdown=countdown, exc=e)
        # Still pending with settle_after in the past; the sweep picks it up again
        logger.error(f"Settlement of payment {payment_id} failed after retries: {str(e)}")
        return {'success': False, 'error': str(e)}

    if payment is None:
        return {'success': True, 'settled': False}
    return {'success': True, 'settled': True, 'status': payment.status}


@shared_task
def settle_due_payments():
    """Re-drive every pending payment whose settlement time has passed"""
    payment_ids = services.due_payment_ids()
    for payment_id in payment_ids:
        settle_payment.delay(str(payment_id))

    if payment_ids:
        logger.info(f"Queued settlement for {len(payment_ids)} due payments")
    return len(payment_ids)
