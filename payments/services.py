"""Payment lifecycle.

A new payment is stored as ``pending`` together with ``settle_after``, the
moment it becomes due. Settlement is a conditional UPDATE out of ``pending``,
so the worker can run any number of times for the same payment: only the
first run moves it, later runs find nothing to do. Payments whose task was
lost are picked up again by the periodic ``settle_due_payments`` sweep.
"""
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError
import logging

from analytics.models import ActivityLog
from apartments.models import Apartment
from bookings.models import Booking
from notifications.services import NotificationService
from utils.email_utils import EmailService
from utils.exceptions import Conflict
from utils.routing import get_or_404
from .models import Payment

logger = logging.getLogger('estate.payments')

UNPAYABLE_BOOKING_STATUSES = ('rejected', 'cancelled')
ALREADY_PROCESSING = 'A payment for this booking is already being processed'


def create_payment(user, booking_id, amount, payment_method, payment_details=None, request=None):
    from .tasks import settle_payment

    booking = get_or_404(
        Booking.objects.select_related('apartment'), 'Booking not found', pk=booking_id
    )
    if booking.user_id != user.pk:
        raise PermissionDenied('Not authorized to pay for this booking')

    if booking.status in UNPAYABLE_BOOKING_STATUSES:
        raise ValidationError(f'Cannot pay for a {booking.status} booking')

    existing = Payment.objects.filter(booking=booking)
    if booking.payment_status == 'paid' or existing.filter(status='completed').exists():
        raise ValidationError('Payment already completed for this booking')
    if existing.filter(status='pending').exists():
        raise Conflict(ALREADY_PROCESSING)

    delay = settings.PAYMENT_SETTLEMENT_DELAY
    try:
        with transaction.atomic():
            payment = Payment.objects.create(
                user=user,
                apartment=booking.apartment,
                booking=booking,
                amount=amount,
                payment_method=payment_method,
                payment_details=payment_details or {},
                settle_after=timezone.now() + timedelta(seconds=delay),
            )
    except IntegrityError:
        # Another request already holds the live payment slot for this booking
        raise Conflict(ALREADY_PROCESSING)

    payment_id = str(payment.pk)
    transaction.on_commit(lambda: settle_payment.apply_async(args=[payment_id], countdown=delay))

    ActivityLog.record('payment_initiated', actor=user, resource=payment,
                       details={'amount': str(amount), 'method': payment_method}, request=request)
    logger.info(f"Payment {payment.transaction_id} initiated for booking {booking.pk}")
    return payment


def settle(payment_id):
    """Move one pending payment to completed (or failed). Safe to repeat.

    Returns the payment when this call made the transition, None otherwise.
    """
    payment = Payment.objects.select_related('booking', 'user', 'apartment').filter(pk=payment_id).first()
    if payment is None or payment.status != 'pending':
        return None

    booking = payment.booking
    now = timezone.now()
    payable = booking is not None and booking.status not in UNPAYABLE_BOOKING_STATUSES

    with transaction.atomic():
        if payable:
            moved = Payment.objects.filter(pk=payment.pk, status='pending').update(
                status='completed', paid_at=now, updated_at=now
            )
        else:
            moved = Payment.objects.filter(pk=payment.pk, status='pending').update(
                status='failed', failed_at=now, updated_at=now
            )
        if not moved:
            return None

        if payable:
            Booking.objects.filter(pk=booking.pk).update(
                status='confirmed',
                payment_status='paid',
                payment_amount=payment.amount,
                payment_date=now,
                updated_at=now,
            )
        elif booking is not None:
            Booking.objects.filter(pk=booking.pk).update(payment_status='failed', updated_at=now)

    payment.refresh_from_db()

    if payment.status == 'completed':
        logger.info(f"Payment {payment.transaction_id} settled")
        NotificationService.notify_payment_completed(payment)
        EmailService.queue(
            'payment_completed',
            {
                'name': payment.user.name,
                'amount': str(payment.amount),
                'currency': payment.currency,
                'transaction_id': payment.transaction_id,
            },
            payment.user.email,
            'Payment received',
        )
    else:
        logger.warning(f"Payment {payment.transaction_id} failed: booking no longer payable")
        NotificationService.notify_payment_failed(payment)

    return payment


def due_payment_ids(now=None):
    now = now or timezone.now()
    return list(
        Payment.objects.filter(status='pending', settle_after__lte=now)
        .order_by('settle_after')
        .values_list('id', flat=True)
    )


def request_refund(payment, user, reason='', request=None):
    if payment.user_id != user.pk:
        raise PermissionDenied('Not authorized to request refund')

    if payment.refund_requested:
        raise ValidationError('Refund already requested')
    if payment.status != 'completed':
        raise ValidationError('Only completed payments can be refunded')
    if not payment.refund_window_open(settings.REFUND_WINDOW_DAYS):
        raise ValidationError('Refund period has expired')

    now = timezone.now()
    moved = Payment.objects.filter(pk=payment.pk, status='completed', refund_requested=False).update(
        status='refund_pending',
        refund_requested=True,
        refund_reason=reason or '',
        refund_requested_at=now,
        updated_at=now,
    )
    if not moved:
        raise Conflict('Refund already requested')

    payment.refresh_from_db()
    ActivityLog.record('refund_requested', actor=user, resource=payment,
                       details={'reason': payment.refund_reason}, request=request)
    NotificationService.notify_refund_requested(payment)
    return payment


def process_refund(payment, admin, decision, notes='', request=None):
    if decision not in ('approve', 'reject'):
        raise ValidationError("Action must be 'approve' or 'reject'")
    if not payment.refund_requested or payment.status != 'refund_pending':
        raise ValidationError('No refund requested for this payment')

    now = timezone.now()
    approved = decision == 'approve'

    with transaction.atomic():
        payment.refund_processed_at = now
        payment.refund_notes = notes or ''
        if approved:
            payment.status = 'refunded'
        else:
            payment.status = 'completed'
            payment.refund_requested = False
        payment.save(update_fields=[
            'status', 'refund_requested', 'refund_processed_at', 'refund_notes', 'updated_at'
        ])

        if approved:
            if payment.booking_id:
                Booking.objects.filter(pk=payment.booking_id).update(
                    status='cancelled',
                    payment_status='refunded',
                    cancelled_at=now,
                    updated_at=now,
                )
            Apartment.objects.release(payment.apartment_id)

        ActivityLog.record(f'refund_{decision}d', actor=admin, resource=payment,
                           details={'notes': payment.refund_notes}, request=request)

    NotificationService.notify_refund_processed(payment, approved)
    EmailService.queue(
        'refund_processed',
        {
            'name': payment.user.name,
            'approved': approved,
            'amount': str(payment.amount),
            'currency': payment.currency,
            'transaction_id': payment.transaction_id,
        },
        payment.user.email,
        'Refund approved' if approved else 'Refund request update',
    )
    logger.info(f"Refund for {payment.transaction_id} {decision}d by admin {admin.pk}")
    return payment
