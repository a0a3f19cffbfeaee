from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone
from datetime import timedelta
from decimal import Decimal
import uuid

from accounts.models import User

# At most one payment per booking may be in one of these states
LIVE_PAYMENT_STATUSES = ('pending', 'completed', 'refund_pending')


def generate_transaction_id():
    """TXN + epoch milliseconds + six random hex characters"""
    millis = int(timezone.now().timestamp() * 1000)
    return f"TXN{millis}{uuid.uuid4().hex[:6].upper()}"


class Payment(models.Model):
    METHOD_CHOICES = (
        ('card', 'Card'),
        ('bank_transfer', 'Bank Transfer'),
        ('mobile_money', 'Mobile Money'),
        ('cash', 'Cash'),
    )

    STATUS_CHOICES = (
        ('pending', 'Pending'),                 # Awaiting settlement
        ('completed', 'Completed'),             # Settled
        ('failed', 'Failed'),                   # Settlement found nothing to pay for
        ('refunded', 'Refunded'),               # Refund approved
        ('refund_pending', 'Refund Pending'),   # Refund requested by payer
        ('cancelled', 'Cancelled'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='payments')
    apartment = models.ForeignKey(
        'apartments.Apartment', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='payments'
    )
    booking = models.ForeignKey(
        'bookings.Booking', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='payments'
    )

    amount = models.DecimalField(
        max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))]
    )
    currency = models.CharField(max_length=3, default='USD')
    payment_method = models.CharField(max_length=20, choices=METHOD_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    transaction_id = models.CharField(max_length=40, unique=True, default=generate_transaction_id)
    payment_details = models.JSONField(default=dict, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    # Refunds
    refund_requested = models.BooleanField(default=False)
    refund_reason = models.TextField(blank=True)
    refund_requested_at = models.DateTimeField(null=True, blank=True)
    refund_processed_at = models.DateTimeField(null=True, blank=True)
    refund_notes = models.TextField(blank=True)

    # Settlement intent: a pending payment is due once settle_after has passed
    settle_after = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'payments'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'status']),
            models.Index(fields=['status', 'settle_after']),
            models.Index(fields=['booking', 'status']),
            models.Index(fields=['created_at']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['booking'],
                condition=Q(status__in=LIVE_PAYMENT_STATUSES),
                name='one_live_payment_per_booking',
            ),
        ]

    def __str__(self):
        return f"{self.transaction_id} {self.amount} {self.currency} ({self.status})"

    def is_visible_to(self, principal):
        role = getattr(principal, 'role', None)
        if role == 'admin':
            return True
        if role == 'user':
            return self.user_id == principal.pk
        if role == 'agent':
            return self.apartment is not None and self.apartment.agent_id == principal.pk
        return False

    def refund_window_open(self, window_days, now=None):
        if self.paid_at is None:
            return False
        now = now or timezone.now()
        return now - self.paid_at <= timedelta(days=window_days)
