from django.db import models
from django.db.models import Q
import uuid

from accounts.models import User

# A booking in one of these states holds the apartment
ACTIVE_BOOKING_STATUSES = ('pending', 'approved')


class Booking(models.Model):
    STATUS_CHOICES = (
        ('pending', 'Pending Approval'),      # Initial status when user makes request
        ('approved', 'Approved'),             # Agent approved
        ('rejected', 'Rejected'),             # Agent rejected
        ('cancelled', 'Cancelled'),           # Cancelled by agent or refund
        ('confirmed', 'Confirmed'),           # Paid and settled
    )

    PAYMENT_STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('refunded', 'Refunded'),
        ('failed', 'Failed'),
    )

    # Agent decisions allowed from each state
    AGENT_TRANSITIONS = {
        'pending': ('approved', 'rejected', 'cancelled'),
        'approved': ('cancelled',),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bookings')
    apartment = models.ForeignKey(
        'apartments.Apartment', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='bookings'
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    payment_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    payment_date = models.DateTimeField(null=True, blank=True)
    check_in = models.DateField(null=True, blank=True)
    check_out = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, max_length=1000)

    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'bookings'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'apartment'],
                condition=Q(status__in=ACTIVE_BOOKING_STATUSES),
                name='one_active_booking_per_user_apartment',
            ),
        ]
        indexes = [
            models.Index(fields=['user', 'status']),
            models.Index(fields=['apartment', 'status']),
            models.Index(fields=['status', 'created_at']),
        ]

    def __str__(self):
        return f"Booking {self.id} ({self.status})"

    @property
    def is_active(self):
        return self.status in ACTIVE_BOOKING_STATUSES

    def can_transition_to(self, new_status):
        return new_status in self.AGENT_TRANSITIONS.get(self.status, ())

    def is_managed_by(self, agent):
        return self.apartment is not None and self.apartment.agent_id == agent.pk

    def is_visible_to(self, principal):
        role = getattr(principal, 'role', None)
        if role == 'admin':
            return True
        if role == 'user':
            return self.user_id == principal.pk
        if role == 'agent':
            return self.is_managed_by(principal)
        return False
