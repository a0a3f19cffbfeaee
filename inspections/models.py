from django.db import models
import uuid

from accounts.models import Agent, User


class InspectionRequest(models.Model):
    STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='inspections')
    agent = models.ForeignKey(Agent, on_delete=models.CASCADE, related_name='inspections')
    apartment = models.ForeignKey(
        'apartments.Apartment', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='inspections'
    )
    date = models.DateField()
    time = models.CharField(max_length=20, default='10:00 AM')
    message = models.TextField(blank=True, max_length=500)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    rejection_reason = models.TextField(blank=True, max_length=500)
    completion_notes = models.TextField(blank=True, max_length=1000)
    follow_up_required = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'inspection_requests'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'status']),
            models.Index(fields=['agent', 'status']),
            models.Index(fields=['apartment']),
            models.Index(fields=['date']),
        ]

    def __str__(self):
        return f"Inspection {self.date} ({self.status})"

    def can_be_decided(self):
        return self.status == 'pending'

    def can_be_completed(self):
        return self.status == 'approved'

    def is_visible_to(self, principal):
        role = getattr(principal, 'role', None)
        if role == 'admin':
            return True
        if role == 'user':
            return self.user_id == principal.pk
        if role == 'agent':
            return self.agent_id == principal.pk
        return False
