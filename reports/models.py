from django.db import models
import uuid

from accounts.models import Agent, User


class Report(models.Model):
    TYPE_CHOICES = (
        ('fraud', 'Fraud'),
        ('safety', 'Safety'),
        ('condition', 'Condition'),
        ('noise', 'Noise'),
        ('maintenance', 'Maintenance'),
        ('other', 'Other'),
        ('general', 'General'),
    )

    STATUS_CHOICES = (
        ('open', 'Open'),
        ('in_progress', 'In Progress'),
        ('resolved', 'Resolved'),
        ('closed', 'Closed'),
        ('assigned', 'Assigned'),
    )

    PRIORITY_CHOICES = (
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
    )

    # Report types that start at high priority
    URGENT_TYPES = ('fraud', 'safety')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='reports')
    apartment = models.ForeignKey(
        'apartments.Apartment', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='reports'
    )
    agent = models.ForeignKey(
        Agent, on_delete=models.SET_NULL, null=True, blank=True, related_name='reports'
    )
    message = models.TextField(max_length=1000)
    report_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='general')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='open')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')

    agent_response = models.TextField(blank=True, max_length=1000)
    responded_at = models.DateTimeField(null=True, blank=True)
    resolution_notes = models.TextField(blank=True, max_length=1000)
    resolved_at = models.DateTimeField(null=True, blank=True)

    assigned_to = models.ForeignKey(
        Agent, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_reports'
    )
    assigned_at = models.DateTimeField(null=True, blank=True)

    escalated = models.BooleanField(default=False)
    escalation_notes = models.TextField(blank=True, max_length=500)
    escalated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'reports'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'status']),
            models.Index(fields=['apartment']),
            models.Index(fields=['status', 'priority']),
            models.Index(fields=['created_at']),
        ]

    def __str__(self):
        return f"{self.report_type} report ({self.status})"

    @classmethod
    def initial_priority(cls, report_type):
        return 'high' if report_type in cls.URGENT_TYPES else 'medium'

    def is_handled_by(self, agent):
        return agent.pk in (self.agent_id, self.assigned_to_id)

    def is_visible_to(self, principal):
        role = getattr(principal, 'role', None)
        if role == 'admin':
            return True
        if role == 'user':
            return self.user_id == principal.pk
        if role == 'agent':
            return self.is_handled_by(principal)
        return False
