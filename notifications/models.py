from django.db import models
from django.db.models import Q
from django.utils import timezone
import uuid


class NotificationQuerySet(models.QuerySet):
    def for_principal(self, principal):
        return self.filter(recipient_role=principal.role, recipient_id=principal.pk)

    def live(self):
        """Not archived and not past expiry"""
        return self.filter(is_archived=False).filter(
            Q(expires_at__isnull=True) | Q(expires_at__gt=timezone.now())
        )

    def expired(self):
        return self.filter(expires_at__isnull=False, expires_at__lte=timezone.now())


class Notification(models.Model):
    NOTIFICATION_TYPES = (
        ('booking', 'Booking'),
        ('inspection', 'Inspection'),
        ('report', 'Report'),
        ('payment', 'Payment'),
        ('review', 'Review'),
        ('system', 'System'),
        ('message', 'Message'),
        ('alert', 'Alert'),
    )

    PRIORITY_CHOICES = (
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
    )

    RELATED_MODELS = (
        ('Booking', 'Booking'),
        ('InspectionRequest', 'Inspection Request'),
        ('Payment', 'Payment'),
        ('Report', 'Report'),
        ('Review', 'Review'),
        ('Apartment', 'Apartment'),
    )

    RECIPIENT_ROLES = (
        ('user', 'User'),
        ('agent', 'Agent'),
        ('admin', 'Admin'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    recipient_role = models.CharField(max_length=10, choices=RECIPIENT_ROLES, default='user')
    recipient_id = models.UUIDField()
    notification_type = models.CharField(max_length=20, choices=NOTIFICATION_TYPES, default='system')
    title = models.CharField(max_length=100)
    message = models.CharField(max_length=500)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    is_archived = models.BooleanField(default=False)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    related_model = models.CharField(max_length=30, choices=RELATED_MODELS, blank=True)
    related_id = models.UUIDField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    action_url = models.CharField(max_length=255, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = NotificationQuerySet.as_manager()

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient_role', 'recipient_id', 'is_read']),
            models.Index(fields=['created_at']),
            models.Index(fields=['notification_type']),
            models.Index(fields=['expires_at']),
        ]

    def __str__(self):
        return f"{self.title} -> {self.recipient_role}:{self.recipient_id}"

    def belongs_to(self, principal):
        return self.recipient_role == principal.role and self.recipient_id == principal.pk

    def mark_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at'])
