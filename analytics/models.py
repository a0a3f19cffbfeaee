from django.db import models
import uuid


class ActivityLog(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    action = models.CharField(max_length=100)
    actor_role = models.CharField(max_length=10, blank=True)
    actor_id = models.UUIDField(null=True, blank=True)
    resource_type = models.CharField(max_length=50, blank=True)
    resource_id = models.UUIDField(null=True, blank=True)
    details = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'activity_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['actor_role', 'actor_id', 'created_at']),
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['resource_type', 'resource_id']),
            models.Index(fields=['created_at']),
        ]

    def __str__(self):
        return f"{self.action} {self.resource_type}:{self.resource_id}"

    @classmethod
    def record(cls, action, actor=None, resource=None, details=None, request=None):
        """Append an audit entry for a state change"""
        from utils.middleware import get_client_ip

        entry = cls(
            action=action,
            actor_role=getattr(actor, 'role', '') or '',
            actor_id=getattr(actor, 'pk', None),
            details=details or {},
        )
        if resource is not None:
            entry.resource_type = resource._meta.model_name
            entry.resource_id = resource.pk
        if request is not None:
            entry.ip_address = get_client_ip(request)
            entry.user_agent = request.META.get('HTTP_USER_AGENT', '')[:500]
        entry.save()
        return entry


class AnalyticsSnapshot(models.Model):
    TYPE_CHOICES = (
        ('daily', 'Daily'),
        ('weekly', 'Weekly'),
        ('monthly', 'Monthly'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    date = models.DateField()
    snapshot_type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='daily')

    # Users
    new_users = models.PositiveIntegerField(default=0)
    active_users = models.PositiveIntegerField(default=0)
    total_users = models.PositiveIntegerField(default=0)

    # Agents
    new_agents = models.PositiveIntegerField(default=0)
    approved_agents = models.PositiveIntegerField(default=0)
    pending_agents = models.PositiveIntegerField(default=0)
    total_agents = models.PositiveIntegerField(default=0)

    # Apartments
    new_apartments = models.PositiveIntegerField(default=0)
    available_apartments = models.PositiveIntegerField(default=0)
    booked_apartments = models.PositiveIntegerField(default=0)
    total_apartments = models.PositiveIntegerField(default=0)

    # Bookings
    new_bookings = models.PositiveIntegerField(default=0)
    confirmed_bookings = models.PositiveIntegerField(default=0)
    cancelled_bookings = models.PositiveIntegerField(default=0)
    total_bookings = models.PositiveIntegerField(default=0)
    booking_revenue = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    # Inspections
    new_inspections = models.PositiveIntegerField(default=0)
    completed_inspections = models.PositiveIntegerField(default=0)
    total_inspections = models.PositiveIntegerField(default=0)

    # Reports
    new_reports = models.PositiveIntegerField(default=0)
    resolved_reports = models.PositiveIntegerField(default=0)
    open_reports = models.PositiveIntegerField(default=0)
    total_reports = models.PositiveIntegerField(default=0)

    # Payments
    new_payments = models.PositiveIntegerField(default=0)
    total_revenue = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    average_transaction = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    # Reviews
    new_reviews = models.PositiveIntegerField(default=0)
    average_rating = models.FloatField(default=0)
    total_reviews = models.PositiveIntegerField(default=0)

    # Breakdowns
    categories = models.JSONField(default=dict, blank=True)
    locations = models.JSONField(default=list, blank=True)
    price_ranges = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'analytics_snapshots'
        unique_together = ['date', 'snapshot_type']
        ordering = ['-date']
        indexes = [
            models.Index(fields=['snapshot_type', 'date']),
        ]

    def __str__(self):
        return f"{self.snapshot_type} analytics {self.date}"

    # Numeric columns a detailed-analytics query may aggregate
    METRIC_FIELDS = (
        'new_users', 'active_users', 'total_users',
        'new_agents', 'approved_agents', 'pending_agents', 'total_agents',
        'new_apartments', 'available_apartments', 'booked_apartments', 'total_apartments',
        'new_bookings', 'confirmed_bookings', 'cancelled_bookings', 'total_bookings',
        'booking_revenue',
        'new_inspections', 'completed_inspections', 'total_inspections',
        'new_reports', 'resolved_reports', 'open_reports', 'total_reports',
        'new_payments', 'total_revenue', 'average_transaction',
        'new_reviews', 'average_rating', 'total_reviews',
    )
