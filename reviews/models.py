from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
import uuid

from accounts.models import Admin, Agent, User


class Review(models.Model):
    """A rating left by a renter (or an admin) on an apartment"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        User, on_delete=models.CASCADE, null=True, blank=True, related_name='reviews'
    )
    admin = models.ForeignKey(
        Admin, on_delete=models.CASCADE, null=True, blank=True, related_name='reviews'
    )
    apartment = models.ForeignKey(
        'apartments.Apartment', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='reviews'
    )
    agent = models.ForeignKey(
        Agent, on_delete=models.SET_NULL, null=True, blank=True, related_name='reviews'
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    comment = models.TextField(blank=True, max_length=500)
    images = models.JSONField(default=list, blank=True)

    agent_response = models.TextField(blank=True, max_length=500)
    responded_at = models.DateTimeField(null=True, blank=True)

    likes = models.PositiveIntegerField(default=0)
    dislikes = models.PositiveIntegerField(default=0)
    helpful_count = models.PositiveIntegerField(default=0)
    is_verified_booking = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'reviews'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'apartment'],
                condition=Q(user__isnull=False),
                name='one_review_per_user_apartment',
            ),
            models.UniqueConstraint(
                fields=['admin', 'apartment'],
                condition=Q(admin__isnull=False),
                name='one_review_per_admin_apartment',
            ),
        ]
        indexes = [
            models.Index(fields=['apartment', 'rating']),
            models.Index(fields=['agent', 'rating']),
            models.Index(fields=['created_at']),
        ]

    def __str__(self):
        return f"{self.rating} stars on {self.apartment_id}"

    @property
    def author(self):
        return self.user or self.admin

    def is_authored_by(self, principal):
        role = getattr(principal, 'role', None)
        if role == 'user':
            return self.user_id == principal.pk
        if role == 'admin':
            return self.admin_id == principal.pk
        return False
