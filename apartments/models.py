from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F
import uuid

from accounts.models import Agent


class ApartmentQuerySet(models.QuerySet):
    def available(self):
        return self.filter(availability=True)


class ApartmentManager(models.Manager.from_queryset(ApartmentQuerySet)):
    """Availability is a single-slot mutex; every flip goes through here"""

    def claim(self, apartment_id):
        """Atomically take an available apartment.

        A single conditional UPDATE; returns False when the apartment was
        already taken (or does not exist), so two racing requests cannot both
        succeed.
        """
        updated = self.filter(pk=apartment_id, availability=True).update(
            availability=False,
            total_bookings=F('total_bookings') + 1,
        )
        return updated == 1

    def release(self, apartment_id):
        """Mark the apartment available again regardless of other bookings"""
        if apartment_id is None:
            return False
        return self.filter(pk=apartment_id).update(availability=True) == 1

    def record_view(self, apartment_id):
        self.filter(pk=apartment_id).update(total_views=F('total_views') + 1)


class Apartment(models.Model):
    CATEGORY_CHOICES = (
        ('Studio', 'Studio'),
        ('1-Bedroom', '1-Bedroom'),
        ('2-Bedroom', '2-Bedroom'),
        ('Duplex', 'Duplex'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    agent = models.ForeignKey(Agent, on_delete=models.PROTECT, related_name='apartments')

    location = models.CharField(max_length=255, db_index=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, db_index=True)
    description = models.TextField()
    images = models.JSONField(default=list, blank=True)
    availability = models.BooleanField(default=True, db_index=True)

    # Denormalized from reviews, recomputed on every review change
    average_rating = models.FloatField(
        default=0, validators=[MinValueValidator(0), MaxValueValidator(5)]
    )
    total_reviews = models.PositiveIntegerField(default=0)

    total_views = models.PositiveIntegerField(default=0)
    total_bookings = models.PositiveIntegerField(default=0)
    featured = models.BooleanField(default=False)

    amenities = models.JSONField(default=list, blank=True)
    size = models.PositiveIntegerField(null=True, blank=True)
    bedrooms = models.PositiveIntegerField(null=True, blank=True)
    bathrooms = models.PositiveIntegerField(null=True, blank=True)
    year_built = models.PositiveIntegerField(null=True, blank=True)
    parking = models.BooleanField(default=False)
    furnished = models.BooleanField(default=False)
    pet_friendly = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ApartmentManager()

    class Meta:
        db_table = 'apartments'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['availability', 'created_at']),
            models.Index(fields=['agent', 'availability']),
            models.Index(fields=['category', 'price']),
        ]

    def __str__(self):
        return f"{self.category} in {self.location}"

    def is_owned_by(self, principal):
        return getattr(principal, 'role', None) == 'agent' and self.agent_id == principal.pk
