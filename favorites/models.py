from django.db import models
import uuid

from accounts.models import User


class Favorite(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='favorites')
    apartment = models.ForeignKey(
        'apartments.Apartment', on_delete=models.CASCADE, related_name='favorited_by'
    )
    notes = models.CharField(max_length=200, blank=True)
    tags = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'favorites'
        ordering = ['-created_at']
        unique_together = ['user', 'apartment']
        indexes = [
            models.Index(fields=['user', 'created_at']),
        ]

    def __str__(self):
        return f"{self.user_id} -> {self.apartment_id}"
