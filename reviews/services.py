"""Denormalized rating aggregates.

Each recompute re-reads every current review and overwrites the stored
average and count. Two writers racing on the same apartment both write a
value computed from what they saw; the last write wins and the next review
change corrects it.
"""
from decimal import Decimal, ROUND_HALF_UP

from django.db.models import Avg, Count

from accounts.models import Agent
from apartments.models import Apartment
from .models import Review


def round_rating(value):
    """Mean rounded half-up to one decimal, 0 when there are no reviews"""
    if value is None:
        return 0.0
    return float(Decimal(str(value)).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))


def rating_summary(queryset):
    summary = queryset.aggregate(average=Avg('rating'), count=Count('id'))
    return round_rating(summary['average']), summary['count']


def recompute_apartment_rating(apartment_id):
    if apartment_id is None:
        return None
    average, count = rating_summary(Review.objects.filter(apartment_id=apartment_id))
    Apartment.objects.filter(pk=apartment_id).update(average_rating=average, total_reviews=count)
    return average, count


def recompute_agent_rating(agent_id):
    if agent_id is None:
        return None
    average, count = rating_summary(Review.objects.filter(agent_id=agent_id))
    Agent.objects.filter(pk=agent_id).update(average_rating=average, total_reviews=count)
    return average, count


def refresh_ratings(apartment_id, agent_id):
    recompute_apartment_rating(apartment_id)
    recompute_agent_rating(agent_id)
