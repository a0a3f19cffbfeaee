"""Daily analytics snapshots.

A snapshot stores the counters for one calendar day: ``new_*`` values count
records created that day, ``total_*`` and status counts describe the whole
store at generation time. At most one snapshot exists per (date, type);
generating an existing day returns the stored row unchanged.
"""
from datetime import datetime, time, timedelta
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Avg, Case, CharField, Count, Q, Sum, Value, When
from django.utils import timezone
import logging

from accounts.models import Agent, User
from apartments.models import Apartment
from bookings.models import Booking
from inspections.models import InspectionRequest
from payments.models import Payment
from reports.models import Report
from reviews.models import Review
from .models import AnalyticsSnapshot

logger = logging.getLogger('estate.analytics')

PRICE_RANGES = ('0-500', '501-1000', '1001-2000', '2001+')

PRICE_BUCKET = Case(
    When(price__lte=500, then=Value('0-500')),
    When(price__lte=1000, then=Value('501-1000')),
    When(price__lte=2000, then=Value('1001-2000')),
    default=Value('2001+'),
    output_field=CharField(),
)


def day_bounds(day):
    start = timezone.make_aware(datetime.combine(day, time.min))
    return start, start + timedelta(days=1)


def price_range_breakdown():
    counts = dict.fromkeys(PRICE_RANGES, 0)
    rows = Apartment.objects.annotate(bucket=PRICE_BUCKET).values('bucket').annotate(count=Count('id'))
    for row in rows:
        counts[row['bucket']] = row['count']
    return counts


def collect_metrics(day):
    start, end = day_bounds(day)
    created_today = Q(created_at__gte=start, created_at__lt=end)

    metrics = {}
    metrics.update(User.objects.aggregate(
        new_users=Count('id', filter=created_today),
        active_users=Count('id', filter=Q(last_login__gte=start - timedelta(days=1), last_login__lt=end)),
        total_users=Count('id'),
    ))
    metrics.update(Agent.objects.aggregate(
        new_agents=Count('id', filter=created_today),
        approved_agents=Count('id', filter=Q(status='approved')),
        pending_agents=Count('id', filter=Q(status='pending')),
        total_agents=Count('id'),
    ))
    metrics.update(Apartment.objects.aggregate(
        new_apartments=Count('id', filter=created_today),
        available_apartments=Count('id', filter=Q(availability=True)),
        booked_apartments=Count('id', filter=Q(availability=False)),
        total_apartments=Count('id'),
    ))
    metrics.update(Booking.objects.aggregate(
        new_bookings=Count('id', filter=created_today),
        confirmed_bookings=Count('id', filter=Q(status='confirmed')),
        cancelled_bookings=Count('id', filter=Q(status='cancelled')),
        total_bookings=Count('id'),
    ))
    metrics.update(InspectionRequest.objects.aggregate(
        new_inspections=Count('id', filter=created_today),
        completed_inspections=Count('id', filter=Q(status='completed')),
        total_inspections=Count('id'),
    ))
    metrics.update(Report.objects.aggregate(
        new_reports=Count('id', filter=created_today),
        resolved_reports=Count('id', filter=Q(status='resolved')),
        open_reports=Count('id', filter=Q(status__in=['open', 'in_progress'])),
        total_reports=Count('id'),
    ))

    payments = Payment.objects.filter(created_today, status='completed').aggregate(
        count=Count('id'), revenue=Sum('amount')
    )
    revenue = payments['revenue'] or Decimal('0')
    metrics['new_payments'] = payments['count']
    metrics['total_revenue'] = revenue
    metrics['booking_revenue'] = revenue
    metrics['average_transaction'] = (
        (revenue / payments['count']).quantize(Decimal('0.01')) if payments['count'] else Decimal('0')
    )

    reviews = Review.objects.aggregate(
        new_reviews=Count('id', filter=created_today),
        average=Avg('rating'),
        total_reviews=Count('id'),
    )
    metrics['new_reviews'] = reviews['new_reviews']
    metrics['total_reviews'] = reviews['total_reviews']
    metrics['average_rating'] = round(reviews['average'] or 0, 2)
    return metrics


def collect_breakdowns():
    categories = {
        row['category']: row['count']
        for row in Apartment.objects.values('category').annotate(count=Count('id')).order_by()
    }
    locations = [
        {'location': row['location'], 'count': row['count']}
        for row in Apartment.objects.values('location').annotate(count=Count('id')).order_by('-count')[:10]
    ]
    return {
        'categories': categories,
        'locations': locations,
        'price_ranges': price_range_breakdown(),
    }


def generate_daily_snapshot(day=None):
    """Return ``(snapshot, created)`` for ``day`` (default today)"""
    day = day or timezone.localdate()

    existing = AnalyticsSnapshot.objects.filter(date=day, snapshot_type='daily').first()
    if existing:
        return existing, False

    try:
        with transaction.atomic():
            snapshot = AnalyticsSnapshot.objects.create(
                date=day,
                snapshot_type='daily',
                **collect_metrics(day),
                **collect_breakdowns()
            )
    except IntegrityError:
        # Another worker stored the same day first
        return AnalyticsSnapshot.objects.get(date=day, snapshot_type='daily'), False

    logger.info(f"Generated daily analytics for {day}")
    return snapshot, True
