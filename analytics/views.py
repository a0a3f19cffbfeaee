from datetime import datetime, time, timedelta

from django.conf import settings
from django.core.cache import cache
from django.db.models import Avg, Count, Max, Min, Q, Sum
from django.db.models.functions import TruncDate, TruncMonth
from django.utils import timezone
from django.utils.dateparse import parse_date
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.models import Agent, User
from accounts.permissions import IsAdmin
from apartments.models import Apartment
from bookings.models import Booking
from payments.models import Payment
from reports.models import Report
from .models import ActivityLog, AnalyticsSnapshot
from .serializers import (
    ActivityLogSerializer, AnalyticsSnapshotSerializer, GenerateAnalyticsSerializer,
)
from .services import generate_daily_snapshot

PERIOD_DAYS = {
    '7days': 7,
    '30days': 30,
    '90days': 90,
}


def period_start(period):
    """Start of a reporting window, None for an unknown period name"""
    if period == 'today':
        return timezone.make_aware(datetime.combine(timezone.localdate(), time.min))
    if period in PERIOD_DAYS:
        return timezone.now() - timedelta(days=PERIOD_DAYS[period])
    return None


def growth_rate(first, last):
    if not first:
        return 0
    return round((float(last) - float(first)) / float(first) * 100, 1)


def invalid_period():
    return Response({'error': 'Invalid period'}, status=status.HTTP_400_BAD_REQUEST)


class AnalyticsViewSet(viewsets.GenericViewSet):
    """Admin-only analytics over live data and stored daily snapshots"""
    permission_classes = [IsAdmin]
    serializer_class = AnalyticsSnapshotSerializer

    @action(detail=False, methods=['get'])
    def dashboard(self, request):
        period = request.query_params.get('period', '7days')
        since = period_start(period)
        if since is None:
            return invalid_period()

        cache_key = f'analytics_dashboard_{period}'
        data = cache.get(cache_key)
        if data is None:
            data = self._dashboard(since)
            cache.set(cache_key, data, settings.CACHE_TIMEOUTS['ANALYTICS'])
        return Response(data)

    def _dashboard(self, since):
        snapshots = list(
            AnalyticsSnapshot.objects.filter(snapshot_type='daily', date__gte=since.date()).order_by('date')
        )
        user_growth = revenue_growth = 0
        if len(snapshots) > 1:
            user_growth = growth_rate(snapshots[0].new_users, snapshots[-1].new_users)
            revenue_growth = growth_rate(snapshots[0].total_revenue, snapshots[-1].total_revenue)

        completed = Payment.objects.filter(status='completed')
        overview = {
            'total_users': User.objects.count(),
            'total_agents': Agent.objects.count(),
            'total_apartments': Apartment.objects.count(),
            'total_bookings': Booking.objects.count(),
            'total_revenue': completed.aggregate(total=Sum('amount'))['total'] or 0,
            'open_reports': Report.objects.filter(status__in=['open', 'in_progress']).count(),
            'pending_agents': Agent.objects.filter(status='pending').count(),
            'user_growth': user_growth,
            'revenue_growth': revenue_growth,
        }

        top_agents = (
            Agent.objects.annotate(
                apartment_count=Count('apartments', distinct=True),
                booking_count=Count('apartments__bookings', distinct=True),
            )
            .order_by('-booking_count', '-apartment_count')[:5]
        )
        popular_locations = (
            Apartment.objects.values('location').annotate(count=Count('id')).order_by('-count')[:5]
        )

        today = timezone.localdate()
        first_month = today.replace(day=1)
        for _ in range(5):
            first_month = (first_month - timedelta(days=1)).replace(day=1)
        revenue_by_month = (
            completed.filter(created_at__date__gte=first_month)
            .annotate(month=TruncMonth('created_at'))
            .values('month')
            .annotate(total=Sum('amount'), count=Count('id'))
            .order_by('month')
        )

        return {
            'overview': overview,
            'growth_data': [
                {
                    'date': snapshot.date.isoformat(),
                    'new_users': snapshot.new_users,
                    'new_bookings': snapshot.new_bookings,
                    'revenue': snapshot.total_revenue,
                }
                for snapshot in snapshots
            ],
            'top_agents': [
                {
                    'id': str(agent.id),
                    'name': agent.name,
                    'email': agent.email,
                    'total_apartments': agent.apartment_count,
                    'total_bookings': agent.booking_count,
                    'average_rating': agent.average_rating,
                }
                for agent in top_agents
            ],
            'popular_locations': list(popular_locations),
            'revenue_by_month': [
                {'month': row['month'].strftime('%Y-%m'), 'total': row['total'], 'count': row['count']}
                for row in revenue_by_month
            ],
            'recent_activity': ActivityLogSerializer(ActivityLog.objects.all()[:10], many=True).data,
        }

    @action(detail=False, methods=['get'])
    def detailed(self, request):
        queryset = AnalyticsSnapshot.objects.filter(snapshot_type='daily').order_by('date')
        for param, lookup in (('start_date', 'date__gte'), ('end_date', 'date__lte')):
            value = request.query_params.get(param)
            if value:
                parsed = parse_date(value)
                if parsed is None:
                    return Response(
                        {'error': f'Invalid {param}, expected YYYY-MM-DD'},
                        status=status.HTTP_400_BAD_REQUEST
                    )
                queryset = queryset.filter(**{lookup: parsed})

        metric = request.query_params.get('metric')
        if not metric:
            return Response(self.get_serializer(queryset, many=True).data)

        if metric not in AnalyticsSnapshot.METRIC_FIELDS:
            return Response({'error': f'Unknown metric: {metric}'}, status=status.HTTP_400_BAD_REQUEST)

        data = [
            {'date': snapshot.date.isoformat(), 'value': float(getattr(snapshot, metric))}
            for snapshot in queryset
        ]
        total = sum(item['value'] for item in data)
        return Response({
            'metric': metric,
            'data': data,
            'total': total,
            'average': total / len(data) if data else 0,
        })

    @action(detail=False, methods=['post'])
    def generate(self, request):
        serializer = GenerateAnalyticsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        snapshot, created = generate_daily_snapshot(serializer.validated_data.get('date'))
        return Response({
            'message': 'Analytics generated successfully' if created else 'Analytics already generated',
            'analytics': self.get_serializer(snapshot).data
        })

    @action(detail=False, methods=['get'])
    def users(self, request):
        period = request.query_params.get('period', '30days')
        if period not in PERIOD_DAYS:
            return invalid_period()
        since = period_start(period)

        user_growth = (
            User.objects.filter(created_at__gte=since)
            .annotate(day=TruncDate('created_at'))
            .values('day')
            .annotate(count=Count('id'))
            .order_by('day')
        )
        user_activity = (
            User.objects.filter(last_login__isnull=False)
            .annotate(day=TruncDate('last_login'))
            .values('day')
            .annotate(count=Count('id'))
            .order_by('-day')[:7]
        )
        top_users = User.objects.annotate(booking_count=Count('bookings')).order_by('-booking_count')[:10]

        return Response({
            'user_growth': [
                {'date': row['day'].isoformat(), 'count': row['count']} for row in user_growth
            ],
            'user_activity': [
                {'date': row['day'].isoformat(), 'count': row['count']} for row in user_activity
            ],
            'user_segments': {
                'active': User.objects.filter(last_login__gte=timezone.now() - timedelta(days=7)).count(),
                'new': User.objects.filter(created_at__gte=since).count(),
                'total': User.objects.count(),
                'with_bookings': Booking.objects.values('user').distinct().count(),
            },
            'top_users': [
                {
                    'id': str(user.id),
                    'name': user.name,
                    'email': user.email,
                    'total_bookings': user.booking_count,
                    'last_login': user.last_login,
                    'created_at': user.created_at,
                }
                for user in top_users
            ],
        })

    @action(detail=False, methods=['get'])
    def revenue(self, request):
        period = request.query_params.get('period', '30days')
        if period not in PERIOD_DAYS:
            return invalid_period()

        completed = Payment.objects.filter(status='completed', created_at__gte=period_start(period))
        revenue_by_day = (
            completed.annotate(day=TruncDate('created_at'))
            .values('day')
            .annotate(revenue=Sum('amount'), transactions=Count('id'))
            .order_by('day')
        )
        revenue_by_method = (
            completed.values('payment_method')
            .annotate(revenue=Sum('amount'), transactions=Count('id'))
            .order_by('-revenue')
        )
        revenue_by_agent = (
            completed.filter(apartment__isnull=False)
            .values('apartment__agent_id', 'apartment__agent__name')
            .annotate(revenue=Sum('amount'), transactions=Count('id'))
            .order_by('-revenue')[:10]
        )
        transaction_stats = completed.aggregate(average=Avg('amount'), min=Min('amount'), max=Max('amount'))
        refunds = Payment.objects.aggregate(
            total_refunds=Count('id', filter=Q(status='refunded')),
            refund_amount=Sum('amount', filter=Q(status='refunded')),
            pending_refunds=Count('id', filter=Q(status='refund_pending')),
        )

        return Response({
            'revenue_by_day': [
                {'date': row['day'].isoformat(), 'revenue': row['revenue'], 'transactions': row['transactions']}
                for row in revenue_by_day
            ],
            'revenue_by_method': list(revenue_by_method),
            'revenue_by_agent': [
                {
                    'agent_id': str(row['apartment__agent_id']),
                    'agent_name': row['apartment__agent__name'],
                    'revenue': row['revenue'],
                    'transactions': row['transactions'],
                }
                for row in revenue_by_agent
            ],
            'average_transaction': {
                key: value or 0 for key, value in transaction_stats.items()
            },
            'refund_stats': {
                'total_refunds': refunds['total_refunds'],
                'refund_amount': refunds['refund_amount'] or 0,
                'pending_refunds': refunds['pending_refunds'],
            },
        })
