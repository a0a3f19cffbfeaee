from datetime import timedelta
from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from analytics.models import AnalyticsSnapshot
from analytics.services import generate_daily_snapshot, price_range_breakdown
from analytics.tasks import generate_daily_analytics

pytestmark = pytest.mark.django_db


def test_snapshot_is_generated_once(user, apartment):
    today = timezone.localdate()

    first, created = generate_daily_snapshot(today)
    assert created is True
    assert first.new_users == 1
    assert first.total_apartments == 1
    assert first.categories == {'2-Bedroom': 1}

    second, created_again = generate_daily_snapshot(today)
    assert created_again is False
    assert second.pk == first.pk
    assert AnalyticsSnapshot.objects.count() == 1


def test_price_range_buckets(make_apartment):
    for price in ('500.00', '500.01', '1000.00', '2000.00', '2000.01'):
        make_apartment(price=Decimal(price))

    assert price_range_breakdown() == {'0-500': 1, '501-1000': 2, '1001-2000': 1, '2001+': 1}


def test_task_defaults_to_yesterday():
    result = generate_daily_analytics()

    yesterday = timezone.localdate() - timedelta(days=1)
    assert result == {'success': True, 'date': yesterday.isoformat(), 'created': True}


def test_task_respects_feature_flag(settings):
    settings.FEATURES = {**settings.FEATURES, 'ANALYTICS_TRACKING': False}

    assert generate_daily_analytics()['success'] is False
    assert not AnalyticsSnapshot.objects.exists()


def test_management_command_backfills():
    out = StringIO()
    call_command('generate_analytics', '--date', '2024-03-10', '--days', '3', stdout=out)

    dates = sorted(AnalyticsSnapshot.objects.values_list('date', flat=True))
    assert [day.isoformat() for day in dates] == ['2024-03-08', '2024-03-09', '2024-03-10']
    assert 'Generated analytics for 2024-03-10' in out.getvalue()


def test_management_command_rejects_bad_date():
    with pytest.raises(CommandError, match='Date must be in YYYY-MM-DD format'):
        call_command('generate_analytics', '--date', '10/03/2024')


def test_generate_endpoint(client_for, admin):
    client = client_for(admin)

    first = client.post('/api/analytics/generate/', {'date': '2024-01-15'}, format='json')
    assert first.status_code == 200
    assert first.data['message'] == 'Analytics generated successfully'

    again = client.post('/api/analytics/generate/', {'date': '2024-01-15'}, format='json')
    assert again.data['message'] == 'Analytics already generated'
    assert again.data['analytics']['id'] == first.data['analytics']['id']


def test_generate_only_daily(client_for, admin):
    response = client_for(admin).post('/api/analytics/generate/', {'type': 'weekly'}, format='json')

    assert response.status_code == 400
    assert response.data['error'] == 'Only daily analytics generation is supported'


def test_detailed_metric_series(client_for, admin, user):
    generate_daily_snapshot(timezone.localdate() - timedelta(days=1))
    generate_daily_snapshot(timezone.localdate())

    response = client_for(admin).get('/api/analytics/detailed/', {'metric': 'total_users'})

    assert response.status_code == 200
    assert response.data['total'] == 2
    assert response.data['average'] == 1
    assert len(response.data['data']) == 2


def test_detailed_unknown_metric(client_for, admin):
    response = client_for(admin).get('/api/analytics/detailed/', {'metric': 'bogus'})

    assert response.status_code == 400
    assert response.data['error'] == 'Unknown metric: bogus'


def test_detailed_bad_date(client_for, admin):
    response = client_for(admin).get('/api/analytics/detailed/', {'start_date': 'yesterday'})

    assert response.data['error'] == 'Invalid start_date, expected YYYY-MM-DD'


def test_dashboard(client_for, admin, user, apartment):
    response = client_for(admin).get('/api/analytics/dashboard/', {'period': '30days'})

    assert response.status_code == 200
    assert response.data['overview']['total_users'] == 1
    assert response.data['overview']['total_apartments'] == 1
    assert response.data['popular_locations'][0]['location'] == apartment.location


def test_dashboard_invalid_period(client_for, admin):
    response = client_for(admin).get('/api/analytics/dashboard/', {'period': 'forever'})

    assert response.status_code == 400
    assert response.data['error'] == 'Invalid period'


def test_analytics_is_admin_only(client_for, agent):
    assert client_for(agent).get('/api/analytics/dashboard/').status_code == 403


def test_user_analytics(client_for, admin, user, make_user):
    make_user()

    response = client_for(admin).get('/api/analytics/users/', {'period': '7days'})

    assert response.data['user_segments']['total'] == 2
    assert response.data['user_segments']['new'] == 2


def test_revenue_analytics(client_for, admin):
    response = client_for(admin).get('/api/analytics/revenue/')

    assert response.status_code == 200
    assert response.data['refund_stats'] == {'total_refunds': 0, 'refund_amount': 0, 'pending_refunds': 0}
