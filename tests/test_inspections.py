from datetime import timedelta

import pytest
from django.utils import timezone

from inspections.models import InspectionRequest
from notifications.models import Notification

pytestmark = pytest.mark.django_db


def days_from_today(days):
    return (timezone.localdate() + timedelta(days=days)).isoformat()


@pytest.fixture
def make_inspection(user, agent, apartment):
    def build(status='pending', **extra):
        return InspectionRequest.objects.create(
            user=user, agent=agent, apartment=apartment,
            date=timezone.localdate() + timedelta(days=3), status=status, **extra
        )
    return build


def test_user_requests_inspection(client_for, user, agent, apartment):
    response = client_for(user).post('/api/inspections/request/', {
        'apartment_id': str(apartment.id),
        'date': days_from_today(2),
        'message': 'Evenings work best',
    }, format='json')

    assert response.status_code == 201
    assert response.data['inspection']['time'] == '10:00 AM'
    assert response.data['inspection']['agent']['id'] == str(agent.id)
    assert Notification.objects.for_principal(agent).filter(title='New Inspection Request').exists()


def test_inspection_date_cannot_be_past(client_for, user, apartment):
    response = client_for(user).post('/api/inspections/request/', {
        'apartment_id': str(apartment.id), 'date': days_from_today(-1),
    }, format='json')

    assert response.status_code == 400
    assert response.data['error'] == 'Inspection date must be in the future'


def test_missing_date(client_for, user, apartment):
    response = client_for(user).post('/api/inspections/request/', {
        'apartment_id': str(apartment.id),
    }, format='json')

    assert response.data['error'] == 'Apartment ID and inspection date are required'


def test_duplicate_pending_request(client_for, user, apartment, make_inspection):
    make_inspection()

    response = client_for(user).post('/api/inspections/request/', {
        'apartment_id': str(apartment.id), 'date': days_from_today(4),
    }, format='json')

    assert response.status_code == 400
    assert response.data['error'] == 'You already have a pending inspection request for this apartment'


def test_unavailable_apartment(client_for, user, make_apartment):
    taken = make_apartment(availability=False)

    response = client_for(user).post('/api/inspections/request/', {
        'apartment_id': str(taken.id), 'date': days_from_today(2),
    }, format='json')

    assert response.data['error'] == 'Apartment is not available for inspection'


def test_agent_approves_then_completes(client_for, agent, user, make_inspection):
    inspection = make_inspection()
    client = client_for(agent)

    approved = client.put(f'/api/inspections/agent/{inspection.id}/status/', {'status': 'approved'}, format='json')
    assert approved.status_code == 200
    assert approved.data['message'] == 'Inspection request approved successfully'

    completed = client.put(f'/api/inspections/agent/{inspection.id}/complete/', {
        'completion_notes': 'Tenant liked the kitchen', 'follow_up_required': True,
    }, format='json')
    assert completed.status_code == 200

    inspection.refresh_from_db()
    assert inspection.status == 'completed'
    assert inspection.follow_up_required is True
    assert inspection.completed_at is not None
    assert Notification.objects.for_principal(user).count() == 2


def test_only_approved_inspections_complete(client_for, agent, make_inspection):
    inspection = make_inspection()

    response = client_for(agent).put(f'/api/inspections/agent/{inspection.id}/complete/', {}, format='json')

    assert response.status_code == 400
    assert response.data['error'] == 'Only approved inspections can be marked as completed'


def test_rejection_keeps_reason(client_for, agent, make_inspection):
    inspection = make_inspection()

    client_for(agent).put(f'/api/inspections/agent/{inspection.id}/status/', {
        'status': 'rejected', 'rejection_reason': 'Under renovation',
    }, format='json')

    inspection.refresh_from_db()
    assert inspection.status == 'rejected'
    assert inspection.rejection_reason == 'Under renovation'


def test_decided_request_cannot_be_decided_again(client_for, agent, make_inspection):
    inspection = make_inspection(status='approved')

    response = client_for(agent).put(
        f'/api/inspections/agent/{inspection.id}/status/', {'status': 'rejected'}, format='json'
    )

    assert response.data['error'] == 'Cannot update a request that is already approved'


def test_other_agent_cannot_decide(client_for, other_agent, make_inspection):
    inspection = make_inspection()

    response = client_for(other_agent).put(
        f'/api/inspections/agent/{inspection.id}/status/', {'status': 'approved'}, format='json'
    )

    assert response.status_code == 403


def test_user_reschedules_pending_request(client_for, user, agent, make_inspection):
    inspection = make_inspection()
    new_date = days_from_today(10)

    response = client_for(user).put(f'/api/inspections/{inspection.id}/reschedule/', {
        'date': new_date, 'time': '2:00 PM',
    }, format='json')

    assert response.status_code == 200
    inspection.refresh_from_db()
    assert inspection.date.isoformat() == new_date
    assert inspection.time == '2:00 PM'
    assert Notification.objects.for_principal(agent).filter(title='Inspection Rescheduled').exists()


def test_reschedule_needs_future_date(client_for, user, make_inspection):
    inspection = make_inspection()

    response = client_for(user).put(f'/api/inspections/{inspection.id}/reschedule/', {
        'date': days_from_today(0),
    }, format='json')

    assert response.data['error'] == 'New inspection date must be in the future'


def test_user_cancels_pending_request(client_for, user, make_inspection):
    inspection = make_inspection()

    response = client_for(user).delete(f'/api/inspections/{inspection.id}/')

    assert response.status_code == 200
    inspection.refresh_from_db()
    assert inspection.status == 'cancelled'


def test_cannot_cancel_completed_request(client_for, user, make_inspection):
    inspection = make_inspection(status='completed')

    response = client_for(user).delete(f'/api/inspections/{inspection.id}/')

    assert response.data['error'] == 'Cannot cancel a request that is already completed'


def test_agent_stats(client_for, agent, make_inspection):
    make_inspection(status='approved')
    make_inspection(status='completed', follow_up_required=True)

    response = client_for(agent).get('/api/inspections/agent/stats/')

    assert response.data['total'] == 2
    assert response.data['upcoming'] == 1
    assert response.data['follow_ups'] == 1
