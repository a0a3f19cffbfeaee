from datetime import timedelta

import pytest
from django.utils import timezone

from notifications.models import Notification
from reports.models import Report

pytestmark = pytest.mark.django_db


def file_report(client, apartment, message='Listing photos are fake', **extra):
    return client.post('/api/reports/', {
        'apartment_id': str(apartment.id), 'message': message, **extra
    }, format='json')


@pytest.fixture
def make_report(user, agent, apartment):
    def build(**extra):
        values = {'user': user, 'apartment': apartment, 'agent': agent, 'message': 'Broken heater'}
        values.update(extra)
        return Report.objects.create(**values)
    return build


def test_fraud_report_starts_high(client_for, user, agent, apartment):
    response = file_report(client_for(user), apartment, report_type='fraud')

    assert response.status_code == 201
    assert response.data['report']['priority'] == 'high'
    assert response.data['report']['status'] == 'open'
    report = Report.objects.get(pk=response.data['report']['id'])
    assert report.agent_id == agent.id
    assert Notification.objects.for_principal(agent).filter(title='New Report').exists()


def test_general_report_starts_medium(client_for, user, apartment):
    response = file_report(client_for(user), apartment)

    assert response.data['report']['priority'] == 'medium'
    assert response.data['report']['report_type'] == 'general'


def test_missing_message(client_for, user, apartment):
    response = client_for(user).post('/api/reports/', {'apartment_id': str(apartment.id)}, format='json')

    assert response.status_code == 400
    assert response.data['error'] == 'Apartment ID and message are required'


def test_repeat_report_within_a_day(client_for, user, apartment):
    client = client_for(user)
    file_report(client, apartment)

    response = file_report(client, apartment, message='Still fake')

    assert response.status_code == 400
    assert response.data['error'] == 'You have already reported this apartment recently'


def test_repeat_allowed_after_window(client_for, user, apartment, make_report):
    old = make_report()
    Report.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(hours=25))

    response = file_report(client_for(user), apartment)

    assert response.status_code == 201


def test_agent_responds(client_for, agent, user, make_report):
    report = make_report()

    response = client_for(agent).put(f'/api/reports/agent/{report.id}/respond/', {
        'response': 'A technician is on the way',
    }, format='json')

    assert response.status_code == 200
    report.refresh_from_db()
    assert report.status == 'in_progress'
    assert report.responded_at is not None
    assert Notification.objects.for_principal(user).filter(title='Report Update').exists()


def test_other_agent_cannot_respond(client_for, other_agent, make_report):
    report = make_report()

    response = client_for(other_agent).put(f'/api/reports/agent/{report.id}/respond/', {
        'response': 'Not mine',
    }, format='json')

    assert response.status_code == 403
    assert response.data['error'] == 'Not authorized to respond to this report'


def test_agent_resolves(client_for, agent, make_report):
    report = make_report()

    response = client_for(agent).put(f'/api/reports/agent/{report.id}/resolve/', {
        'resolution_notes': 'Heater replaced',
    }, format='json')

    assert response.data['message'] == 'Report marked as resolved'
    report.refresh_from_db()
    assert report.status == 'resolved'
    assert report.resolved_at is not None


def test_assigned_agent_sees_and_handles_report(client_for, admin, other_agent, make_report):
    report = make_report()

    response = client_for(admin).put(f'/api/reports/admin/{report.id}/assign/', {
        'agent_id': str(other_agent.id),
    }, format='json')
    assert response.status_code == 200
    assert response.data['report']['status'] == 'assigned'

    listed = client_for(other_agent).get('/api/reports/agent/reports/')
    assert listed.data['count'] == 1

    resolved = client_for(other_agent).put(f'/api/reports/agent/{report.id}/resolve/', {}, format='json')
    assert resolved.status_code == 200


def test_assign_unknown_agent(client_for, admin, make_report):
    report = make_report()

    response = client_for(admin).put(f'/api/reports/admin/{report.id}/assign/', {
        'agent_id': '00000000-0000-0000-0000-000000000000',
    }, format='json')

    assert response.status_code == 404
    assert response.data['error'] == 'Agent not found'


def test_escalation_raises_priority(client_for, admin, make_report):
    report = make_report(priority='low')

    response = client_for(admin).put(f'/api/reports/admin/{report.id}/escalate/', {
        'escalation_notes': 'Repeated complaints',
    }, format='json')

    assert response.status_code == 200
    report.refresh_from_db()
    assert report.escalated is True
    assert report.priority == 'high'


def test_admin_status_only_open_or_resolved(client_for, admin, make_report):
    report = make_report()

    response = client_for(admin).put(f'/api/reports/admin/{report.id}/status/', {'status': 'closed'}, format='json')

    assert response.status_code == 400
    assert response.data['error'] == "Status must be 'open' or 'resolved'"


def test_admin_list_orders_by_priority(client_for, admin, make_report):
    low = make_report(priority='low')
    high = make_report(priority='high')
    medium = make_report(priority='medium')

    response = client_for(admin).get('/api/reports/admin/all/')

    assert [row['id'] for row in response.data['results']] == [str(high.id), str(medium.id), str(low.id)]


def test_admin_stats(client_for, admin, make_report):
    make_report(report_type='fraud', priority='high')
    make_report(status='resolved')

    response = client_for(admin).get('/api/reports/admin/stats/')

    assert response.data['total'] == 2
    assert response.data['resolved'] == 1
    assert response.data['high_priority'] == 1
    assert response.data['resolution_rate'] == 50


def test_report_visibility(client_for, user, other_user, agent, other_agent, make_report):
    report = make_report()
    url = f'/api/reports/{report.id}/'

    assert client_for(user).get(url).status_code == 200
    assert client_for(agent).get(url).status_code == 200
    assert client_for(other_user).get(url).status_code == 403
    assert client_for(other_agent).get(url).status_code == 403


def test_my_reports(client_for, user, make_report):
    make_report()

    response = client_for(user).get('/api/reports/my-reports/')

    assert response.data['count'] == 1
