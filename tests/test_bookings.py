import pytest
from django.core import mail

from analytics.models import ActivityLog
from apartments.models import Apartment
from bookings import services
from bookings.models import Booking
from notifications.models import Notification
from utils.exceptions import Conflict

pytestmark = pytest.mark.django_db


def book(client, apartment, **data):
    return client.post(f'/api/bookings/apartment/{apartment.id}/', data, format='json')


def test_user_books_available_apartment(client_for, user, agent, apartment):
    response = book(client_for(user), apartment, notes='Moving in next month')

    assert response.status_code == 201
    assert response.data['message'] == 'Booking request submitted successfully'
    assert response.data['booking']['status'] == 'pending'

    apartment.refresh_from_db()
    assert apartment.availability is False
    assert apartment.total_bookings == 1
    assert Notification.objects.for_principal(agent).filter(title='New Booking Request').exists()
    assert ActivityLog.objects.filter(action='booking_created').exists()


def test_second_user_finds_apartment_taken(client_for, user, other_user, apartment):
    book(client_for(user), apartment)

    response = book(client_for(other_user), apartment)

    assert response.status_code == 400
    assert response.data['error'] == 'Apartment is not available for booking'
    assert Booking.objects.count() == 1


def test_duplicate_booking_rejected(client_for, user, apartment, make_booking):
    make_booking(user, apartment)

    response = book(client_for(user), apartment)

    assert response.status_code == 400
    assert response.data['error'] == 'You already have a booking for this apartment'


def test_rebooking_a_held_apartment_reports_unavailable(client_for, user, apartment):
    book(client_for(user), apartment)

    response = book(client_for(user), apartment)

    assert response.status_code == 400
    assert response.data['error'] == 'Apartment is not available for booking'


def test_active_booking_constraint_backs_the_duplicate_check(monkeypatch, user, apartment, make_booking):
    make_booking(user, apartment)
    # A concurrent request that passed the duplicate check before this booking existed
    monkeypatch.setattr(Booking.objects, 'filter', lambda *args, **kwargs: Booking.objects.none())

    with pytest.raises(Conflict, match='You already have a booking for this apartment'):
        services.create_booking(user, apartment.pk)

    monkeypatch.undo()
    apartment.refresh_from_db()
    assert apartment.availability is True
    assert Booking.objects.filter(user=user, apartment=apartment).count() == 1


def test_unknown_apartment(client_for, user):
    response = client_for(user).post(
        '/api/bookings/apartment/00000000-0000-0000-0000-000000000000/', {}, format='json'
    )

    assert response.status_code == 404
    assert response.data['error'] == 'Apartment not found'


def test_check_out_must_follow_check_in(client_for, user, apartment):
    response = book(client_for(user), apartment, check_in='2099-05-10', check_out='2099-05-01')

    assert response.status_code == 400
    assert response.data['error'] == 'Check-out date must be after check-in date'


def test_agent_cannot_book(client_for, agent, apartment):
    assert book(client_for(agent), apartment).status_code == 403


def test_my_bookings(client_for, user, other_user, apartment, make_apartment, make_booking):
    make_booking(user, apartment)
    make_booking(other_user, make_apartment())

    response = client_for(user).get('/api/bookings/my-bookings/')

    assert response.data['count'] == 1


def test_agent_approves_booking(client_for, user, agent, apartment):
    booking_id = book(client_for(user), apartment).data['booking']['id']
    mail.outbox.clear()

    response = client_for(agent).put(
        f'/api/bookings/agent/{booking_id}/status/', {'status': 'approved'}, format='json'
    )

    assert response.status_code == 200
    assert response.data['message'] == 'Booking approved successfully'
    booking = Booking.objects.get(pk=booking_id)
    assert booking.approved_at is not None
    assert mail.outbox[0].subject == 'Your booking has been approved'
    assert mail.outbox[0].to == [user.email]
    assert Notification.objects.for_principal(user).filter(title='Booking Approved').exists()


def test_agent_rejection_releases_apartment(client_for, user, agent, apartment):
    booking_id = book(client_for(user), apartment).data['booking']['id']

    response = client_for(agent).put(
        f'/api/bookings/agent/{booking_id}/status/', {'status': 'rejected'}, format='json'
    )

    assert response.status_code == 200
    apartment.refresh_from_db()
    assert apartment.availability is True


def test_approved_booking_cannot_be_rejected(client_for, user, agent, apartment, make_booking):
    booking = make_booking(user, apartment, status='approved')

    response = client_for(agent).put(
        f'/api/bookings/agent/{booking.id}/status/', {'status': 'rejected'}, format='json'
    )

    assert response.status_code == 400
    assert response.data['error'] == 'Cannot change booking from approved to rejected'


def test_invalid_status_value(client_for, agent, user, apartment, make_booking):
    booking = make_booking(user, apartment)

    response = client_for(agent).put(
        f'/api/bookings/agent/{booking.id}/status/', {'status': 'confirmed'}, format='json'
    )

    assert response.status_code == 400
    assert response.data['error'] == 'Invalid status'


def test_other_agent_cannot_decide(client_for, other_agent, user, apartment, make_booking):
    booking = make_booking(user, apartment)

    response = client_for(other_agent).put(
        f'/api/bookings/agent/{booking.id}/status/', {'status': 'approved'}, format='json'
    )

    assert response.status_code == 403
    assert response.data['error'] == 'Not authorized to update this booking'


def test_agent_sees_bookings_for_own_apartments(client_for, agent, other_agent, user, apartment,
                                                make_apartment, make_booking):
    make_booking(user, apartment)
    make_booking(user, make_apartment(owner=other_agent))

    response = client_for(agent).get('/api/bookings/agent/bookings/')

    assert response.data['count'] == 1


def test_user_cancellation_always_releases(client_for, user, other_user, apartment, make_booking):
    # A stale booking left behind after the agent rejected it
    stale = make_booking(user, apartment, status='rejected')
    book(client_for(other_user), apartment)
    apartment.refresh_from_db()
    assert apartment.availability is False

    response = client_for(user).delete(f'/api/bookings/{stale.id}/')

    assert response.status_code == 200
    assert response.data['message'] == 'Booking cancelled successfully'
    assert not Booking.objects.filter(pk=stale.pk).exists()
    apartment.refresh_from_db()
    assert apartment.availability is True


def test_user_cannot_cancel_someone_elses_booking(client_for, user, other_user, apartment, make_booking):
    booking = make_booking(user, apartment)

    response = client_for(other_user).delete(f'/api/bookings/{booking.id}/')

    assert response.status_code == 403
    assert Booking.objects.filter(pk=booking.pk).exists()


def test_retrieve_visibility(client_for, user, other_user, agent, other_agent, admin, apartment, make_booking):
    booking = make_booking(user, apartment)
    url = f'/api/bookings/{booking.id}/'

    assert client_for(user).get(url).status_code == 200
    assert client_for(agent).get(url).status_code == 200
    assert client_for(admin).get(url).status_code == 200
    assert client_for(other_user).get(url).status_code == 403
    assert client_for(other_agent).get(url).status_code == 403


def test_admin_delete_pending_keeps_apartment_taken(client_for, admin, user, apartment):
    booking_id = book(client_for(user), apartment).data['booking']['id']

    response = client_for(admin).delete(f'/api/bookings/admin/{booking_id}/')

    assert response.status_code == 200
    apartment.refresh_from_db()
    assert apartment.availability is False


def test_admin_delete_approved_releases(client_for, admin, user, apartment, make_booking):
    Apartment.objects.claim(apartment.pk)
    booking = make_booking(user, apartment, status='approved')

    client_for(admin).delete(f'/api/bookings/admin/{booking.id}/')

    apartment.refresh_from_db()
    assert apartment.availability is True
    assert ActivityLog.objects.filter(action='booking_deleted').exists()


def test_admin_stats(client_for, admin, user, other_user, apartment, make_apartment, make_booking):
    make_booking(user, apartment, status='approved')
    make_booking(other_user, make_apartment())

    response = client_for(admin).get('/api/bookings/admin/stats/')

    assert response.data['total'] == 2
    assert response.data['approved'] == 1
    assert response.data['approval_rate'] == 50.0
