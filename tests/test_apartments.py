import pytest

from analytics.models import ActivityLog
from apartments.models import Apartment
from bookings.models import Booking

pytestmark = pytest.mark.django_db

LISTING = {
    'location': 'Ikoyi, Lagos',
    'price': '2500.00',
    'category': 'Duplex',
    'description': 'Four bedroom duplex with a garden',
    'amenities': ['pool', ' gym '],
}


def test_approved_agent_creates_apartment(client_for, agent):
    response = client_for(agent).post('/api/apartments/', LISTING, format='json')

    assert response.status_code == 201
    assert response.data['message'] == 'Apartment created successfully'
    apartment = Apartment.objects.get(pk=response.data['apartment']['id'])
    assert apartment.agent_id == agent.id
    assert apartment.availability is True
    assert apartment.amenities == ['pool', 'gym']


def test_pending_agent_cannot_create_apartment(client_for, pending_agent):
    response = client_for(pending_agent).post('/api/apartments/', LISTING, format='json')

    assert response.status_code == 403
    assert not Apartment.objects.exists()


def test_user_cannot_create_apartment(client_for, user):
    response = client_for(user).post('/api/apartments/', LISTING, format='json')

    assert response.status_code == 403


def test_price_must_be_positive(client_for, agent):
    response = client_for(agent).post('/api/apartments/', {**LISTING, 'price': '0'}, format='json')

    assert response.status_code == 400


def test_public_list_hides_taken_apartments(api_client, apartment, make_apartment):
    make_apartment(availability=False)

    response = api_client.get('/api/apartments/')

    assert response.status_code == 200
    assert response.data['count'] == 1
    assert response.data['results'][0]['id'] == str(apartment.id)


def test_list_filters_by_price(api_client, make_apartment):
    make_apartment(price='400.00')
    make_apartment(price='3000.00')

    response = api_client.get('/api/apartments/', {'max_price': '1000'})

    assert response.data['count'] == 1


def test_retrieve_counts_views(api_client, apartment):
    api_client.get(f'/api/apartments/{apartment.id}/')
    response = api_client.get(f'/api/apartments/{apartment.id}/')

    assert response.status_code == 200
    assert response.data['total_views'] == 2


def test_retrieve_unknown_apartment(api_client):
    response = api_client.get('/api/apartments/00000000-0000-0000-0000-000000000000/')

    assert response.status_code == 404
    assert response.data['error'] == 'Apartment not found'


def test_only_owner_updates(client_for, apartment, other_agent):
    response = client_for(other_agent).put(
        f'/api/apartments/{apartment.id}/', {'price': '999.00'}, format='json'
    )

    assert response.status_code == 403
    assert response.data['error'] == 'You can only update your own apartments'


def test_owner_update_cannot_touch_availability(client_for, agent, apartment):
    response = client_for(agent).patch(
        f'/api/apartments/{apartment.id}/', {'price': '1500.00', 'availability': False}, format='json'
    )

    assert response.status_code == 200
    apartment.refresh_from_db()
    assert str(apartment.price) == '1500.00'
    assert apartment.availability is True


def test_search_requires_query(api_client):
    response = api_client.get('/api/apartments/search/')

    assert response.status_code == 400
    assert response.data['error'] == 'Search query is required'


def test_search_matches_every_term(api_client, make_apartment):
    make_apartment(location='Lekki, Lagos', description='Sea view')
    make_apartment(location='Wuse, Abuja', description='Quiet street')

    response = api_client.get('/api/apartments/search/', {'q': 'lagos sea'})

    assert response.data['count'] == 1


def test_apartments_by_agent(api_client, agent, apartment):
    response = api_client.get(f'/api/apartments/agent/{agent.id}/')

    assert response.status_code == 200
    assert response.data['count'] == 1
    assert response.data['agent']['id'] == str(agent.id)


def test_agent_lists_own_listings(client_for, agent, apartment, make_apartment, other_agent):
    make_apartment(owner=other_agent)

    response = client_for(agent).get('/api/apartments/agent/listings/')

    assert response.data['count'] == 1


def test_admin_sets_availability(client_for, admin, apartment):
    response = client_for(admin).put(
        f'/api/apartments/admin/{apartment.id}/status/', {'availability': False}, format='json'
    )

    assert response.status_code == 200
    assert response.data['message'] == 'Apartment marked as unavailable'
    apartment.refresh_from_db()
    assert apartment.availability is False
    assert ActivityLog.objects.filter(action='apartment_availability_set').exists()


def test_admin_lists_by_status(client_for, admin, apartment, make_apartment):
    make_apartment(availability=False)

    response = client_for(admin).get('/api/apartments/admin/all/', {'status': 'unavailable'})

    assert response.data['count'] == 1


def test_delete_keeps_bookings(client_for, agent, apartment, user, make_booking):
    booking = make_booking(user, apartment, status='confirmed')

    response = client_for(agent).delete(f'/api/apartments/{apartment.id}/')

    assert response.status_code == 200
    assert not Apartment.objects.filter(pk=apartment.pk).exists()
    booking = Booking.objects.get(pk=booking.pk)
    assert booking.apartment_id is None


def test_claim_is_single_slot(apartment):
    assert Apartment.objects.claim(apartment.pk) is True
    assert Apartment.objects.claim(apartment.pk) is False

    apartment.refresh_from_db()
    assert apartment.availability is False
    assert apartment.total_bookings == 1

    assert Apartment.objects.release(apartment.pk) is True
    assert Apartment.objects.claim(apartment.pk) is True
