import pytest

from apartments.models import Apartment
from reviews.models import Review
from reviews.services import round_rating

pytestmark = pytest.mark.django_db


@pytest.fixture
def confirmed_user(user, apartment, make_booking):
    make_booking(user, apartment, status='confirmed')
    return user


def post_review(client, apartment, rating, **extra):
    return client.post('/api/reviews/', {
        'apartment_id': str(apartment.id), 'rating': rating, **extra
    }, format='json')


def test_round_rating():
    assert round_rating(None) == 0.0
    assert round_rating(4.25) == 4.3
    assert round_rating(4.24) == 4.2
    assert round_rating(3) == 3.0


def test_review_requires_confirmed_booking(client_for, user, apartment, make_booking):
    make_booking(user, apartment, status='approved')

    response = post_review(client_for(user), apartment, 5)

    assert response.status_code == 403
    assert response.data['error'] == 'You can only review apartments you have booked'


def test_review_updates_aggregates(client_for, confirmed_user, agent, apartment):
    response = post_review(client_for(confirmed_user), apartment, 4, comment='Lovely place')

    assert response.status_code == 201
    assert response.data['review']['is_verified_booking'] is True
    apartment.refresh_from_db()
    agent.refresh_from_db()
    assert apartment.average_rating == 4.0
    assert apartment.total_reviews == 1
    assert agent.average_rating == 4.0
    assert agent.total_reviews == 1


def test_admin_may_review_without_booking(client_for, admin, apartment):
    response = post_review(client_for(admin), apartment, 3)

    assert response.status_code == 201
    assert response.data['review']['is_verified_booking'] is False


def test_average_rounds_half_up(client_for, confirmed_user, admin, apartment, make_user, make_booking):
    post_review(client_for(confirmed_user), apartment, 5)
    post_review(client_for(admin), apartment, 4)
    third = make_user()
    make_booking(third, apartment, status='confirmed')
    post_review(client_for(third), apartment, 4)
    fourth = make_user()
    make_booking(fourth, apartment, status='confirmed')
    post_review(client_for(fourth), apartment, 4)

    apartment.refresh_from_db()
    assert apartment.total_reviews == 4
    assert apartment.average_rating == 4.3


def test_duplicate_review(client_for, confirmed_user, apartment):
    client = client_for(confirmed_user)
    post_review(client, apartment, 4)

    response = post_review(client, apartment, 2)

    assert response.status_code == 400
    assert response.data['error'] == 'You have already reviewed this apartment'


def test_rating_range(client_for, confirmed_user, apartment):
    response = post_review(client_for(confirmed_user), apartment, 6)

    assert response.status_code == 400
    assert response.data['error'] == 'Rating must be between 1 and 5'


def test_agent_cannot_review(client_for, agent, apartment):
    assert post_review(client_for(agent), apartment, 5).status_code == 403


def test_update_recomputes(client_for, confirmed_user, apartment):
    client = client_for(confirmed_user)
    review_id = post_review(client, apartment, 2).data['review']['id']

    response = client.put(f'/api/reviews/{review_id}/', {'rating': 5}, format='json')

    assert response.status_code == 200
    apartment.refresh_from_db()
    assert apartment.average_rating == 5.0


def test_only_author_updates(client_for, confirmed_user, other_user, apartment):
    review_id = post_review(client_for(confirmed_user), apartment, 2).data['review']['id']

    response = client_for(other_user).put(f'/api/reviews/{review_id}/', {'rating': 5}, format='json')

    assert response.status_code == 403


def test_deleting_last_review_resets_aggregates(client_for, confirmed_user, apartment):
    client = client_for(confirmed_user)
    review_id = post_review(client, apartment, 4).data['review']['id']

    response = client.delete(f'/api/reviews/{review_id}/')

    assert response.status_code == 200
    apartment = Apartment.objects.get(pk=apartment.pk)
    assert apartment.average_rating == 0
    assert apartment.total_reviews == 0


def test_public_apartment_reviews_sorted(api_client, client_for, confirmed_user, admin, apartment):
    post_review(client_for(confirmed_user), apartment, 2)
    post_review(client_for(admin), apartment, 5)

    response = api_client.get(f'/api/reviews/apartment/{apartment.id}/', {'sort_by': 'highest'})

    assert response.status_code == 200
    assert response.data['total_reviews'] == 2
    assert response.data['average_rating'] == 3.5
    assert [review['rating'] for review in response.data['results']] == [5, 2]


def test_agent_responds_to_review(client_for, confirmed_user, agent, other_agent, apartment):
    review_id = post_review(client_for(confirmed_user), apartment, 4).data['review']['id']

    denied = client_for(other_agent).put(f'/api/reviews/agent/{review_id}/respond/', {'response': 'Hi'},
                                         format='json')
    assert denied.status_code == 403

    response = client_for(agent).put(f'/api/reviews/agent/{review_id}/respond/', {'response': 'Thank you'},
                                     format='json')
    assert response.status_code == 200
    assert Review.objects.get(pk=review_id).agent_response == 'Thank you'


def test_admin_delete_recomputes(client_for, confirmed_user, admin, agent, apartment):
    review_id = post_review(client_for(confirmed_user), apartment, 4).data['review']['id']

    client_for(admin).delete(f'/api/reviews/admin/{review_id}/')

    agent.refresh_from_db()
    assert agent.total_reviews == 0
    assert agent.average_rating == 0
