from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from accounts.authentication import issue_token
from accounts.models import Admin, Agent, User
from apartments.models import Apartment
from bookings.models import Booking

PASSWORD = 'Passw0rd123'


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path / 'media'


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    """Build an APIClient authenticated as the given principal"""
    def build(principal):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f'Bearer {issue_token(principal)}')
        return client
    return build


def create_principal(model, email, name='Test Person', **extra):
    principal = model(name=name, email=email, phone='+15550001111', **extra)
    principal.set_password(PASSWORD)
    principal.save()
    return principal


@pytest.fixture
def make_user(db):
    counter = {'n': 0}

    def build(**extra):
        counter['n'] += 1
        return create_principal(User, f"renter{counter['n']}@example.com", name=f"Renter {counter['n']}", **extra)
    return build


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user()


@pytest.fixture
def make_agent(db):
    counter = {'n': 0}

    def build(status='approved', **extra):
        counter['n'] += 1
        return create_principal(
            Agent, f"agent{counter['n']}@example.com", name=f"Agent {counter['n']}",
            status=status, certificate='certificates/license.pdf', **extra
        )
    return build


@pytest.fixture
def agent(make_agent):
    return make_agent()


@pytest.fixture
def other_agent(make_agent):
    return make_agent()


@pytest.fixture
def pending_agent(make_agent):
    return make_agent(status='pending')


@pytest.fixture
def admin(db):
    return create_principal(Admin, 'admin@example.com', name='Site Admin')


@pytest.fixture
def make_apartment(agent):
    def build(owner=None, **extra):
        values = {
            'location': 'Lekki, Lagos',
            'price': Decimal('1200.00'),
            'category': '2-Bedroom',
            'description': 'Bright two bedroom flat close to the beach',
        }
        values.update(extra)
        return Apartment.objects.create(agent=owner or agent, **values)
    return build


@pytest.fixture
def apartment(make_apartment):
    return make_apartment()


@pytest.fixture
def make_booking():
    """Insert a booking row directly, bypassing the availability claim"""
    def build(user, apartment, status='pending', **extra):
        return Booking.objects.create(user=user, apartment=apartment, status=status, **extra)
    return build
