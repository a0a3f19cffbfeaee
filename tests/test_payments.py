from datetime import timedelta
from decimal import Decimal

import pytest
from django.core import mail
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.test import APIClient

from apartments.models import Apartment
from bookings.models import Booking
from payments import services
from payments.models import Payment
from payments.tasks import settle_due_payments, settle_payment
from utils.exceptions import Conflict

pytestmark = pytest.mark.django_db


def pay(client, booking, amount='1200.00', method='card'):
    return client.post('/api/payments/', {
        'booking_id': str(booking.id),
        'amount': amount,
        'payment_method': method,
    }, format='json')


@pytest.fixture
def booking(user, apartment, make_booking):
    Apartment.objects.claim(apartment.pk)
    return make_booking(user, apartment, status='approved')


@pytest.fixture
def make_payment(user, apartment, booking):
    def build(**extra):
        values = {
            'user': user,
            'apartment': apartment,
            'booking': booking,
            'amount': Decimal('1200.00'),
            'payment_method': 'card',
        }
        values.update(extra)
        return Payment.objects.create(**values)
    return build


def test_payment_settles_after_commit(client_for, user, booking, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        response = pay(client_for(user), booking)

    assert response.status_code == 201
    assert response.data['message'] == 'Payment initiated successfully'
    assert response.data['payment']['status'] == 'pending'
    assert response.data['payment']['transaction_id'].startswith('TXN')

    payment = Payment.objects.get(pk=response.data['payment']['id'])
    assert payment.status == 'completed'
    assert payment.paid_at is not None

    booking.refresh_from_db()
    assert booking.status == 'confirmed'
    assert booking.payment_status == 'paid'
    assert booking.payment_amount == Decimal('1200.00')
    assert mail.outbox[-1].subject == 'Payment received'


def test_settlement_runs_once(make_payment, booking):
    payment = make_payment()

    assert services.settle(payment.pk).status == 'completed'
    assert services.settle(payment.pk) is None
    assert settle_payment(str(payment.pk)) == {'success': True, 'settled': False}


def test_settlement_fails_for_cancelled_booking(make_payment, booking):
    payment = make_payment()
    Booking.objects.filter(pk=booking.pk).update(status='cancelled')

    result = services.settle(payment.pk)

    assert result.status == 'failed'
    assert result.failed_at is not None
    booking.refresh_from_db()
    assert booking.payment_status == 'failed'


def test_sweep_redrives_due_payments(make_payment):
    due = make_payment(settle_after=timezone.now() - timedelta(minutes=5))
    make_payment(settle_after=timezone.now() + timedelta(hours=1), status='cancelled')

    assert services.due_payment_ids() == [due.pk]
    assert settle_due_payments() == 1

    due.refresh_from_db()
    assert due.status == 'completed'


def test_second_pending_payment_rejected(client_for, user, booking, make_payment):
    make_payment()

    response = pay(client_for(user), booking)

    assert response.status_code == 400
    assert response.data['error'] == 'A payment for this booking is already being processed'


def test_booking_holds_one_live_payment(make_payment):
    make_payment()

    with pytest.raises(IntegrityError), transaction.atomic():
        make_payment(status='completed')


def test_concurrent_payment_cannot_double_charge(monkeypatch, user, booking, make_payment):
    first = make_payment()
    # A second request that passed the pending check before the first row landed
    monkeypatch.setattr(Payment.objects, 'filter', lambda *args, **kwargs: Payment.objects.none())

    with pytest.raises(Conflict, match='already being processed'):
        services.create_payment(user, booking.pk, Decimal('1200.00'), 'card')

    monkeypatch.undo()
    services.settle(first.pk)
    assert Payment.objects.filter(booking=booking).count() == 1
    assert Payment.objects.filter(booking=booking, status='completed').count() == 1


def test_cannot_pay_for_rejected_booking(client_for, user, booking):
    Booking.objects.filter(pk=booking.pk).update(status='rejected')

    response = pay(client_for(user), booking)

    assert response.status_code == 400
    assert response.data['error'] == 'Cannot pay for a rejected booking'


def test_cannot_pay_for_someone_elses_booking(client_for, other_user, booking):
    response = pay(client_for(other_user), booking)

    assert response.status_code == 403


def test_missing_fields(client_for, user):
    response = client_for(user).post('/api/payments/', {}, format='json')

    assert response.status_code == 400
    assert response.data['error'] == 'Booking ID, amount, and payment method are required'


def test_refund_approval_cancels_booking_and_releases(client_for, user, admin, apartment, booking, make_payment):
    payment = make_payment(status='completed', paid_at=timezone.now())

    requested = client_for(user).post(f'/api/payments/{payment.id}/refund/', {'reason': 'Plans changed'},
                                      format='json')
    assert requested.status_code == 200
    assert requested.data['payment']['status'] == 'refund_pending'

    response = client_for(admin).put(
        f'/api/payments/admin/{payment.id}/refund/', {'action': 'approve', 'notes': 'ok'}, format='json'
    )

    assert response.status_code == 200
    assert response.data['message'] == 'Refund approved successfully'
    payment.refresh_from_db()
    assert payment.status == 'refunded'
    booking.refresh_from_db()
    assert booking.status == 'cancelled'
    assert booking.payment_status == 'refunded'
    apartment.refresh_from_db()
    assert apartment.availability is True
    assert mail.outbox[-1].subject == 'Refund approved'


def test_refund_rejection_restores_completed(client_for, user, admin, make_payment):
    payment = make_payment(status='refund_pending', refund_requested=True, paid_at=timezone.now())

    client_for(admin).put(f'/api/payments/admin/{payment.id}/refund/', {'action': 'reject'}, format='json')

    payment.refresh_from_db()
    assert payment.status == 'completed'
    assert payment.refund_requested is False


def test_refund_window_expires(client_for, user, make_payment):
    payment = make_payment(status='completed', paid_at=timezone.now() - timedelta(days=8))

    response = client_for(user).post(f'/api/payments/{payment.id}/refund/', {}, format='json')

    assert response.status_code == 400
    assert response.data['error'] == 'Refund period has expired'


def test_refund_requested_twice(client_for, user, make_payment):
    payment = make_payment(status='completed', paid_at=timezone.now())
    client = client_for(user)

    client.post(f'/api/payments/{payment.id}/refund/', {}, format='json')
    response = client.post(f'/api/payments/{payment.id}/refund/', {}, format='json')

    assert response.status_code == 400
    assert response.data['error'] == 'Refund already requested'


def test_pending_payment_cannot_be_refunded(client_for, user, make_payment):
    payment = make_payment()

    response = client_for(user).post(f'/api/payments/{payment.id}/refund/', {}, format='json')

    assert response.data['error'] == 'Only completed payments can be refunded'


def test_admin_refund_without_request(client_for, admin, make_payment):
    payment = make_payment(status='completed')

    response = client_for(admin).put(
        f'/api/payments/admin/{payment.id}/refund/', {'action': 'approve'}, format='json'
    )

    assert response.status_code == 400
    assert response.data['error'] == 'No refund requested for this payment'


def test_agent_stats_cover_own_apartments(client_for, agent, make_payment):
    make_payment(status='completed', paid_at=timezone.now())
    make_payment(status='failed')

    response = client_for(agent).get('/api/payments/agent/stats/')

    assert response.data['total_payments'] == 2
    assert response.data['completed_payments'] == 1
    assert response.data['success_rate'] == 50


def test_payment_visibility(client_for, user, other_user, agent, other_agent, make_payment):
    payment = make_payment()
    url = f'/api/payments/{payment.id}/'

    assert client_for(user).get(url).status_code == 200
    assert client_for(agent).get(url).status_code == 200
    assert client_for(other_user).get(url).status_code == 403
    assert client_for(other_agent).get(url).status_code == 403


def test_rent_pay_and_refund_end_to_end(api_client, client_for, agent, admin, apartment,
                                        django_capture_on_commit_callbacks):
    registered = api_client.post('/api/users/register/', {
        'name': 'Tola Ade', 'email': 'tola@example.com', 'password': 'Secret123', 'phone': '08012345678',
    }, format='json')
    assert registered.status_code == 201

    login = api_client.post('/api/users/login/', {'email': 'tola@example.com', 'password': 'Secret123'},
                            format='json')
    renter = APIClient()
    renter.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['token']}")

    booked = renter.post(f'/api/bookings/apartment/{apartment.id}/', {}, format='json')
    assert booked.status_code == 201
    apartment.refresh_from_db()
    assert apartment.availability is False

    booking_id = booked.data['booking']['id']
    approved = client_for(agent).put(f'/api/bookings/agent/{booking_id}/status/', {'status': 'approved'},
                                     format='json')
    assert approved.status_code == 200

    with django_capture_on_commit_callbacks(execute=True):
        paid = renter.post('/api/payments/', {
            'booking_id': booking_id, 'amount': '1200.00', 'payment_method': 'card',
        }, format='json')
    payment = Payment.objects.get(pk=paid.data['payment']['id'])
    assert payment.status == 'completed'
    assert Booking.objects.get(pk=booking_id).status == 'confirmed'

    assert renter.post(f'/api/payments/{payment.id}/refund/', {'reason': 'Moving'}, format='json').status_code == 200
    decided = client_for(admin).put(f'/api/payments/admin/{payment.id}/refund/', {'action': 'approve'},
                                    format='json')
    assert decided.status_code == 200

    payment.refresh_from_db()
    apartment.refresh_from_db()
    assert payment.status == 'refunded'
    assert apartment.availability is True
