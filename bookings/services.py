"""Booking transitions and the apartment availability they drive.

Availability is a single-slot flag on the apartment. Creating a booking claims
it with one conditional UPDATE; a rejected or cancelled booking releases it.
Releasing never checks for other bookings on the apartment: a user cancelling
a stale booking reopens the listing even if someone else holds it.
"""
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError
import logging

from analytics.models import ActivityLog
from apartments.models import Apartment
from notifications.services import NotificationService
from utils.exceptions import Conflict
from utils.routing import get_or_404
from .emails import send_booking_status_email
from .models import ACTIVE_BOOKING_STATUSES, Booking

logger = logging.getLogger('estate.bookings')

DUPLICATE_BOOKING = 'You already have a booking for this apartment'
NOT_AVAILABLE = 'Apartment is not available for booking'


def create_booking(user, apartment_id, check_in=None, check_out=None, notes='', request=None):
    apartment = get_or_404(
        Apartment.objects.select_related('agent'), 'Apartment not found', pk=apartment_id
    )

    if not apartment.availability:
        raise Conflict(NOT_AVAILABLE)
    if Booking.objects.filter(
        user=user, apartment=apartment, status__in=ACTIVE_BOOKING_STATUSES
    ).exists():
        raise Conflict(DUPLICATE_BOOKING)

    try:
        with transaction.atomic():
            if not Apartment.objects.claim(apartment.pk):
                raise Conflict(NOT_AVAILABLE)
            booking = Booking.objects.create(
                user=user,
                apartment=apartment,
                check_in=check_in,
                check_out=check_out,
                notes=notes,
            )
    except IntegrityError:
        # Lost the race on the one-active-booking constraint; the claim rolled back
        raise Conflict(DUPLICATE_BOOKING)

    apartment.availability = False
    ActivityLog.record('booking_created', actor=user, resource=booking,
                       details={'apartment_id': str(apartment.pk)}, request=request)
    NotificationService.notify_booking_request(booking)
    logger.info(f"Booking {booking.id} created for apartment {apartment.pk} by user {user.pk}")
    return booking


def cancel_booking(booking, user, request=None):
    """User cancellation: drop the booking and reopen the apartment"""
    if booking.user_id != user.pk:
        raise PermissionDenied('Not authorized to cancel this booking')

    apartment_id = booking.apartment_id
    with transaction.atomic():
        Apartment.objects.release(apartment_id)
        NotificationService.notify_booking_cancelled_by_user(booking)
        ActivityLog.record('booking_cancelled', actor=user, resource=booking,
                           details={'status': booking.status}, request=request)
        booking.delete()

    logger.info(f"Booking cancelled by user {user.pk}; apartment {apartment_id} released")


def set_booking_status(booking, agent, new_status, request=None):
    """Agent decision on a booking for one of their apartments"""
    if not booking.is_managed_by(agent):
        raise PermissionDenied('Not authorized to update this booking')

    if not booking.can_transition_to(new_status):
        raise ValidationError(f'Cannot change booking from {booking.status} to {new_status}')

    previous = booking.status
    now = timezone.now()
    booking.status = new_status
    if new_status == 'approved':
        booking.approved_at = now
    elif new_status == 'rejected':
        booking.rejected_at = now
    else:
        booking.cancelled_at = now

    with transaction.atomic():
        booking.save(update_fields=['status', 'approved_at', 'rejected_at', 'cancelled_at', 'updated_at'])
        if new_status in ('rejected', 'cancelled'):
            Apartment.objects.release(booking.apartment_id)
        ActivityLog.record(f'booking_{new_status}', actor=agent, resource=booking,
                           details={'previous_status': previous}, request=request)

    NotificationService.notify_booking_status(booking)
    send_booking_status_email(booking)
    return booking


def admin_delete_booking(booking, admin, request=None):
    """Only an approved booking was still holding the apartment"""
    with transaction.atomic():
        if booking.status == 'approved':
            Apartment.objects.release(booking.apartment_id)
        ActivityLog.record('booking_deleted', actor=admin, resource=booking,
                           details={'status': booking.status}, request=request)
        booking.delete()
