from utils.email_utils import EmailService


def send_booking_status_email(booking):
    apartment = booking.apartment
    return EmailService.queue(
        'booking_status',
        {
            'name': booking.user.name,
            'status': booking.status,
            'location': apartment.location if apartment else '',
            'booking_id': str(booking.id),
        },
        booking.user.email,
        f'Your booking has been {booking.status}',
    )
