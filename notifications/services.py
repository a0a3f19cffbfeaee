import logging
from .models import Notification

logger = logging.getLogger('estate.notifications')


class NotificationService:
    """Service for creating notifications"""

    @staticmethod
    def create_notification(recipient, title, message, notification_type='system',
                            priority='medium', related=None, action_url='',
                            metadata=None, expires_at=None):
        """Create a new notification for any principal"""
        if recipient is None:
            return None

        notification = Notification(
            recipient_role=recipient.role,
            recipient_id=recipient.pk,
            title=title[:100],
            message=message[:500],
            notification_type=notification_type,
            priority=priority,
            action_url=action_url,
            metadata=metadata or {},
            expires_at=expires_at,
        )
        if related is not None:
            notification.related_model = related.__class__.__name__
            notification.related_id = related.pk
        notification.save()
        return notification

    @staticmethod
    def notify_agent_status(agent):
        approved = agent.status == 'approved'
        return NotificationService.create_notification(
            recipient=agent,
            title="Account Approved" if approved else "Account Update",
            message=(
                "Your agent account has been approved. You can now list apartments."
                if approved else
                "Your agent application was not approved."
            ),
            notification_type='system',
            priority='high',
        )

    @staticmethod
    def notify_booking_request(booking):
        """Notify the listing agent of a new booking request"""
        apartment = booking.apartment
        return NotificationService.create_notification(
            recipient=apartment.agent,
            title="New Booking Request",
            message=f"{booking.user.name} requested to book your apartment in {apartment.location}",
            notification_type='booking',
            priority='high',
            related=booking,
            action_url=f'/agent/bookings/{booking.id}',
            metadata={
                'apartment_id': str(apartment.id),
                'user_id': str(booking.user_id),
            }
        )

    @staticmethod
    def notify_booking_status(booking):
        """Notify the renter of an agent decision"""
        location = booking.apartment.location if booking.apartment else 'the apartment'
        messages = {
            'approved': f"Great news! Your booking for {location} has been approved",
            'rejected': f"Your booking request for {location} was not approved",
            'cancelled': f"Your booking for {location} has been cancelled",
        }
        return NotificationService.create_notification(
            recipient=booking.user,
            title=f"Booking {booking.status.title()}",
            message=messages.get(booking.status, f"Your booking is now {booking.status}"),
            notification_type='booking',
            priority='high' if booking.status == 'approved' else 'medium',
            related=booking,
            action_url=f'/bookings/{booking.id}',
        )

    @staticmethod
    def notify_booking_cancelled_by_user(booking):
        apartment = booking.apartment
        if apartment is None:
            return None
        return NotificationService.create_notification(
            recipient=apartment.agent,
            title="Booking Cancelled",
            message=f"{booking.user.name} cancelled their booking for {apartment.location}",
            notification_type='booking',
            metadata={'apartment_id': str(apartment.id)},
        )

    @staticmethod
    def notify_payment_completed(payment):
        return NotificationService.create_notification(
            recipient=payment.user,
            title="Payment Successful",
            message=f"Your payment of {payment.amount} {payment.currency} was completed. "
                    f"Transaction: {payment.transaction_id}",
            notification_type='payment',
            priority='high',
            related=payment,
            action_url=f'/payments/{payment.id}',
        )

    @staticmethod
    def notify_payment_failed(payment):
        return NotificationService.create_notification(
            recipient=payment.user,
            title="Payment Failed",
            message=f"Your payment {payment.transaction_id} could not be completed",
            notification_type='payment',
            priority='high',
            related=payment,
        )

    @staticmethod
    def notify_refund_requested(payment):
        """Tell every admin a refund is waiting for a decision"""
        from accounts.models import Admin

        for admin in Admin.objects.all():
            NotificationService.create_notification(
                recipient=admin,
                title="Refund Requested",
                message=f"{payment.user.name} requested a refund for {payment.transaction_id}",
                notification_type='payment',
                related=payment,
                action_url=f'/admin/payments/{payment.id}',
            )

    @staticmethod
    def notify_refund_processed(payment, approved):
        return NotificationService.create_notification(
            recipient=payment.user,
            title="Refund Approved" if approved else "Refund Rejected",
            message=(
                f"Your refund for {payment.transaction_id} has been approved"
                if approved else
                f"Your refund request for {payment.transaction_id} was rejected"
            ),
            notification_type='payment',
            priority='high',
            related=payment,
        )

    @staticmethod
    def notify_inspection_request(inspection):
        return NotificationService.create_notification(
            recipient=inspection.agent,
            title="New Inspection Request",
            message=f"{inspection.user.name} wants to inspect an apartment on "
                    f"{inspection.date.isoformat()} at {inspection.time}",
            notification_type='inspection',
            priority='high',
            related=inspection,
            action_url=f'/agent/inspections/{inspection.id}',
        )

    @staticmethod
    def notify_inspection_update(inspection):
        """Notify the renter of an agent decision or completion"""
        messages = {
            'approved': f"Your inspection on {inspection.date.isoformat()} has been approved",
            'rejected': "Your inspection request was declined"
                        + (f". Reason: {inspection.rejection_reason}" if inspection.rejection_reason else ""),
            'completed': "Your inspection has been marked as completed",
        }
        return NotificationService.create_notification(
            recipient=inspection.user,
            title=f"Inspection {inspection.status.title()}",
            message=messages.get(inspection.status, f"Your inspection is now {inspection.status}"),
            notification_type='inspection',
            related=inspection,
            action_url=f'/inspections/{inspection.id}',
        )

    @staticmethod
    def notify_inspection_changed_by_user(inspection, change):
        return NotificationService.create_notification(
            recipient=inspection.agent,
            title=f"Inspection {change.title()}",
            message=f"{inspection.user.name} {change} an inspection request for "
                    f"{inspection.date.isoformat()}",
            notification_type='inspection',
            related=inspection,
        )

    @staticmethod
    def notify_review_posted(review):
        if review.agent is None:
            return None
        return NotificationService.create_notification(
            recipient=review.agent,
            title="New Review",
            message=f"Your apartment received a {review.rating}-star review",
            notification_type='review',
            related=review,
        )

    @staticmethod
    def notify_review_response(review):
        return NotificationService.create_notification(
            recipient=review.author,
            title="Agent Responded",
            message="The agent responded to your review",
            notification_type='review',
            related=review,
        )

    @staticmethod
    def notify_report_filed(report):
        return NotificationService.create_notification(
            recipient=report.agent,
            title="New Report",
            message=f"A {report.report_type} report was filed on one of your apartments",
            notification_type='report',
            priority=report.priority,
            related=report,
        )

    @staticmethod
    def notify_report_update(report, message):
        return NotificationService.create_notification(
            recipient=report.user,
            title="Report Update",
            message=message,
            notification_type='report',
            related=report,
            action_url=f'/reports/{report.id}',
        )

    @staticmethod
    def notify_report_assigned(report):
        return NotificationService.create_notification(
            recipient=report.assigned_to,
            title="Report Assigned",
            message="A report has been assigned to you for follow up",
            notification_type='report',
            priority=report.priority,
            related=report,
        )
