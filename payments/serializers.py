from decimal import Decimal
from rest_framework import serializers

from accounts.serializers import PrincipalSummarySerializer
from apartments.serializers import ApartmentListSerializer
from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    user = PrincipalSummarySerializer(read_only=True)
    apartment = ApartmentListSerializer(read_only=True)
    booking_status = serializers.CharField(source='booking.status', read_only=True, default=None)

    class Meta:
        model = Payment
        fields = [
            'id', 'user', 'apartment', 'booking', 'booking_status', 'amount',
            'currency', 'payment_method', 'status', 'transaction_id',
            'payment_details', 'refund_requested', 'refund_reason',
            'refund_requested_at', 'refund_processed_at', 'refund_notes',
            'settle_after', 'paid_at', 'failed_at', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class PaymentCreateSerializer(serializers.Serializer):
    booking_id = serializers.UUIDField(
        error_messages={'required': 'Booking ID, amount, and payment method are required'}
    )
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2,
        error_messages={'required': 'Booking ID, amount, and payment method are required'}
    )
    payment_method = serializers.ChoiceField(
        choices=Payment.METHOD_CHOICES,
        error_messages={'required': 'Booking ID, amount, and payment method are required'}
    )
    payment_details = serializers.JSONField(required=False)

    def validate_amount(self, value):
        if value <= Decimal('0'):
            raise serializers.ValidationError("Amount must be greater than zero")
        return value


class RefundRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class RefundDecisionSerializer(serializers.Serializer):
    action = serializers.CharField()
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)

    def validate_action(self, value):
        if value not in ('approve', 'reject'):
            raise serializers.ValidationError("Action must be 'approve' or 'reject'")
        return value
