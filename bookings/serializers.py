from django.utils import timezone
from rest_framework import serializers

from accounts.serializers import PrincipalSummarySerializer
from apartments.serializers import ApartmentListSerializer
from .models import Booking


class BookingSerializer(serializers.ModelSerializer):
    user = PrincipalSummarySerializer(read_only=True)
    apartment = ApartmentListSerializer(read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id', 'user', 'apartment', 'status', 'status_display',
            'payment_status', 'payment_amount', 'payment_date', 'check_in',
            'check_out', 'notes', 'approved_at', 'rejected_at', 'cancelled_at',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Booking
        fields = ['check_in', 'check_out', 'notes']

    def validate(self, attrs):
        check_in = attrs.get('check_in')
        check_out = attrs.get('check_out')
        if check_in and check_out and check_out <= check_in:
            raise serializers.ValidationError("Check-out date must be after check-in date")

        if check_in and check_in < timezone.now().date():
            raise serializers.ValidationError("Check-in date cannot be in the past")

        return attrs


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.CharField()

    def validate_status(self, value):
        if value not in ('approved', 'rejected', 'cancelled'):
            raise serializers.ValidationError("Invalid status")
        return value
