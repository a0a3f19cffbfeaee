from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from accounts.serializers import PrincipalSummarySerializer
from apartments.serializers import ApartmentListSerializer
from utils.validators import CustomValidators
from .models import InspectionRequest


class InspectionSerializer(serializers.ModelSerializer):
    user = PrincipalSummarySerializer(read_only=True)
    agent = PrincipalSummarySerializer(read_only=True)
    apartment = ApartmentListSerializer(read_only=True)

    class Meta:
        model = InspectionRequest
        fields = [
            'id', 'user', 'agent', 'apartment', 'date', 'time', 'message',
            'status', 'rejection_reason', 'completion_notes',
            'follow_up_required', 'completed_at', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class InspectionRequestSerializer(serializers.Serializer):
    apartment_id = serializers.UUIDField(
        error_messages={'required': 'Apartment ID and inspection date are required'}
    )
    date = serializers.DateField(
        error_messages={'required': 'Apartment ID and inspection date are required'}
    )
    time = serializers.CharField(required=False, max_length=20)
    message = serializers.CharField(required=False, allow_blank=True, max_length=500)

    def validate_date(self, value):
        try:
            CustomValidators.validate_not_past(value, 'Inspection date must be in the future')
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages[0])
        return value


class RescheduleSerializer(serializers.Serializer):
    date = serializers.DateField(error_messages={'required': 'New date is required'})
    time = serializers.CharField(required=False, max_length=20)

    def validate_date(self, value):
        try:
            CustomValidators.validate_future(value, 'New inspection date must be in the future')
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages[0])
        return value


class InspectionStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
    rejection_reason = serializers.CharField(required=False, allow_blank=True, max_length=500)

    def validate_status(self, value):
        if value not in ('approved', 'rejected'):
            raise serializers.ValidationError("Invalid status. Must be 'approved' or 'rejected'")
        return value


class InspectionCompleteSerializer(serializers.Serializer):
    completion_notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    follow_up_required = serializers.BooleanField(required=False, default=False)
