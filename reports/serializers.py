from rest_framework import serializers

from accounts.serializers import PrincipalSummarySerializer
from apartments.serializers import ApartmentListSerializer
from .models import Report


class ReportSerializer(serializers.ModelSerializer):
    user = PrincipalSummarySerializer(read_only=True)
    apartment = ApartmentListSerializer(read_only=True)
    assigned_to = PrincipalSummarySerializer(read_only=True)

    class Meta:
        model = Report
        fields = [
            'id', 'user', 'apartment', 'agent', 'message', 'report_type',
            'status', 'priority', 'agent_response', 'responded_at',
            'resolution_notes', 'resolved_at', 'assigned_to', 'assigned_at',
            'escalated', 'escalation_notes', 'escalated_at', 'created_at',
            'updated_at'
        ]
        read_only_fields = fields


class ReportCreateSerializer(serializers.Serializer):
    apartment_id = serializers.UUIDField(
        error_messages={'required': 'Apartment ID and message are required'}
    )
    message = serializers.CharField(
        max_length=1000,
        error_messages={
            'required': 'Apartment ID and message are required',
            'blank': 'Apartment ID and message are required',
        }
    )
    report_type = serializers.ChoiceField(choices=Report.TYPE_CHOICES, required=False, default='general')


class ReportResponseSerializer(serializers.Serializer):
    response = serializers.CharField(
        max_length=1000,
        error_messages={'required': 'Response message is required', 'blank': 'Response message is required'}
    )


class ReportResolveSerializer(serializers.Serializer):
    resolution_notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class ReportStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
    resolution_notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)

    def validate_status(self, value):
        if value not in ('open', 'resolved'):
            raise serializers.ValidationError("Status must be 'open' or 'resolved'")
        return value


class ReportPrioritySerializer(serializers.Serializer):
    priority = serializers.CharField()

    def validate_priority(self, value):
        if value not in ('low', 'medium', 'high'):
            raise serializers.ValidationError("Priority must be 'low', 'medium', or 'high'")
        return value


class ReportAssignSerializer(serializers.Serializer):
    agent_id = serializers.UUIDField(error_messages={'required': 'Agent ID is required'})


class ReportEscalateSerializer(serializers.Serializer):
    escalation_notes = serializers.CharField(required=False, allow_blank=True, max_length=500)
