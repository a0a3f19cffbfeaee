from rest_framework import serializers
from .models import ActivityLog, AnalyticsSnapshot


class ActivityLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = ActivityLog
        fields = [
            'id', 'action', 'actor_role', 'actor_id', 'resource_type',
            'resource_id', 'details', 'created_at'
        ]


class AnalyticsSnapshotSerializer(serializers.ModelSerializer):
    class Meta:
        model = AnalyticsSnapshot
        fields = '__all__'


class GenerateAnalyticsSerializer(serializers.Serializer):
    type = serializers.CharField(required=False, default='daily')
    date = serializers.DateField(required=False)

    def validate_type(self, value):
        if value != 'daily':
            raise serializers.ValidationError('Only daily analytics generation is supported')
        return value
