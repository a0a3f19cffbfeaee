from rest_framework import serializers
from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            'id', 'notification_type', 'title', 'message', 'is_read',
            'read_at', 'is_archived', 'priority', 'related_model',
            'related_id', 'metadata', 'action_url', 'expires_at', 'created_at'
        ]
        read_only_fields = fields


class NotificationSettingsSerializer(serializers.Serializer):
    email = serializers.BooleanField(source='notify_email', required=False)
    sms = serializers.BooleanField(source='notify_sms', required=False)
    push = serializers.BooleanField(source='notify_push', required=False)
    newsletter = serializers.BooleanField(required=False)

    def update(self, instance, validated_data):
        for field, value in validated_data.items():
            setattr(instance, field, value)
        instance.save(update_fields=[*validated_data, 'updated_at'])
        return instance


class BroadcastSerializer(serializers.Serializer):
    title = serializers.CharField(
        max_length=100,
        error_messages={'required': 'Title and message are required', 'blank': 'Title and message are required'}
    )
    message = serializers.CharField(
        max_length=500,
        error_messages={'required': 'Title and message are required', 'blank': 'Title and message are required'}
    )
    notification_type = serializers.ChoiceField(
        choices=Notification.NOTIFICATION_TYPES, required=False, default='system'
    )
    priority = serializers.ChoiceField(
        choices=Notification.PRIORITY_CHOICES, required=False, default='medium'
    )
