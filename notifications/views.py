from datetime import timedelta

from django.db.models import Count
from django.db.models.functions import TruncDate
from django.utils import timezone
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from accounts.models import User
from accounts.permissions import IsAdmin, IsUser
from utils.response_utils import percentage
from utils.routing import UUID_PATTERN, get_or_404
from utils.throttling import BroadcastThrottle
from .models import Notification
from .serializers import BroadcastSerializer, NotificationSerializer, NotificationSettingsSerializer
from .tasks import broadcast_notification

TRUE_VALUES = ('true', '1', 'yes')


class NotificationViewSet(viewsets.GenericViewSet):
    """Inbox for whichever principal is signed in"""
    serializer_class = NotificationSerializer
    lookup_value_regex = UUID_PATTERN

    ADMIN_ACTIONS = ('broadcast', 'admin_stats')

    def get_permissions(self):
        if self.action == 'notification_settings':
            return [IsUser()]
        if self.action in self.ADMIN_ACTIONS:
            return [IsAdmin()]
        return super().get_permissions()

    def get_throttles(self):
        if self.action == 'broadcast':
            return [BroadcastThrottle()]
        return super().get_throttles()

    def get_queryset(self):
        return Notification.objects.for_principal(self.request.user)

    def get_notification(self, notification_id, verb):
        notification = get_or_404(Notification, 'Notification not found', pk=notification_id)
        if not notification.belongs_to(self.request.user):
            raise PermissionDenied(f'Not authorized to {verb} this notification')
        return notification

    def list(self, request):
        queryset = self.get_queryset().live()
        is_read = request.query_params.get('is_read')
        if is_read is not None:
            queryset = queryset.filter(is_read=is_read.lower() in TRUE_VALUES)
        notification_type = request.query_params.get('type')
        if notification_type:
            queryset = queryset.filter(notification_type=notification_type)

        unread_count = self.get_queryset().live().filter(is_read=False).count()
        page = self.paginate_queryset(queryset)
        if page is not None:
            response = self.get_paginated_response(self.get_serializer(page, many=True).data)
        else:
            response = Response({'results': self.get_serializer(queryset, many=True).data})
        response.data['unread_count'] = unread_count
        return response

    @action(detail=True, methods=['put'])
    def read(self, request, pk=None):
        notification = self.get_notification(pk, 'update')
        notification.mark_read()
        return Response({
            'message': 'Notification marked as read',
            'notification': self.get_serializer(notification).data
        })

    @action(detail=False, methods=['put'], url_path='read-all')
    def read_all(self, request):
        updated = self.get_queryset().filter(is_read=False).update(is_read=True, read_at=timezone.now())
        return Response({'message': 'All notifications marked as read', 'count': updated})

    @action(detail=True, methods=['put'])
    def archive(self, request, pk=None):
        notification = self.get_notification(pk, 'archive')
        notification.is_archived = True
        notification.save(update_fields=['is_archived'])
        return Response({
            'message': 'Notification archived',
            'notification': self.get_serializer(notification).data
        })

    def destroy(self, request, pk=None):
        notification = self.get_notification(pk, 'delete')
        notification.delete()
        return Response({'message': 'Notification deleted successfully'})

    def clear(self, request):
        deleted, _ = self.get_queryset().delete()
        return Response({'message': 'All notifications cleared', 'count': deleted})

    @action(detail=False, methods=['get', 'put'], url_path='settings')
    def notification_settings(self, request):
        if request.method == 'GET':
            return Response(request.user.notification_settings)

        serializer = NotificationSettingsSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response({
            'message': 'Notification settings updated successfully',
            'settings': user.notification_settings
        })

    @action(detail=False, methods=['post'], url_path='admin/broadcast')
    def broadcast(self, request):
        serializer = BroadcastSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        recipients = User.objects.count()
        broadcast_notification.delay(**serializer.validated_data)

        return Response({
            'message': f'Broadcast notification sent to {recipients} users',
            'count': recipients
        })

    @action(detail=False, methods=['get'], url_path='admin/stats')
    def admin_stats(self, request):
        total = Notification.objects.count()
        read = Notification.objects.filter(is_read=True).count()
        by_type = (
            Notification.objects.values('notification_type')
            .annotate(count=Count('id'))
            .order_by('-count')
        )
        recent_activity = (
            Notification.objects.filter(created_at__gte=timezone.now() - timedelta(days=7))
            .annotate(day=TruncDate('created_at'))
            .values('day')
            .annotate(count=Count('id'))
            .order_by('day')
        )
        return Response({
            'total_notifications': total,
            'read_notifications': read,
            'unread_notifications': total - read,
            'read_rate': percentage(read, total),
            'notifications_by_type': [
                {'type': row['notification_type'], 'count': row['count']} for row in by_type
            ],
            'recent_activity': [
                {'date': row['day'].isoformat(), 'count': row['count']} for row in recent_activity
            ],
        })
