from django.db.models import Count, Q
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
import logging

from accounts.permissions import IsAdmin, IsApprovedAgent, IsUser
from apartments.models import Apartment
from notifications.services import NotificationService
from utils.response_utils import percentage
from utils.routing import UUID_PATTERN, get_or_404
from .filters import InspectionFilter
from .models import InspectionRequest
from .serializers import (
    InspectionCompleteSerializer, InspectionRequestSerializer, InspectionSerializer,
    InspectionStatusSerializer, RescheduleSerializer,
)

logger = logging.getLogger('estate.inspections')


def status_counts(queryset):
    return queryset.aggregate(
        total=Count('id'),
        pending=Count('id', filter=Q(status='pending')),
        approved=Count('id', filter=Q(status='approved')),
        rejected=Count('id', filter=Q(status='rejected')),
        completed=Count('id', filter=Q(status='completed')),
        cancelled=Count('id', filter=Q(status='cancelled')),
    )


class InspectionViewSet(viewsets.GenericViewSet):
    serializer_class = InspectionSerializer
    filterset_class = InspectionFilter
    lookup_value_regex = UUID_PATTERN
    ordering = ['-created_at']

    USER_ACTIONS = ('request_inspection', 'my_inspections', 'destroy', 'reschedule')
    AGENT_ACTIONS = ('agent_requests', 'agent_status', 'agent_complete', 'agent_stats')
    ADMIN_ACTIONS = ('admin_all', 'admin_stats')

    def get_permissions(self):
        if self.action in self.USER_ACTIONS:
            return [IsUser()]
        if self.action in self.AGENT_ACTIONS:
            return [IsApprovedAgent()]
        if self.action in self.ADMIN_ACTIONS:
            return [IsAdmin()]
        return super().get_permissions()

    def get_queryset(self):
        return InspectionRequest.objects.select_related('user', 'agent', 'apartment')

    def get_inspection(self, inspection_id):
        return get_or_404(self.get_queryset(), 'Inspection request not found', pk=inspection_id)

    def list_response(self, queryset):
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    @action(detail=False, methods=['post'], url_path='request')
    def request_inspection(self, request):
        serializer = InspectionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        apartment = get_or_404(
            Apartment.objects.select_related('agent'), 'Apartment not found', pk=data['apartment_id']
        )
        if not apartment.availability:
            return Response(
                {'error': 'Apartment is not available for inspection'},
                status=status.HTTP_400_BAD_REQUEST
            )

        if InspectionRequest.objects.filter(
            user=request.user, apartment=apartment, status='pending'
        ).exists():
            return Response(
                {'error': 'You already have a pending inspection request for this apartment'},
                status=status.HTTP_400_BAD_REQUEST
            )

        inspection = InspectionRequest.objects.create(
            user=request.user,
            agent=apartment.agent,
            apartment=apartment,
            date=data['date'],
            time=data.get('time') or '10:00 AM',
            message=data.get('message', ''),
        )
        NotificationService.notify_inspection_request(inspection)
        logger.info(f"Inspection {inspection.id} requested for apartment {apartment.id}")

        return Response({
            'message': 'Inspection request submitted successfully',
            'inspection': self.get_serializer(inspection).data
        }, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'], url_path='my-inspections')
    def my_inspections(self, request):
        queryset = self.get_queryset().filter(user=request.user).order_by('-date')
        return Response({
            'count': queryset.count(),
            'inspections': self.get_serializer(queryset, many=True).data
        })

    def retrieve(self, request, pk=None):
        inspection = self.get_inspection(pk)
        if not inspection.is_visible_to(request.user):
            return Response(
                {'error': 'Not authorized to view this inspection request'},
                status=status.HTTP_403_FORBIDDEN
            )
        return Response(self.get_serializer(inspection).data)

    def destroy(self, request, pk=None):
        """Cancel a pending request"""
        inspection = self.get_inspection(pk)
        if inspection.user_id != request.user.pk:
            return Response(
                {'error': 'Not authorized to cancel this inspection request'},
                status=status.HTTP_403_FORBIDDEN
            )
        if inspection.status != 'pending':
            return Response(
                {'error': f'Cannot cancel a request that is already {inspection.status}'},
                status=status.HTTP_400_BAD_REQUEST
            )

        inspection.status = 'cancelled'
        inspection.save(update_fields=['status', 'updated_at'])
        NotificationService.notify_inspection_changed_by_user(inspection, 'cancelled')

        return Response({'message': 'Inspection request cancelled successfully'})

    @action(detail=True, methods=['put'])
    def reschedule(self, request, pk=None):
        serializer = RescheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        inspection = self.get_inspection(pk)
        if inspection.user_id != request.user.pk:
            return Response(
                {'error': 'Not authorized to reschedule this inspection request'},
                status=status.HTTP_403_FORBIDDEN
            )
        if inspection.status != 'pending':
            return Response(
                {'error': f'Cannot reschedule a request that is already {inspection.status}'},
                status=status.HTTP_400_BAD_REQUEST
            )

        inspection.date = serializer.validated_data['date']
        if serializer.validated_data.get('time'):
            inspection.time = serializer.validated_data['time']
        inspection.status = 'pending'
        inspection.save(update_fields=['date', 'time', 'status', 'updated_at'])
        NotificationService.notify_inspection_changed_by_user(inspection, 'rescheduled')

        return Response({
            'message': 'Inspection request rescheduled successfully',
            'inspection': self.get_serializer(inspection).data
        })

    @action(detail=False, methods=['get'], url_path='agent/requests')
    def agent_requests(self, request):
        queryset = self.get_queryset().filter(agent=request.user)
        inspection_status = request.query_params.get('status')
        if inspection_status:
            queryset = queryset.filter(status=inspection_status)
        return self.list_response(queryset.order_by('date'))

    @action(detail=False, methods=['put'], url_path=f'agent/(?P<inspection_id>{UUID_PATTERN})/status')
    def agent_status(self, request, inspection_id=None):
        serializer = InspectionStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        inspection = self.get_inspection(inspection_id)
        if inspection.agent_id != request.user.pk:
            return Response(
                {'error': 'Not authorized to update this inspection request'},
                status=status.HTTP_403_FORBIDDEN
            )
        if not inspection.can_be_decided():
            return Response(
                {'error': f'Cannot update a request that is already {inspection.status}'},
                status=status.HTTP_400_BAD_REQUEST
            )

        inspection.status = serializer.validated_data['status']
        if inspection.status == 'rejected':
            inspection.rejection_reason = serializer.validated_data.get('rejection_reason', '')
        inspection.save(update_fields=['status', 'rejection_reason', 'updated_at'])
        NotificationService.notify_inspection_update(inspection)

        return Response({
            'message': f'Inspection request {inspection.status} successfully',
            'inspection': self.get_serializer(inspection).data
        })

    @action(detail=False, methods=['put'], url_path=f'agent/(?P<inspection_id>{UUID_PATTERN})/complete')
    def agent_complete(self, request, inspection_id=None):
        serializer = InspectionCompleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        inspection = self.get_inspection(inspection_id)
        if inspection.agent_id != request.user.pk:
            return Response(
                {'error': 'Not authorized to complete this inspection'},
                status=status.HTTP_403_FORBIDDEN
            )
        if not inspection.can_be_completed():
            return Response(
                {'error': 'Only approved inspections can be marked as completed'},
                status=status.HTTP_400_BAD_REQUEST
            )

        inspection.status = 'completed'
        inspection.completion_notes = serializer.validated_data.get('completion_notes', '')
        inspection.follow_up_required = serializer.validated_data['follow_up_required']
        inspection.completed_at = timezone.now()
        inspection.save(update_fields=[
            'status', 'completion_notes', 'follow_up_required', 'completed_at', 'updated_at'
        ])
        NotificationService.notify_inspection_update(inspection)

        return Response({
            'message': 'Inspection marked as completed',
            'inspection': self.get_serializer(inspection).data
        })

    @action(detail=False, methods=['get'], url_path='agent/stats')
    def agent_stats(self, request):
        queryset = InspectionRequest.objects.filter(agent=request.user)
        stats = status_counts(queryset)
        stats['upcoming'] = queryset.filter(
            status='approved', date__gte=timezone.localdate()
        ).count()
        stats['follow_ups'] = queryset.filter(follow_up_required=True).count()
        return Response(stats)

    @action(detail=False, methods=['get'], url_path='admin/all')
    def admin_all(self, request):
        return self.list_response(self.filter_queryset(self.get_queryset()))

    @action(detail=False, methods=['get'], url_path='admin/stats')
    def admin_stats(self, request):
        stats = status_counts(InspectionRequest.objects.all())
        stats['completion_rate'] = percentage(stats['completed'], stats['total'])
        return Response(stats)
