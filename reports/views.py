from datetime import timedelta

from django.db.models import Case, Count, IntegerField, Q, Value, When
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
import logging

from accounts.models import Agent
from accounts.permissions import IsAdmin, IsApprovedAgent, IsUser
from analytics.models import ActivityLog
from apartments.models import Apartment
from notifications.services import NotificationService
from utils.response_utils import percentage
from utils.routing import UUID_PATTERN, get_or_404
from .filters import ReportFilter
from .models import Report
from .serializers import (
    ReportAssignSerializer, ReportCreateSerializer, ReportEscalateSerializer,
    ReportPrioritySerializer, ReportResolveSerializer, ReportResponseSerializer,
    ReportSerializer, ReportStatusSerializer,
)

logger = logging.getLogger('estate.reports')

# Window in which a user may not re-report the same apartment
DUPLICATE_WINDOW = timedelta(hours=24)

PRIORITY_RANK = Case(
    When(priority='high', then=Value(0)),
    When(priority='medium', then=Value(1)),
    default=Value(2),
    output_field=IntegerField(),
)


class ReportViewSet(viewsets.GenericViewSet):
    serializer_class = ReportSerializer
    filterset_class = ReportFilter
    lookup_value_regex = UUID_PATTERN

    USER_ACTIONS = ('create', 'my_reports')
    AGENT_ACTIONS = ('agent_reports', 'agent_respond', 'agent_resolve')
    ADMIN_ACTIONS = (
        'admin_all', 'admin_stats', 'admin_status', 'admin_priority',
        'admin_assign', 'admin_escalate', 'admin_delete',
    )

    def get_permissions(self):
        if self.action in self.USER_ACTIONS:
            return [IsUser()]
        if self.action in self.AGENT_ACTIONS:
            return [IsApprovedAgent()]
        if self.action in self.ADMIN_ACTIONS:
            return [IsAdmin()]
        return super().get_permissions()

    def get_queryset(self):
        return Report.objects.select_related('user', 'apartment', 'agent', 'assigned_to')

    def get_report(self, report_id):
        return get_or_404(self.get_queryset(), 'Report not found', pk=report_id)

    def list_response(self, queryset):
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    def by_priority(self, queryset):
        return queryset.annotate(priority_rank=PRIORITY_RANK).order_by('priority_rank', '-created_at')

    def create(self, request):
        serializer = ReportCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        apartment = get_or_404(
            Apartment.objects.select_related('agent'), 'Apartment not found', pk=data['apartment_id']
        )

        if Report.objects.filter(
            user=request.user,
            apartment=apartment,
            status='open',
            created_at__gte=timezone.now() - DUPLICATE_WINDOW,
        ).exists():
            return Response(
                {'error': 'You have already reported this apartment recently'},
                status=status.HTTP_400_BAD_REQUEST
            )

        report = Report.objects.create(
            user=request.user,
            apartment=apartment,
            agent=apartment.agent,
            message=data['message'],
            report_type=data['report_type'],
            priority=Report.initial_priority(data['report_type']),
        )
        ActivityLog.record('report_created', actor=request.user, resource=report,
                           details={'apartment_id': str(apartment.pk), 'type': report.report_type},
                           request=request)
        NotificationService.notify_report_filed(report)
        logger.info(f"Report {report.id} filed on apartment {apartment.pk}")

        return Response({
            'message': 'Report submitted successfully',
            'report': self.get_serializer(report).data
        }, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'], url_path='my-reports')
    def my_reports(self, request):
        queryset = self.get_queryset().filter(user=request.user).order_by('-created_at')
        return Response({
            'count': queryset.count(),
            'reports': self.get_serializer(queryset, many=True).data
        })

    def retrieve(self, request, pk=None):
        report = self.get_report(pk)
        if not report.is_visible_to(request.user):
            return Response(
                {'error': 'Not authorized to view this report'},
                status=status.HTTP_403_FORBIDDEN
            )
        return Response(self.get_serializer(report).data)

    @action(detail=False, methods=['get'], url_path='agent/reports')
    def agent_reports(self, request):
        queryset = self.get_queryset().filter(
            Q(agent=request.user) | Q(assigned_to=request.user)
        )
        report_status = request.query_params.get('status')
        if report_status:
            queryset = queryset.filter(status=report_status)
        return self.list_response(self.by_priority(queryset))

    @action(detail=False, methods=['put'], url_path=f'agent/(?P<report_id>{UUID_PATTERN})/respond')
    def agent_respond(self, request, report_id=None):
        serializer = ReportResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        report = self.get_report(report_id)
        if not report.is_handled_by(request.user):
            return Response(
                {'error': 'Not authorized to respond to this report'},
                status=status.HTTP_403_FORBIDDEN
            )

        report.agent_response = serializer.validated_data['response']
        report.responded_at = timezone.now()
        report.status = 'in_progress'
        report.save(update_fields=['agent_response', 'responded_at', 'status', 'updated_at'])
        ActivityLog.record('report_responded', actor=request.user, resource=report, request=request)
        NotificationService.notify_report_update(report, 'The agent responded to your report')

        return Response({
            'message': 'Response submitted successfully',
            'report': self.get_serializer(report).data
        })

    @action(detail=False, methods=['put'], url_path=f'agent/(?P<report_id>{UUID_PATTERN})/resolve')
    def agent_resolve(self, request, report_id=None):
        serializer = ReportResolveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        report = self.get_report(report_id)
        if not report.is_handled_by(request.user):
            return Response(
                {'error': 'Not authorized to resolve this report'},
                status=status.HTTP_403_FORBIDDEN
            )

        self.mark_resolved(report, serializer.validated_data.get('resolution_notes', ''))
        ActivityLog.record('report_resolved', actor=request.user, resource=report, request=request)
        NotificationService.notify_report_update(report, 'Your report has been resolved')

        return Response({
            'message': 'Report marked as resolved',
            'report': self.get_serializer(report).data
        })

    def mark_resolved(self, report, notes):
        report.status = 'resolved'
        report.resolution_notes = notes
        report.resolved_at = timezone.now()
        report.save(update_fields=['status', 'resolution_notes', 'resolved_at', 'updated_at'])

    @action(detail=False, methods=['get'], url_path='admin/all')
    def admin_all(self, request):
        return self.list_response(self.by_priority(self.filter_queryset(self.get_queryset())))

    @action(detail=False, methods=['get'], url_path='admin/stats')
    def admin_stats(self, request):
        stats = Report.objects.aggregate(
            total=Count('id'),
            open=Count('id', filter=Q(status='open')),
            in_progress=Count('id', filter=Q(status='in_progress')),
            assigned=Count('id', filter=Q(status='assigned')),
            resolved=Count('id', filter=Q(status='resolved')),
            closed=Count('id', filter=Q(status='closed')),
            high_priority=Count('id', filter=Q(priority='high')),
            escalated=Count('id', filter=Q(escalated=True)),
        )
        stats['by_type'] = {
            row['report_type']: row['count']
            for row in Report.objects.values('report_type').annotate(count=Count('id'))
        }
        stats['resolution_rate'] = percentage(stats['resolved'], stats['total'])
        return Response(stats)

    @action(detail=False, methods=['put'], url_path=f'admin/(?P<report_id>{UUID_PATTERN})/status')
    def admin_status(self, request, report_id=None):
        serializer = ReportStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = self.get_report(report_id)
        new_status = serializer.validated_data['status']

        if new_status == 'resolved':
            self.mark_resolved(report, serializer.validated_data.get('resolution_notes', ''))
        else:
            report.status = 'open'
            report.resolved_at = None
            report.save(update_fields=['status', 'resolved_at', 'updated_at'])

        ActivityLog.record('report_status_changed', actor=request.user, resource=report,
                           details={'status': new_status}, request=request)
        NotificationService.notify_report_update(report, f'Your report is now {new_status}')

        return Response({
            'message': 'Report status updated successfully',
            'report': self.get_serializer(report).data
        })

    @action(detail=False, methods=['put'], url_path=f'admin/(?P<report_id>{UUID_PATTERN})/priority')
    def admin_priority(self, request, report_id=None):
        serializer = ReportPrioritySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = self.get_report(report_id)

        report.priority = serializer.validated_data['priority']
        report.save(update_fields=['priority', 'updated_at'])

        return Response({
            'message': 'Report priority updated successfully',
            'report': self.get_serializer(report).data
        })

    @action(detail=False, methods=['put'], url_path=f'admin/(?P<report_id>{UUID_PATTERN})/assign')
    def admin_assign(self, request, report_id=None):
        serializer = ReportAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = self.get_report(report_id)
        agent = get_or_404(Agent, 'Agent not found', pk=serializer.validated_data['agent_id'])

        report.assigned_to = agent
        report.assigned_at = timezone.now()
        report.status = 'assigned'
        report.save(update_fields=['assigned_to', 'assigned_at', 'status', 'updated_at'])
        ActivityLog.record('report_assigned', actor=request.user, resource=report,
                           details={'agent_id': str(agent.pk)}, request=request)
        NotificationService.notify_report_assigned(report)

        return Response({
            'message': 'Report assigned to agent successfully',
            'report': self.get_serializer(report).data
        })

    @action(detail=False, methods=['put'], url_path=f'admin/(?P<report_id>{UUID_PATTERN})/escalate')
    def admin_escalate(self, request, report_id=None):
        serializer = ReportEscalateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = self.get_report(report_id)

        report.escalated = True
        report.priority = 'high'
        report.escalation_notes = serializer.validated_data.get('escalation_notes', '')
        report.escalated_at = timezone.now()
        report.save(update_fields=[
            'escalated', 'priority', 'escalation_notes', 'escalated_at', 'updated_at'
        ])
        ActivityLog.record('report_escalated', actor=request.user, resource=report, request=request)

        return Response({
            'message': 'Report escalated successfully',
            'report': self.get_serializer(report).data
        })

    @action(detail=False, methods=['delete'], url_path=f'admin/(?P<report_id>{UUID_PATTERN})')
    def admin_delete(self, request, report_id=None):
        report = self.get_report(report_id)
        report.delete()
        return Response({'message': 'Report deleted successfully'})
