from datetime import timedelta

from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from accounts.permissions import IsAdmin, IsApprovedAgent, IsUser
from analytics.models import ActivityLog
from utils.response_utils import percentage
from utils.routing import UUID_PATTERN, get_or_404
from . import services
from .filters import PaymentFilter
from .models import Payment
from .serializers import (
    PaymentCreateSerializer, PaymentSerializer, RefundDecisionSerializer, RefundRequestSerializer,
)


def payment_counts(queryset):
    return queryset.aggregate(
        total_payments=Count('id'),
        completed_payments=Count('id', filter=Q(status='completed')),
        pending_payments=Count('id', filter=Q(status='pending')),
        failed_payments=Count('id', filter=Q(status='failed')),
        refunded_payments=Count('id', filter=Q(status='refunded')),
        pending_refunds=Count('id', filter=Q(status='refund_pending', refund_requested=True)),
        total_revenue=Sum('amount', filter=Q(status='completed')),
    )


class PaymentViewSet(viewsets.GenericViewSet):
    serializer_class = PaymentSerializer
    filterset_class = PaymentFilter
    lookup_value_regex = UUID_PATTERN
    ordering = ['-created_at']

    USER_ACTIONS = ('create', 'list', 'my_payments', 'refund')
    AGENT_ACTIONS = ('agent_payments', 'agent_stats')
    ADMIN_ACTIONS = ('admin_all', 'admin_refund', 'admin_stats', 'admin_delete')

    def get_permissions(self):
        if self.action in self.USER_ACTIONS:
            return [IsUser()]
        if self.action in self.AGENT_ACTIONS:
            return [IsApprovedAgent()]
        if self.action in self.ADMIN_ACTIONS:
            return [IsAdmin()]
        return super().get_permissions()

    def get_queryset(self):
        return Payment.objects.select_related('user', 'apartment', 'booking')

    def get_payment(self, payment_id):
        return get_or_404(self.get_queryset(), 'Payment not found', pk=payment_id)

    def list_response(self, queryset):
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    def create(self, request):
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        payment = services.create_payment(
            request.user,
            data['booking_id'],
            data['amount'],
            data['payment_method'],
            payment_details=data.get('payment_details'),
            request=request,
        )
        return Response({
            'message': 'Payment initiated successfully',
            'payment': self.get_serializer(payment).data
        }, status=status.HTTP_201_CREATED)

    def list(self, request):
        return self.list_response(self.get_queryset().filter(user=request.user).order_by('-created_at'))

    @action(detail=False, methods=['get'], url_path='my-payments')
    def my_payments(self, request):
        return self.list(request)

    def retrieve(self, request, pk=None):
        payment = self.get_payment(pk)
        if not payment.is_visible_to(request.user):
            raise PermissionDenied('Not authorized to view this payment')
        return Response(self.get_serializer(payment).data)

    @action(detail=True, methods=['post'])
    def refund(self, request, pk=None):
        serializer = RefundRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        payment = services.request_refund(
            self.get_payment(pk), request.user,
            reason=serializer.validated_data.get('reason', ''), request=request
        )
        return Response({
            'message': 'Refund request submitted successfully',
            'payment': self.get_serializer(payment).data
        })

    @action(detail=False, methods=['get'], url_path='agent/payments')
    def agent_payments(self, request):
        queryset = self.get_queryset().filter(apartment__agent=request.user)
        payment_status = request.query_params.get('status')
        if payment_status:
            queryset = queryset.filter(status=payment_status)
        return self.list_response(queryset.order_by('-created_at'))

    @action(detail=False, methods=['get'], url_path='agent/stats')
    def agent_stats(self, request):
        stats = payment_counts(Payment.objects.filter(apartment__agent=request.user))
        stats['total_revenue'] = stats['total_revenue'] or 0
        stats['success_rate'] = percentage(stats['completed_payments'], stats['total_payments'])
        return Response(stats)

    @action(detail=False, methods=['get'], url_path='admin/all')
    def admin_all(self, request):
        return self.list_response(self.filter_queryset(self.get_queryset()))

    @action(detail=False, methods=['put'], url_path=f'admin/(?P<payment_id>{UUID_PATTERN})/refund')
    def admin_refund(self, request, payment_id=None):
        serializer = RefundDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        decision = serializer.validated_data['action']
        payment = services.process_refund(
            self.get_payment(payment_id), request.user, decision,
            notes=serializer.validated_data.get('notes', ''), request=request
        )
        return Response({
            'message': f"Refund {'approved' if decision == 'approve' else 'rejected'} successfully",
            'payment': self.get_serializer(payment).data
        })

    @action(detail=False, methods=['get'], url_path='admin/stats')
    def admin_stats(self, request):
        stats = payment_counts(Payment.objects.all())
        stats['total_revenue'] = stats['total_revenue'] or 0

        completed = Payment.objects.filter(status='completed')
        six_months_ago = timezone.now() - timedelta(days=183)
        stats['revenue_by_month'] = [
            {
                'month': row['month'].strftime('%Y-%m'),
                'total': row['total'],
                'count': row['count'],
            }
            for row in completed.filter(created_at__gte=six_months_ago)
            .annotate(month=TruncMonth('created_at'))
            .values('month')
            .annotate(total=Sum('amount'), count=Count('id'))
            .order_by('month')
        ]
        stats['popular_payment_methods'] = list(
            completed.values('payment_method')
            .annotate(count=Count('id'))
            .order_by('-count')
        )
        stats['success_rate'] = percentage(stats['completed_payments'], stats['total_payments'])
        return Response(stats)

    @action(detail=False, methods=['delete'], url_path=f'admin/(?P<payment_id>{UUID_PATTERN})')
    def admin_delete(self, request, payment_id=None):
        payment = self.get_payment(payment_id)
        ActivityLog.record('payment_deleted', actor=request.user, resource=payment,
                           details={'transaction_id': payment.transaction_id}, request=request)
        payment.delete()
        return Response({'message': 'Payment deleted successfully'})
