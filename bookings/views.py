from django.db.models import Count, Q
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from accounts.permissions import IsAdmin, IsApprovedAgent, IsUser
from utils.response_utils import percentage
from utils.routing import UUID_PATTERN, get_or_404
from . import services
from .filters import BookingFilter
from .models import Booking
from .serializers import BookingCreateSerializer, BookingSerializer, BookingStatusSerializer


class BookingViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = BookingSerializer
    filterset_class = BookingFilter
    lookup_value_regex = UUID_PATTERN
    ordering = ['-created_at']

    USER_ACTIONS = ('book', 'my_bookings', 'destroy')
    AGENT_ACTIONS = ('agent_bookings', 'agent_status')
    ADMIN_ACTIONS = ('admin_all', 'admin_stats', 'admin_delete')

    def get_permissions(self):
        if self.action in self.USER_ACTIONS:
            return [IsUser()]
        if self.action in self.AGENT_ACTIONS:
            return [IsApprovedAgent()]
        if self.action in self.ADMIN_ACTIONS:
            return [IsAdmin()]
        return super().get_permissions()

    def get_queryset(self):
        return Booking.objects.select_related('user', 'apartment', 'apartment__agent')

    def get_booking(self, booking_id):
        return get_or_404(self.get_queryset(), 'Booking not found', pk=booking_id)

    def list_response(self, queryset):
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    def retrieve(self, request, pk=None):
        booking = self.get_booking(pk)
        if not booking.is_visible_to(request.user):
            raise PermissionDenied('Not authorized to view this booking')
        return Response(self.get_serializer(booking).data)

    def destroy(self, request, pk=None):
        booking = self.get_booking(pk)
        services.cancel_booking(booking, request.user, request=request)
        return Response({'message': 'Booking cancelled successfully'})

    @action(detail=False, methods=['post'], url_path=f'apartment/(?P<apartment_id>{UUID_PATTERN})')
    def book(self, request, apartment_id=None):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = services.create_booking(
            request.user, apartment_id, request=request, **serializer.validated_data
        )
        return Response({
            'message': 'Booking request submitted successfully',
            'booking': self.get_serializer(booking).data
        }, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'], url_path='my-bookings')
    def my_bookings(self, request):
        queryset = self.get_queryset().filter(user=request.user).order_by('-created_at')
        return Response({
            'count': queryset.count(),
            'bookings': self.get_serializer(queryset, many=True).data
        })

    @action(detail=False, methods=['get'], url_path='agent/bookings')
    def agent_bookings(self, request):
        queryset = self.get_queryset().filter(apartment__agent=request.user)
        booking_status = request.query_params.get('status')
        if booking_status:
            queryset = queryset.filter(status=booking_status)
        return self.list_response(queryset.order_by('-created_at'))

    @action(detail=False, methods=['put'], url_path=f'agent/(?P<booking_id>{UUID_PATTERN})/status')
    def agent_status(self, request, booking_id=None):
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.get_booking(booking_id)
        services.set_booking_status(
            booking, request.user, serializer.validated_data['status'], request=request
        )
        return Response({
            'message': f'Booking {booking.status} successfully',
            'booking': self.get_serializer(booking).data
        })

    @action(detail=False, methods=['get'], url_path='admin/all')
    def admin_all(self, request):
        queryset = self.filter_queryset(self.get_queryset())
        return self.list_response(queryset)

    @action(detail=False, methods=['get'], url_path='admin/stats')
    def admin_stats(self, request):
        stats = Booking.objects.aggregate(
            total=Count('id'),
            pending=Count('id', filter=Q(status='pending')),
            approved=Count('id', filter=Q(status='approved')),
            rejected=Count('id', filter=Q(status='rejected')),
            cancelled=Count('id', filter=Q(status='cancelled')),
            confirmed=Count('id', filter=Q(status='confirmed')),
            paid=Count('id', filter=Q(payment_status='paid')),
        )
        stats['approval_rate'] = percentage(stats['approved'], stats['total'])
        return Response(stats)

    @action(detail=False, methods=['delete'], url_path=f'admin/(?P<booking_id>{UUID_PATTERN})')
    def admin_delete(self, request, booking_id=None):
        booking = self.get_booking(booking_id)
        services.admin_delete_booking(booking, request.user, request=request)
        return Response({'message': 'Booking deleted successfully'})
