from django.core.cache import cache
from django.http import Http404
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.response import Response
import logging

from accounts.models import Agent
from accounts.permissions import IsAdmin, IsApprovedAgent
from accounts.serializers import AgentPublicSerializer
from analytics.models import ActivityLog
from utils.routing import UUID_PATTERN, get_or_404
from utils.throttling import ApartmentCreationThrottle
from .filters import AdminApartmentFilter, ApartmentFilter, search_apartments
from .models import Apartment
from .serializers import (
    ApartmentAvailabilitySerializer, ApartmentListSerializer, ApartmentSerializer,
)

logger = logging.getLogger('estate.apartments')


class ApartmentViewSet(viewsets.ModelViewSet):
    """Public browsing plus agent-owned listing management"""
    serializer_class = ApartmentSerializer
    lookup_value_regex = UUID_PATTERN
    search_fields = ['location', 'category', 'description']
    ordering_fields = ['price', 'created_at', 'average_rating']
    ordering = ['-created_at']

    PUBLIC_ACTIONS = ('list', 'retrieve', 'search', 'by_agent')
    AGENT_ACTIONS = ('create', 'update', 'partial_update', 'destroy', 'mine')

    @property
    def filterset_class(self):
        if self.action == 'admin_all':
            return AdminApartmentFilter
        return ApartmentFilter

    def get_permissions(self):
        if self.action in self.PUBLIC_ACTIONS:
            return [permissions.AllowAny()]
        if self.action in self.AGENT_ACTIONS:
            return [IsApprovedAgent()]
        return [IsAdmin()]

    def get_throttles(self):
        throttles = super().get_throttles()
        if self.action == 'create':
            throttles.append(ApartmentCreationThrottle())
        return throttles

    def get_queryset(self):
        queryset = Apartment.objects.select_related('agent')
        if self.action in ('list', 'search'):
            return queryset.available()
        return queryset

    def get_serializer_class(self):
        if self.action in ('list', 'search', 'mine'):
            return ApartmentListSerializer
        return ApartmentSerializer

    def get_object(self):
        try:
            return super().get_object()
        except Http404:
            raise NotFound('Apartment not found')

    def check_owner(self, apartment, verb):
        if not apartment.is_owned_by(self.request.user):
            raise PermissionDenied(f'You can only {verb} your own apartments')

    def retrieve(self, request, *args, **kwargs):
        apartment = self.get_object()
        Apartment.objects.record_view(apartment.pk)
        apartment.refresh_from_db(fields=['total_views'])
        return Response(self.get_serializer(apartment).data)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        apartment = serializer.save(agent=request.user)

        cache.delete(f'agent_dashboard_{request.user.id}')
        logger.info(f"Apartment {apartment.id} listed by agent {request.user.id}")

        return Response({
            'message': 'Apartment created successfully',
            'apartment': ApartmentSerializer(apartment).data
        }, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        apartment = self.get_object()
        self.check_owner(apartment, 'update')

        # Agents patch fields; availability only moves through bookings and admins
        serializer = self.get_serializer(apartment, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()

        return Response({
            'message': 'Apartment updated successfully',
            'apartment': serializer.data
        })

    def destroy(self, request, *args, **kwargs):
        apartment = self.get_object()
        self.check_owner(apartment, 'delete')

        # Bookings, payments, reviews and reports keep their rows with the
        # apartment reference cleared
        apartment_id = apartment.pk
        apartment.delete()
        cache.delete(f'agent_dashboard_{request.user.id}')
        logger.info(f"Apartment {apartment_id} deleted by agent {request.user.id}")

        return Response({'message': 'Apartment deleted successfully'})

    @action(detail=False, methods=['get'])
    def search(self, request):
        query = request.query_params.get('q', '').strip()
        if not query:
            return Response(
                {'error': 'Search query is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        queryset = search_apartments(self.get_queryset(), query)
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    @action(detail=False, methods=['get'], url_path=f'agent/(?P<agent_id>{UUID_PATTERN})')
    def by_agent(self, request, agent_id=None):
        agent = get_or_404(Agent, 'Agent not found', pk=agent_id)

        apartments = Apartment.objects.available().filter(agent=agent)
        return Response({
            'agent': AgentPublicSerializer(agent).data,
            'count': apartments.count(),
            'apartments': ApartmentListSerializer(apartments, many=True).data
        })

    @action(detail=False, methods=['get'], url_path='agent/listings')
    def mine(self, request):
        queryset = Apartment.objects.filter(agent=request.user).order_by('-created_at')
        return Response({
            'count': queryset.count(),
            'apartments': ApartmentSerializer(queryset, many=True).data
        })

    @action(detail=False, methods=['get'], url_path='admin/all')
    def admin_all(self, request):
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    @action(detail=False, methods=['put'], url_path=f'admin/(?P<apartment_id>{UUID_PATTERN})/status')
    def admin_status(self, request, apartment_id=None):
        apartment = get_or_404(Apartment, 'Apartment not found', pk=apartment_id)
        serializer = ApartmentAvailabilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        apartment.availability = serializer.validated_data['availability']
        apartment.save(update_fields=['availability', 'updated_at'])
        ActivityLog.record(
            'apartment_availability_set', actor=request.user, resource=apartment,
            details={'availability': apartment.availability}, request=request
        )

        return Response({
            'message': f"Apartment {'made available' if apartment.availability else 'marked as unavailable'}",
            'apartment': ApartmentSerializer(apartment).data
        })
