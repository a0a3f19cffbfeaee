from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
import django_filters

from accounts.models import Agent
from accounts.permissions import IsAdmin, IsApprovedAgent, IsUser, IsUserOrAdmin
from apartments.models import Apartment
from bookings.models import Booking
from notifications.services import NotificationService
from utils.routing import UUID_PATTERN, get_or_404
from .models import Review
from .serializers import (
    ReviewCreateSerializer, ReviewResponseSerializer, ReviewSerializer, ReviewUpdateSerializer,
)
from .services import rating_summary, refresh_ratings

SORT_ORDERS = {
    'newest': '-created_at',
    'oldest': 'created_at',
    'highest': '-rating',
    'lowest': 'rating',
}

DUPLICATE_REVIEW = 'You have already reviewed this apartment'


class ReviewFilter(django_filters.FilterSet):
    rating = django_filters.NumberFilter()
    apartment = django_filters.UUIDFilter(field_name='apartment_id')
    agent = django_filters.UUIDFilter(field_name='agent_id')

    class Meta:
        model = Review
        fields = ['rating', 'apartment', 'agent']


class ReviewViewSet(viewsets.GenericViewSet):
    serializer_class = ReviewSerializer
    filterset_class = ReviewFilter
    lookup_value_regex = UUID_PATTERN
    ordering = ['-created_at']

    PUBLIC_ACTIONS = ('apartment_reviews', 'agent_reviews')
    AGENT_ACTIONS = ('property_reviews', 'respond')
    ADMIN_ACTIONS = ('admin_all', 'admin_delete')

    def get_permissions(self):
        if self.action in self.PUBLIC_ACTIONS:
            return [permissions.AllowAny()]
        if self.action in self.AGENT_ACTIONS:
            return [IsApprovedAgent()]
        if self.action in self.ADMIN_ACTIONS:
            return [IsAdmin()]
        if self.action == 'my_reviews':
            return [IsUser()]
        return [IsUserOrAdmin()]

    def get_queryset(self):
        return Review.objects.select_related('user', 'admin', 'apartment', 'agent')

    def get_review(self, review_id):
        return get_or_404(self.get_queryset(), 'Review not found', pk=review_id)

    def sorted_page(self, queryset):
        """Paginated reviews with the current average and count alongside"""
        average, count = rating_summary(queryset)
        order = SORT_ORDERS.get(self.request.query_params.get('sort_by'), '-created_at')
        queryset = queryset.order_by(order, '-created_at')

        page = self.paginate_queryset(queryset)
        if page is not None:
            response = self.get_paginated_response(self.get_serializer(page, many=True).data)
        else:
            response = Response({'results': self.get_serializer(queryset, many=True).data})
        response.data['average_rating'] = average
        response.data['total_reviews'] = count
        return response

    def create(self, request):
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        apartment = get_or_404(Apartment, 'Apartment not found', pk=data['apartment_id'])
        principal = request.user
        is_user = principal.role == 'user'

        if is_user and not Booking.objects.filter(
            user=principal, apartment=apartment, status='confirmed'
        ).exists():
            return Response(
                {'error': 'You can only review apartments you have booked'},
                status=status.HTTP_403_FORBIDDEN
            )

        author = {'user': principal} if is_user else {'admin': principal}
        if Review.objects.filter(apartment=apartment, **author).exists():
            return Response({'error': DUPLICATE_REVIEW}, status=status.HTTP_400_BAD_REQUEST)

        try:
            with transaction.atomic():
                review = Review.objects.create(
                    apartment=apartment,
                    agent_id=apartment.agent_id,
                    rating=data['rating'],
                    comment=data.get('comment', ''),
                    images=data.get('images', []),
                    is_verified_booking=is_user,
                    **author
                )
        except IntegrityError:
            return Response({'error': DUPLICATE_REVIEW}, status=status.HTTP_400_BAD_REQUEST)

        refresh_ratings(apartment.pk, apartment.agent_id)
        NotificationService.notify_review_posted(review)

        return Response({
            'message': 'Review submitted successfully',
            'review': self.get_serializer(review).data
        }, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        review = self.get_review(pk)
        if not review.is_authored_by(request.user):
            return Response(
                {'error': 'Not authorized to update this review'},
                status=status.HTTP_403_FORBIDDEN
            )

        serializer = ReviewUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        for field, value in serializer.validated_data.items():
            setattr(review, field, value)
        review.save()

        refresh_ratings(review.apartment_id, review.agent_id)
        return Response({
            'message': 'Review updated successfully',
            'review': self.get_serializer(review).data
        })

    def destroy(self, request, pk=None):
        review = self.get_review(pk)
        if not (review.is_authored_by(request.user) or request.user.role == 'admin'):
            return Response(
                {'error': 'Not authorized to delete this review'},
                status=status.HTTP_403_FORBIDDEN
            )

        apartment_id, agent_id = review.apartment_id, review.agent_id
        review.delete()
        refresh_ratings(apartment_id, agent_id)
        return Response({'message': 'Review deleted successfully'})

    @action(detail=False, methods=['get'], url_path='my-reviews')
    def my_reviews(self, request):
        queryset = self.get_queryset().filter(user=request.user).order_by('-created_at')
        return Response({
            'count': queryset.count(),
            'reviews': self.get_serializer(queryset, many=True).data
        })

    @action(detail=False, methods=['get'], url_path=f'apartment/(?P<apartment_id>{UUID_PATTERN})')
    def apartment_reviews(self, request, apartment_id=None):
        apartment = get_or_404(Apartment, 'Apartment not found', pk=apartment_id)
        return self.sorted_page(self.get_queryset().filter(apartment=apartment))

    @action(detail=False, methods=['get'], url_path=f'agent/(?P<agent_id>{UUID_PATTERN})')
    def agent_reviews(self, request, agent_id=None):
        agent = get_or_404(Agent, 'Agent not found', pk=agent_id)
        return self.sorted_page(self.get_queryset().filter(agent=agent))

    @action(detail=False, methods=['get'], url_path='agent/property-reviews')
    def property_reviews(self, request):
        queryset = self.get_queryset().filter(apartment__agent=request.user).order_by('-created_at')
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    @action(detail=False, methods=['put'], url_path=f'agent/(?P<review_id>{UUID_PATTERN})/respond')
    def respond(self, request, review_id=None):
        serializer = ReviewResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        review = self.get_review(review_id)
        if review.agent_id != request.user.pk:
            return Response(
                {'error': 'Not authorized to respond to this review'},
                status=status.HTTP_403_FORBIDDEN
            )

        review.agent_response = serializer.validated_data['response']
        review.responded_at = timezone.now()
        review.save(update_fields=['agent_response', 'responded_at', 'updated_at'])
        NotificationService.notify_review_response(review)

        return Response({
            'message': 'Response submitted successfully',
            'review': self.get_serializer(review).data
        })

    @action(detail=False, methods=['get'], url_path='admin/all')
    def admin_all(self, request):
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    @action(detail=False, methods=['delete'], url_path=f'admin/(?P<review_id>{UUID_PATTERN})')
    def admin_delete(self, request, review_id=None):
        review = self.get_review(review_id)
        apartment_id, agent_id = review.apartment_id, review.agent_id
        review.delete()
        refresh_ratings(apartment_id, agent_id)
        return Response({'message': 'Review deleted successfully'})
