from collections import Counter

from django.db import IntegrityError, transaction
from django.db.models import Count
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import IsUser
from apartments.models import Apartment
from utils.routing import UUID_PATTERN, get_or_404
from .models import Favorite
from .serializers import FavoriteCreateSerializer, FavoriteSerializer, FavoriteUpdateSerializer

DUPLICATE_FAVORITE = 'Apartment is already in your favorites'


class FavoriteViewSet(viewsets.GenericViewSet):
    """Saved apartments for the requesting user"""
    serializer_class = FavoriteSerializer
    permission_classes = [IsUser]
    lookup_value_regex = UUID_PATTERN

    def get_queryset(self):
        return Favorite.objects.filter(user=self.request.user).select_related('apartment__agent')

    def get_favorite(self, favorite_id):
        return get_or_404(
            Favorite.objects.select_related('apartment__agent'), 'Favorite not found', pk=favorite_id
        )

    def list(self, request):
        queryset = self.get_queryset()
        tag = request.query_params.get('tag')
        if tag:
            # JSON containment lookups are unsupported on SQLite
            queryset = [favorite for favorite in queryset if tag in favorite.tags]

        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    def create(self, request):
        serializer = FavoriteCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        apartment = get_or_404(Apartment, 'Apartment not found', pk=data['apartment_id'])
        if Favorite.objects.filter(user=request.user, apartment=apartment).exists():
            return Response({'error': DUPLICATE_FAVORITE}, status=status.HTTP_400_BAD_REQUEST)

        try:
            with transaction.atomic():
                favorite = Favorite.objects.create(
                    user=request.user,
                    apartment=apartment,
                    notes=data.get('notes', ''),
                    tags=data.get('tags', []),
                )
        except IntegrityError:
            return Response({'error': DUPLICATE_FAVORITE}, status=status.HTTP_400_BAD_REQUEST)

        return Response({
            'message': 'Added to favorites successfully',
            'favorite': self.get_serializer(favorite).data
        }, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        favorite = self.get_favorite(pk)
        if favorite.user_id != request.user.pk:
            return Response(
                {'error': 'Not authorized to update this favorite'},
                status=status.HTTP_403_FORBIDDEN
            )

        serializer = FavoriteUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        for field, value in serializer.validated_data.items():
            setattr(favorite, field, value)
        favorite.save()

        return Response({
            'message': 'Favorite updated successfully',
            'favorite': self.get_serializer(favorite).data
        })

    def destroy(self, request, pk=None):
        favorite = self.get_favorite(pk)
        if favorite.user_id != request.user.pk:
            return Response(
                {'error': 'Not authorized to remove this favorite'},
                status=status.HTTP_403_FORBIDDEN
            )
        favorite.delete()
        return Response({'message': 'Removed from favorites successfully'})

    def clear(self, request):
        deleted, _ = self.get_queryset().delete()
        return Response({'message': 'All favorites cleared successfully', 'count': deleted})

    @action(detail=False, methods=['get'], url_path=f'check/(?P<apartment_id>{UUID_PATTERN})')
    def check(self, request, apartment_id=None):
        favorite = self.get_queryset().filter(apartment_id=apartment_id).first()
        return Response({
            'is_favorite': favorite is not None,
            'favorite_id': favorite.pk if favorite else None,
        })

    @action(detail=False, methods=['delete'], url_path=f'apartment/(?P<apartment_id>{UUID_PATTERN})')
    def remove_apartment(self, request, apartment_id=None):
        deleted, _ = self.get_queryset().filter(apartment_id=apartment_id).delete()
        if not deleted:
            return Response(
                {'error': 'Apartment not found in your favorites'},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response({'message': 'Apartment removed from favorites successfully'})

    @action(detail=False, methods=['get'])
    def stats(self, request):
        queryset = Favorite.objects.filter(user=request.user)
        by_category = (
            queryset.values('apartment__category')
            .annotate(count=Count('id'))
            .order_by('-count')
        )
        by_location = (
            queryset.values('apartment__location')
            .annotate(count=Count('id'))
            .order_by('-count')[:5]
        )
        return Response({
            'total_favorites': queryset.count(),
            'available_favorites': queryset.filter(apartment__availability=True).count(),
            'by_category': [
                {'category': row['apartment__category'], 'count': row['count']} for row in by_category
            ],
            'by_location': [
                {'location': row['apartment__location'], 'count': row['count']} for row in by_location
            ],
        })

    @action(detail=False, methods=['get'])
    def tags(self, request):
        counts = Counter(
            tag for tags in Favorite.objects.filter(user=request.user).values_list('tags', flat=True)
            for tag in tags
        )
        return Response([{'name': name, 'count': count} for name, count in counts.most_common()])
