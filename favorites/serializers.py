from rest_framework import serializers

from apartments.serializers import ApartmentListSerializer
from .models import Favorite


class TagListField(serializers.ListField):
    child = serializers.CharField(max_length=20)


class FavoriteSerializer(serializers.ModelSerializer):
    apartment = ApartmentListSerializer(read_only=True)

    class Meta:
        model = Favorite
        fields = ['id', 'apartment', 'notes', 'tags', 'created_at', 'updated_at']
        read_only_fields = fields


class FavoriteCreateSerializer(serializers.Serializer):
    apartment_id = serializers.UUIDField(error_messages={'required': 'Apartment ID is required'})
    notes = serializers.CharField(max_length=200, required=False, allow_blank=True)
    tags = TagListField(required=False)


class FavoriteUpdateSerializer(serializers.Serializer):
    notes = serializers.CharField(max_length=200, required=False, allow_blank=True)
    tags = TagListField(required=False)
