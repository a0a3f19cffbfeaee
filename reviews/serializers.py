from rest_framework import serializers

from apartments.serializers import ApartmentListSerializer
from .models import Review


class ReviewAuthorSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    name = serializers.CharField(read_only=True)
    role = serializers.CharField(read_only=True)


class ReviewSerializer(serializers.ModelSerializer):
    author = ReviewAuthorSerializer(read_only=True)
    apartment = ApartmentListSerializer(read_only=True)
    agent_name = serializers.CharField(source='agent.name', read_only=True, default=None)

    class Meta:
        model = Review
        fields = [
            'id', 'author', 'apartment', 'agent', 'agent_name', 'rating',
            'comment', 'images', 'agent_response', 'responded_at', 'likes',
            'dislikes', 'helpful_count', 'is_verified_booking', 'created_at',
            'updated_at'
        ]
        read_only_fields = fields


class ReviewCreateSerializer(serializers.Serializer):
    apartment_id = serializers.UUIDField(
        error_messages={'required': 'Apartment ID and rating are required'}
    )
    rating = serializers.IntegerField(
        min_value=1, max_value=5,
        error_messages={
            'required': 'Apartment ID and rating are required',
            'min_value': 'Rating must be between 1 and 5',
            'max_value': 'Rating must be between 1 and 5',
        }
    )
    comment = serializers.CharField(required=False, allow_blank=True, max_length=500)
    images = serializers.ListField(child=serializers.CharField(max_length=500), required=False)


class ReviewUpdateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(
        min_value=1, max_value=5, required=False,
        error_messages={
            'min_value': 'Rating must be between 1 and 5',
            'max_value': 'Rating must be between 1 and 5',
        }
    )
    comment = serializers.CharField(required=False, allow_blank=True, max_length=500)
    images = serializers.ListField(child=serializers.CharField(max_length=500), required=False)


class ReviewResponseSerializer(serializers.Serializer):
    response = serializers.CharField(
        max_length=500,
        error_messages={'required': 'Response is required', 'blank': 'Response is required'}
    )
