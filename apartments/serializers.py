from rest_framework import serializers

from accounts.serializers import AgentPublicSerializer
from .models import Apartment


class ApartmentListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for listings and nested references"""
    agent_name = serializers.CharField(source='agent.name', read_only=True)

    class Meta:
        model = Apartment
        fields = [
            'id', 'location', 'price', 'category', 'images', 'availability',
            'average_rating', 'total_reviews', 'featured', 'bedrooms',
            'bathrooms', 'agent_name', 'created_at'
        ]


class ApartmentSerializer(serializers.ModelSerializer):
    agent = AgentPublicSerializer(read_only=True)

    class Meta:
        model = Apartment
        fields = [
            'id', 'agent', 'location', 'price', 'category', 'description',
            'images', 'availability', 'average_rating', 'total_reviews',
            'total_views', 'total_bookings', 'featured', 'amenities', 'size',
            'bedrooms', 'bathrooms', 'year_built', 'parking', 'furnished',
            'pet_friendly', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'id', 'agent', 'availability', 'average_rating', 'total_reviews',
            'total_views', 'total_bookings', 'featured', 'created_at', 'updated_at'
        ]

    def validate_price(self, value):
        if value <= 0:
            raise serializers.ValidationError("Price must be greater than zero")
        return value

    def validate_images(self, value):
        if not isinstance(value, list) or not all(isinstance(url, str) for url in value):
            raise serializers.ValidationError("Images must be a list of URLs")
        return value

    def validate_amenities(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Amenities must be a list")
        return [str(amenity).strip() for amenity in value if str(amenity).strip()]


class ApartmentAvailabilitySerializer(serializers.Serializer):
    availability = serializers.BooleanField()
