from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from utils.validators import CustomValidators
from .models import Admin, Agent, User


class PrincipalSummarySerializer(serializers.Serializer):
    """Compact public view of any principal"""
    id = serializers.UUIDField(read_only=True)
    name = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)
    phone = serializers.CharField(read_only=True)


class UserSerializer(serializers.ModelSerializer):
    role = serializers.ReadOnlyField()
    notification_settings = serializers.ReadOnlyField()

    class Meta:
        model = User
        fields = [
            'id', 'name', 'email', 'phone', 'role', 'address', 'date_of_birth',
            'profile_image', 'email_verified', 'phone_verified',
            'notification_settings', 'login_count', 'last_login', 'created_at'
        ]
        read_only_fields = [
            'id', 'email', 'email_verified', 'phone_verified',
            'login_count', 'last_login', 'created_at'
        ]

    def validate_phone(self, value):
        try:
            CustomValidators.validate_phone_number(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages[0])
        return value


class AgentSerializer(serializers.ModelSerializer):
    role = serializers.ReadOnlyField()

    class Meta:
        model = Agent
        fields = [
            'id', 'name', 'email', 'phone', 'role', 'status', 'certificate',
            'company_name', 'address', 'website', 'social_media', 'bio',
            'experience_years', 'specialization', 'languages',
            'average_rating', 'total_reviews', 'verified', 'featured',
            'last_login', 'created_at'
        ]
        read_only_fields = [
            'id', 'email', 'status', 'certificate', 'average_rating',
            'total_reviews', 'verified', 'featured', 'last_login', 'created_at'
        ]


class AgentPublicSerializer(serializers.ModelSerializer):
    class Meta:
        model = Agent
        fields = [
            'id', 'name', 'email', 'phone', 'company_name', 'bio',
            'experience_years', 'average_rating', 'total_reviews', 'verified'
        ]


class AdminSerializer(serializers.ModelSerializer):
    role = serializers.ReadOnlyField()

    class Meta:
        model = Admin
        fields = ['id', 'name', 'email', 'phone', 'role', 'last_login', 'created_at']


class RegistrationSerializer(serializers.ModelSerializer):
    """Shared signup validation; subclasses pick the principal table"""
    password = serializers.CharField(write_only=True)

    def validate_email(self, value):
        value = value.lower()
        if self.Meta.model.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(
                f"{self.Meta.model.__name__} already exists"
            )
        return value

    def validate_password(self, value):
        try:
            CustomValidators.validate_password_strength(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages[0])
        return value

    def validate_phone(self, value):
        try:
            CustomValidators.validate_phone_number(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages[0])
        return value

    def create(self, validated_data):
        password = validated_data.pop('password')
        principal = self.Meta.model(**validated_data)
        principal.set_password(password)
        principal.save()
        return principal


class UserRegistrationSerializer(RegistrationSerializer):
    class Meta:
        model = User
        fields = ['name', 'email', 'password', 'phone']
        extra_kwargs = {
            'email': {'validators': []},
            'phone': {'required': True, 'allow_blank': False},
        }


class AgentRegistrationSerializer(RegistrationSerializer):
    certificate = serializers.FileField()

    class Meta:
        model = Agent
        fields = [
            'name', 'email', 'password', 'phone', 'certificate',
            'company_name', 'address', 'website', 'bio', 'experience_years'
        ]
        extra_kwargs = {
            'email': {'validators': []},
            'phone': {'required': True, 'allow_blank': False},
        }

    def validate_certificate(self, value):
        try:
            CustomValidators.validate_upload(
                value,
                settings.CERTIFICATE_CONTENT_TYPES,
                settings.CERTIFICATE_MAX_SIZE
            )
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages[0])
        return value


class AdminRegistrationSerializer(RegistrationSerializer):
    class Meta:
        model = Admin
        fields = ['name', 'email', 'password', 'phone']
        extra_kwargs = {'email': {'validators': []}}


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class AgentStatusSerializer(serializers.Serializer):
    status = serializers.CharField()

    def validate_status(self, value):
        if value not in ('approved', 'rejected'):
            raise serializers.ValidationError("Invalid status. Use 'approved' or 'rejected'")
        return value
