from django.core.exceptions import ValidationError
from django.utils import timezone
import re


class CustomValidators:
    """Custom validation utilities"""

    @staticmethod
    def validate_phone_number(phone):
        """Validate phone number format"""
        if not phone:
            return True  # Optional field

        # Remove all non-digit characters
        digits_only = re.sub(r'\D', '', phone)

        # Check if it's a valid length (7-15 digits)
        if len(digits_only) < 7 or len(digits_only) > 15:
            raise ValidationError('Phone number must be 7-15 digits long')

        return True

    @staticmethod
    def validate_password_strength(password):
        """Validate password strength"""
        if len(password) < 8:
            raise ValidationError('Password must be at least 8 characters long')

        if not re.search(r'[A-Za-z]', password):
            raise ValidationError('Password must contain at least one letter')

        if not re.search(r'\d', password):
            raise ValidationError('Password must contain at least one number')

        return True

    @staticmethod
    def validate_upload(file, allowed_types, max_size):
        """Validate an uploaded file's content type and size"""
        if allowed_types and file.content_type not in allowed_types:
            raise ValidationError(f'File type {file.content_type} not allowed')

        if file.size > max_size:
            raise ValidationError(f'File size exceeds {max_size // (1024 * 1024)}MB limit')

        return True

    @staticmethod
    def validate_not_past(value, message='Date cannot be in the past'):
        """Dates before today are rejected; today itself is allowed"""
        if value < timezone.localdate():
            raise ValidationError(message)
        return True

    @staticmethod
    def validate_future(value, message='Date must be in the future'):
        """Only dates strictly after today are accepted"""
        if value <= timezone.localdate():
            raise ValidationError(message)
        return True
