import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

from .models import PRINCIPAL_MODELS

logger = logging.getLogger('estate.auth')


def issue_token(principal):
    """Signed access token naming the principal's table and id"""
    token = AccessToken()
    token[api_settings.USER_ID_CLAIM] = str(principal.pk)
    token[settings.JWT_ROLE_CLAIM] = principal.role
    return str(token)


def resolve_principal(role, principal_id):
    """Look a token's (role, id) pair up in the matching principal table.

    Returns None when the role is outside the known set or the record is gone.
    """
    model = PRINCIPAL_MODELS.get(role)
    if model is None:
        return None
    try:
        return model.objects.get(pk=principal_id)
    except (model.DoesNotExist, ValueError, DjangoValidationError):
        return None


class PrincipalJWTAuthentication(JWTAuthentication):
    """Bearer-token authentication yielding a User, Agent or Admin as request.user"""

    def get_user(self, validated_token):
        role = validated_token.get(settings.JWT_ROLE_CLAIM)
        principal_id = validated_token.get(api_settings.USER_ID_CLAIM)

        if role not in PRINCIPAL_MODELS or not principal_id:
            raise AuthenticationFailed('Token failed', code='token_not_valid')

        principal = resolve_principal(role, principal_id)
        if principal is None:
            logger.info(f"Token presented for missing {role} {principal_id}")
            raise AuthenticationFailed(f'{role.title()} not found', code='user_not_found')

        return principal
