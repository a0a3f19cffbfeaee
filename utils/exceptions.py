import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

from .response_utils import APIResponse

logger = logging.getLogger('estate.errors')


class Conflict(APIException):
    """Duplicate record or a lost race on a single-slot resource."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Resource already exists'
    default_code = 'conflict'


def _first_message(detail):
    if isinstance(detail, dict):
        if 'detail' in detail:
            return _first_message(detail['detail'])
        for value in detail.values():
            return _first_message(value)
        return 'Invalid request'
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else 'Invalid request'
    return str(detail)


def api_exception_handler(exc, context):
    """Render every failure as ``{'success': False, 'error': ...}``"""
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(
            f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}",
            exc_info=exc
        )
        return APIResponse.error('Server error', status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    detail = response.data
    errors = None
    if isinstance(detail, dict) and 'detail' not in detail:
        errors = detail

    error_response = APIResponse.error(
        _first_message(detail),
        status_code=response.status_code,
        errors=errors
    )
    # Keep headers such as WWW-Authenticate and Retry-After
    for header, value in response.items():
        error_response[header] = value
    return error_response
