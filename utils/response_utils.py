from rest_framework.response import Response
from rest_framework import status


class APIResponse:
    """Standardized API response helpers"""

    @staticmethod
    def error(message, status_code=status.HTTP_400_BAD_REQUEST, errors=None, extra=None):
        """Standard error response"""
        response_data = {
            'success': False,
            'error': message
        }

        if errors:
            response_data['errors'] = errors

        if extra:
            response_data.update(extra)

        return Response(response_data, status=status_code)


def percentage(part, total):
    """Whole-number percentage, 0 when there is nothing to divide by"""
    if not total:
        return 0
    return round(part / total * 100)
