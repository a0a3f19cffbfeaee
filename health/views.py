from django.core.cache import cache
from django.db import DatabaseError, connection
from django.utils import timezone
from rest_framework.decorators import api_view, authentication_classes, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
import logging

logger = logging.getLogger('estate.health')


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([])
def health_check(request):
    """Database and cache check; 503 when either is down"""
    health_status = {
        'status': 'healthy',
        'timestamp': timezone.now().isoformat(),
        'services': {}
    }

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        health_status['services']['database'] = {'status': 'healthy'}
    except DatabaseError as e:
        logger.error(f"Health check database failure: {str(e)}")
        health_status['services']['database'] = {'status': 'unhealthy', 'error': str(e)}
        health_status['status'] = 'unhealthy'

    try:
        cache.set('health_check', 'ok', timeout=10)
        if cache.get('health_check') != 'ok':
            raise ConnectionError('Cache read back a different value')
        health_status['services']['cache'] = {'status': 'healthy'}
    except Exception as e:
        # django-redis raises its own ConnectionInterrupted as well as redis errors
        logger.error(f"Health check cache failure: {str(e)}")
        health_status['services']['cache'] = {'status': 'unhealthy', 'error': str(e)}
        health_status['status'] = 'unhealthy'

    status_code = 200 if health_status['status'] == 'healthy' else 503
    return Response(health_status, status=status_code)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([])
def simple_health_check(request):
    return Response({'status': 'ok', 'timestamp': timezone.now().isoformat()})
