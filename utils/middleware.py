import time
import logging
from django.db import connection
from django.utils.deprecation import MiddlewareMixin
from django.conf import settings

logger = logging.getLogger('estate.performance')


def get_client_ip(request):
    """Get client IP address"""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


class CacheHeadersMiddleware(MiddlewareMixin):
    """Add cache headers: public listings are cacheable, authenticated API responses are not"""

    def process_response(self, request, response):
        if 'Cache-Control' in response:
            return response

        if request.path.startswith('/api/'):
            authenticated = bool(request.META.get('HTTP_AUTHORIZATION'))
            if request.method == 'GET' and not authenticated and request.path.startswith('/api/apartments/'):
                response['Cache-Control'] = 'public, max-age=60'
            elif authenticated and request.method == 'GET' and request.path.startswith('/api/analytics/'):
                response['Cache-Control'] = 'private, max-age=60'
            else:
                response['Cache-Control'] = 'private, no-cache, no-store, must-revalidate'

        elif request.path.startswith('/static/') or request.path.startswith('/media/'):
            response['Cache-Control'] = 'public, max-age=31536000'  # 1 year

        return response


PERF_SKIP_PREFIXES = ('/api/health/',)
SLOW_REQUEST_SECONDS = 0.3


class PerformanceMonitoringMiddleware(MiddlewareMixin):
    """Log slow API requests; timing headers only in DEBUG"""

    def process_request(self, request):
        request._started = time.perf_counter()
        # connection.queries is only populated with DEBUG on
        request._query_mark = len(connection.queries) if settings.DEBUG else 0

    def process_response(self, request, response):
        started = getattr(request, '_started', None)
        if started is None or request.path.startswith(PERF_SKIP_PREFIXES):
            return response

        duration = time.perf_counter() - started
        if request.path.startswith('/api/') and duration > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow API request: {request.method} {request.path} -> {response.status_code} "
                f"in {duration:.3f}s"
            )

        if settings.DEBUG:
            response['X-Response-Time'] = f"{duration:.3f}s"
            response['X-DB-Queries'] = str(len(connection.queries) - request._query_mark)

        return response
