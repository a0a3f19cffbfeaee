import uuid

from django.http import Http404
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.generics import get_object_or_404
from rest_framework.routers import DefaultRouter, Route


# Route segment for UUID primary keys; keeps `/admin/stats/` style paths
# from being captured as object lookups.
UUID_PATTERN = '[0-9a-fA-F-]{36}'


def parse_uuid(value, field='id'):
    """Validate an id taken from a query string or request body"""
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {field}')


def get_or_404(queryset, message, **kwargs):
    """Fetch one row or raise NotFound carrying a resource-specific message"""
    try:
        return get_object_or_404(queryset, **kwargs)
    except Http404:
        raise NotFound(message)


class EstateRouter(DefaultRouter):
    """DefaultRouter that also sends DELETE on a collection to ``clear``"""
    routes = [
        route._replace(mapping={**route.mapping, 'delete': 'clear'})
        if isinstance(route, Route) and route.mapping.get('get') == 'list' else route
        for route in DefaultRouter.routes
    ]
