import django_filters
from django.db.models import Q
from .models import Apartment


class ApartmentFilter(django_filters.FilterSet):
    location = django_filters.CharFilter(lookup_expr='icontains')
    category = django_filters.ChoiceFilter(choices=Apartment.CATEGORY_CHOICES)

    # Price filters
    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')

    bedrooms = django_filters.NumberFilter(field_name='bedrooms', lookup_expr='exact')
    furnished = django_filters.BooleanFilter()
    pet_friendly = django_filters.BooleanFilter()
    parking = django_filters.BooleanFilter()

    class Meta:
        model = Apartment
        fields = ['location', 'category', 'furnished', 'pet_friendly', 'parking']


class AdminApartmentFilter(ApartmentFilter):
    status = django_filters.CharFilter(method='filter_status')
    agent_id = django_filters.UUIDFilter(field_name='agent_id')

    def filter_status(self, queryset, name, value):
        """`available` / `unavailable` map onto the availability flag"""
        if value == 'available':
            return queryset.filter(availability=True)
        elif value == 'unavailable':
            return queryset.filter(availability=False)
        return queryset


def search_apartments(queryset, query):
    """Every term must match location, category or description"""
    for term in query.split():
        queryset = queryset.filter(
            Q(location__icontains=term) |
            Q(category__icontains=term) |
            Q(description__icontains=term)
        )
    return queryset
