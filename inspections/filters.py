import django_filters
from .models import InspectionRequest


class InspectionFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=InspectionRequest.STATUS_CHOICES)
    agent = django_filters.UUIDFilter(field_name='agent_id')
    apartment = django_filters.UUIDFilter(field_name='apartment_id')
    date_after = django_filters.DateFilter(field_name='date', lookup_expr='gte')
    date_before = django_filters.DateFilter(field_name='date', lookup_expr='lte')

    class Meta:
        model = InspectionRequest
        fields = ['status', 'agent', 'apartment']
