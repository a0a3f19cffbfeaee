import django_filters
from .models import Booking


class BookingFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Booking.STATUS_CHOICES)
    payment_status = django_filters.ChoiceFilter(choices=Booking.PAYMENT_STATUS_CHOICES)
    apartment = django_filters.UUIDFilter(field_name='apartment_id')
    user = django_filters.UUIDFilter(field_name='user_id')
    created_after = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    created_before = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = Booking
        fields = ['status', 'payment_status', 'apartment', 'user']
