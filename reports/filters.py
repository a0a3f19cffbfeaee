import django_filters
from .models import Report


class ReportFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Report.STATUS_CHOICES)
    priority = django_filters.ChoiceFilter(choices=Report.PRIORITY_CHOICES)
    report_type = django_filters.ChoiceFilter(choices=Report.TYPE_CHOICES)
    agent = django_filters.UUIDFilter(field_name='agent_id')

    class Meta:
        model = Report
        fields = ['status', 'priority', 'report_type', 'agent']
