import django_filters
from .models import Movement


class MovementFilter(django_filters.FilterSet):
    """Field filters for the movement list; SLA status is filtered after annotation"""

    status = django_filters.ChoiceFilter(choices=Movement.STATUS_CHOICES)
    asset = django_filters.NumberFilter(field_name='asset_id', lookup_expr='exact')
    requested_by = django_filters.NumberFilter(field_name='requested_by_id', lookup_expr='exact')
    from_location = django_filters.CharFilter(field_name='from_location', lookup_expr='icontains')
    to_location = django_filters.CharFilter(field_name='to_location', lookup_expr='icontains')
    request_date = django_filters.IsoDateTimeFromToRangeFilter(field_name='request_date')

    class Meta:
        model = Movement
        fields = ['status', 'asset', 'requested_by', 'from_location', 'to_location', 'request_date']
