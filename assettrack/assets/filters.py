import django_filters
from django.db.models import Q
from .models import Asset


class AssetFilter(django_filters.FilterSet):
    """Filter for the asset registry list"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.ChoiceFilter(choices=Asset.CATEGORY_CHOICES)
    status = django_filters.ChoiceFilter(choices=Asset.STATUS_CHOICES)
    criticality = django_filters.ChoiceFilter(choices=Asset.CRITICALITY_CHOICES)
    location = django_filters.CharFilter(field_name='location', lookup_expr='icontains')

    class Meta:
        model = Asset
        fields = ['search', 'category', 'status', 'criticality', 'location']

    def filter_search(self, queryset, name, value):
        """Match the asset UID, name or serial number"""
        search = value.strip() if value else ''
        if not search:
            return queryset
        return queryset.filter(
            Q(asset_uid__icontains=search) |
            Q(name__icontains=search) |
            Q(serial_number__icontains=search)
        )
