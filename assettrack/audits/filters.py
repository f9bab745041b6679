import django_filters
from assettrack.assets.models import Asset
from .models import Audit


class AuditFilter(django_filters.FilterSet):
    """Filter for the audit list"""

    status = django_filters.ChoiceFilter(choices=Audit.STATUS_CHOICES)
    category = django_filters.ChoiceFilter(choices=Asset.CATEGORY_CHOICES)
    location = django_filters.CharFilter(field_name='location', lookup_expr='icontains')
    auditor = django_filters.NumberFilter(field_name='auditor_id', lookup_expr='exact')
    asset = django_filters.NumberFilter(field_name='asset_id', lookup_expr='exact')

    class Meta:
        model = Audit
        fields = ['status', 'category', 'location', 'auditor', 'asset']
