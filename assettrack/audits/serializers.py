from rest_framework import serializers
from assettrack.assets.models import Asset
from assettrack.assets.serializers import AssetSummarySerializer
from assettrack.core.serializers import UserSummarySerializer
from .models import Audit

SORT_FIELDS = ['created_at', 'scheduled_date', 'status', 'discrepancies']


class AuditSerializer(serializers.ModelSerializer):
    asset = AssetSummarySerializer(read_only=True)
    auditor = UserSummarySerializer(read_only=True)
    completion_percentage = serializers.ReadOnlyField()

    class Meta:
        model = Audit
        fields = ['id', 'location', 'category', 'asset', 'auditor', 'status', 'scheduled_date',
                  'completed_date', 'total_assets', 'assets_scanned', 'discrepancies',
                  'completion_percentage', 'notes', 'created_at', 'updated_at']


class AuditWriteSerializer(serializers.ModelSerializer):
    """Schedule or edit an audit; the target asset is checked by the view (404)"""
    asset_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    location = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    category = serializers.ChoiceField(choices=Asset.CATEGORY_CHOICES, required=False, allow_null=True)

    class Meta:
        model = Audit
        fields = ['location', 'category', 'asset_id', 'scheduled_date', 'total_assets',
                  'assets_scanned', 'discrepancies', 'notes']
        extra_kwargs = {
            'total_assets': {'min_value': 0},
            'assets_scanned': {'min_value': 0},
            'discrepancies': {'min_value': 0},
        }

    def validate_location(self, value):
        value = (value or '').strip()
        return value or None


class AuditCompleteSerializer(serializers.Serializer):
    assets_scanned = serializers.IntegerField(min_value=0)
    discrepancies = serializers.IntegerField(min_value=0, default=0)
    notes = serializers.CharField(required=False, allow_blank=True)


class AuditListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, default=10)
    sort_by = serializers.ChoiceField(choices=SORT_FIELDS, default='created_at')
    sort_order = serializers.ChoiceField(choices=['asc', 'desc'], default='desc')
