from rest_framework import serializers
from .models import Asset


class AssetSerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Asset
        fields = ['id', 'asset_uid', 'name', 'category', 'status', 'location', 'criticality',
                  'owner_department', 'make', 'model', 'serial_number', 'purchase_date',
                  'warranty_expiry', 'created_by', 'created_by_name', 'created_at', 'updated_at']
        read_only_fields = ['created_by', 'created_at', 'updated_at']

    def validate_location(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Location is required')
        return value

    def validate(self, attrs):
        purchase_date = attrs.get('purchase_date', getattr(self.instance, 'purchase_date', None))
        warranty_expiry = attrs.get('warranty_expiry', getattr(self.instance, 'warranty_expiry', None))
        if purchase_date and warranty_expiry and warranty_expiry < purchase_date:
            raise serializers.ValidationError({'warranty_expiry': 'Warranty expiry cannot be before the purchase date'})
        return attrs


class AssetSummarySerializer(serializers.ModelSerializer):
    """Compact asset representation embedded in movements"""

    class Meta:
        model = Asset
        fields = ['id', 'asset_uid', 'name', 'category', 'status', 'criticality', 'location']
