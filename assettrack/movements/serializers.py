from django.conf import settings
from django.utils import timezone
from rest_framework import serializers
from assettrack.assets.serializers import AssetSummarySerializer
from assettrack.core.serializers import UserSummarySerializer
from .models import Movement
from .sla import SLA_STATUS_CHOICES, calculate_sla_status

SORT_FIELDS = ['created_at', 'request_date', 'status', 'sla_hours']


class MovementSerializer(serializers.ModelSerializer):
    """Read representation; `sla` is computed at serialization time, never stored"""
    asset = AssetSummarySerializer(read_only=True)
    requested_by = UserSummarySerializer(read_only=True)
    approved_by = UserSummarySerializer(read_only=True)
    sla = serializers.SerializerMethodField()

    class Meta:
        model = Movement
        fields = ['id', 'asset', 'from_location', 'to_location', 'status', 'sla_hours',
                  'request_date', 'approval_date', 'dispatched_at', 'received_at',
                  'requested_by', 'approved_by', 'reason', 'notes', 'created_at', 'updated_at', 'sla']

    def get_sla(self, obj):
        snapshot = getattr(obj, 'sla', None)
        if snapshot is None:
            snapshot = calculate_sla_status(obj, self.context.get('now') or timezone.now())
        data = dict(snapshot)
        data['deadline_date'] = serializers.DateTimeField().to_representation(snapshot['deadline_date'])
        return data


class MovementCreateSerializer(serializers.Serializer):
    """Request body for a new movement; asset existence is checked by the workflow (404)"""
    asset_id = serializers.IntegerField(min_value=1)
    from_location = serializers.CharField(max_length=255)
    to_location = serializers.CharField(max_length=255)
    reason = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    sla_hours = serializers.IntegerField(
        required=False,
        min_value=settings.MOVEMENT_SLA['MIN_SLA_HOURS'],
        max_value=settings.MOVEMENT_SLA['MAX_SLA_HOURS'],
    )


class MovementRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(error_messages={'blank': 'Rejection reason is required', 'required': 'Rejection reason is required'})


class MovementListQuerySerializer(serializers.Serializer):
    """Pagination, sorting and SLA filter parameters for the movement list"""
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, default=10)
    sort_by = serializers.ChoiceField(choices=SORT_FIELDS, default='created_at')
    sort_order = serializers.ChoiceField(choices=['asc', 'desc'], default='desc')
    sla_status = serializers.ChoiceField(choices=SLA_STATUS_CHOICES, required=False)
