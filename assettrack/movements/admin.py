from django.contrib import admin
from .models import Movement


@admin.register(Movement)
class MovementAdmin(admin.ModelAdmin):
    list_display = ['id', 'asset', 'from_location', 'to_location', 'status', 'sla_hours', 'request_date', 'requested_by', 'approved_by']
    list_filter = ['status', 'request_date']
    search_fields = ['asset__asset_uid', 'asset__name', 'from_location', 'to_location', 'notes']
    ordering = ['-request_date']
    # Status and workflow timestamps only change through the workflow endpoints
    readonly_fields = ['status', 'request_date', 'approval_date', 'dispatched_at', 'received_at',
                       'approved_by', 'sla_hours', 'created_at', 'updated_at']

    def get_readonly_fields(self, request, obj=None):
        fields = list(super().get_readonly_fields(request, obj))
        if obj is not None:
            # A requested move keeps its asset and route
            fields += ['asset', 'from_location', 'to_location']
        return fields
