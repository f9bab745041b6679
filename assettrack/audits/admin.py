from django.contrib import admin
from .models import Audit


@admin.register(Audit)
class AuditAdmin(admin.ModelAdmin):
    list_display = ['id', 'location', 'category', 'asset', 'status', 'scheduled_date', 'auditor', 'assets_scanned', 'total_assets', 'discrepancies']
    list_filter = ['status', 'category', 'scheduled_date']
    search_fields = ['location', 'asset__asset_uid', 'auditor__username', 'notes']
    ordering = ['-scheduled_date']
    readonly_fields = ['status', 'completed_date', 'created_at', 'updated_at']
