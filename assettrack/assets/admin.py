from django.contrib import admin
from .models import Asset


@admin.register(Asset)
class AssetAdmin(admin.ModelAdmin):
    list_display = ['asset_uid', 'name', 'category', 'status', 'location', 'criticality', 'created_at']
    list_filter = ['category', 'status', 'criticality', 'created_at']
    search_fields = ['asset_uid', 'name', 'serial_number', 'location']
    ordering = ['asset_uid']
    readonly_fields = ['created_at', 'updated_at']
