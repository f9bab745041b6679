from django.conf import settings
from django.db import models


class Asset(models.Model):
    """Physical factory asset whose location is tracked through movements"""
    CATEGORY_CHOICES = [
        ('TOOL_ROOM_SPM', 'Tool Room SPM'),
        ('CNC_MACHINE', 'CNC Machine'),
        ('WORKSTATION', 'Workstation'),
        ('MATERIAL_HANDLING', 'Material Handling'),
    ]

    STATUS_ACTIVE = 'ACTIVE'
    STATUS_MAINTENANCE = 'MAINTENANCE'
    STATUS_INACTIVE = 'INACTIVE'
    STATUS_RETIRED = 'RETIRED'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_MAINTENANCE, 'Maintenance'),
        (STATUS_INACTIVE, 'Inactive'),
        (STATUS_RETIRED, 'Retired'),
    ]

    CRITICALITY_HIGH = 'HIGH'
    CRITICALITY_CHOICES = [
        (CRITICALITY_HIGH, 'High'),
        ('MEDIUM', 'Medium'),
        ('LOW', 'Low'),
    ]

    asset_uid = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=200)
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    location = models.CharField(max_length=255)
    criticality = models.CharField(max_length=10, choices=CRITICALITY_CHOICES, default='MEDIUM')
    owner_department = models.CharField(max_length=100, blank=True)
    make = models.CharField(max_length=100, blank=True)
    model = models.CharField(max_length=100, blank=True)
    serial_number = models.CharField(max_length=100, blank=True)
    purchase_date = models.DateField(null=True, blank=True)
    warranty_expiry = models.DateField(null=True, blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_assets')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.asset_uid} - {self.name}"

    class Meta:
        db_table = 'assets'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['category'], name='idx_asset_category'),
            models.Index(fields=['status'], name='idx_asset_status'),
            models.Index(fields=['location'], name='idx_asset_location'),
        ]
