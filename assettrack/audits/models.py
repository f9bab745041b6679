from django.conf import settings
from django.db import models
from assettrack.assets.models import Asset


class Audit(models.Model):
    """A scheduled physical verification of assets at a location, in a category, or of one asset"""
    STATUS_SCHEDULED = 'SCHEDULED'
    STATUS_IN_PROGRESS = 'IN_PROGRESS'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_DISCREPANCY_FOUND = 'DISCREPANCY_FOUND'

    STATUS_CHOICES = [
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_DISCREPANCY_FOUND, 'Discrepancy Found'),
    ]

    location = models.CharField(max_length=255, blank=True, null=True)
    category = models.CharField(max_length=30, choices=Asset.CATEGORY_CHOICES, blank=True, null=True)
    asset = models.ForeignKey(Asset, on_delete=models.SET_NULL, null=True, blank=True, related_name='audits')
    auditor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='audits')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_SCHEDULED)
    scheduled_date = models.DateTimeField()
    completed_date = models.DateTimeField(null=True, blank=True)
    total_assets = models.PositiveIntegerField(default=0)
    assets_scanned = models.PositiveIntegerField(default=0)
    discrepancies = models.PositiveIntegerField(default=0)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        target = self.location or self.category or (self.asset and self.asset.asset_uid) or 'all assets'
        return f"Audit-{self.id} {target} ({self.status})"

    @property
    def completion_percentage(self):
        if not self.total_assets:
            return 0
        return round(self.assets_scanned / self.total_assets * 100)

    class Meta:
        db_table = 'audits'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_audit_status'),
            models.Index(fields=['scheduled_date'], name='idx_audit_scheduled_date'),
        ]
