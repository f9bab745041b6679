from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone
from assettrack.assets.models import Asset


class Movement(models.Model):
    """A requested relocation of one asset, tracked against an SLA window"""
    STATUS_PENDING = 'PENDING'
    STATUS_APPROVED = 'APPROVED'
    STATUS_IN_TRANSIT = 'IN_TRANSIT'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_REJECTED = 'REJECTED'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_IN_TRANSIT, 'In Transit'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_IN_TRANSIT)
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_REJECTED)

    asset = models.ForeignKey(Asset, on_delete=models.PROTECT, related_name='movements')
    from_location = models.CharField(max_length=255)
    to_location = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    sla_hours = models.PositiveIntegerField(
        default=24,
        validators=[MinValueValidator(1), MaxValueValidator(720)],
        help_text="Hours allowed from request to receipt (1-720)"
    )
    request_date = models.DateTimeField(default=timezone.now)
    approval_date = models.DateTimeField(null=True, blank=True)
    dispatched_at = models.DateTimeField(null=True, blank=True)
    received_at = models.DateTimeField(null=True, blank=True)
    requested_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='requested_movements')
    approved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_movements')
    reason = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Movement-{self.id} ({self.status})"

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    class Meta:
        db_table = 'movements'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_movement_status'),
            models.Index(fields=['request_date'], name='idx_movement_request_date'),
            models.Index(fields=['asset', 'status'], name='idx_movement_asset_status'),
        ]
