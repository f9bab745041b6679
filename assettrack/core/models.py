from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with a factory role"""
    ROLE_ADMIN = 'ADMIN'
    ROLE_SHOP_INCHARGE = 'SHOP_INCHARGE'
    ROLE_MAINTENANCE = 'MAINTENANCE'
    ROLE_OPERATOR = 'OPERATOR'

    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_SHOP_INCHARGE, 'Shop Incharge'),
        (ROLE_MAINTENANCE, 'Maintenance'),
        (ROLE_OPERATOR, 'Operator'),
    ]

    phone = models.CharField(max_length=20, blank=True, null=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_OPERATOR)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def effective_role(self):
        # Superusers created via createsuperuser keep the default role
        if self.is_superuser:
            return self.ROLE_ADMIN
        return self.role

    class Meta:
        db_table = 'users'


class AuditLog(models.Model):
    """Activity log for movement, asset and audit operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('view', 'View'),
        ('movement_create', 'Movement Requested'),
        ('movement_approve', 'Movement Approved'),
        ('movement_reject', 'Movement Rejected'),
        ('movement_dispatch', 'Movement Dispatched'),
        ('movement_complete', 'Movement Completed'),
        ('movement_delete', 'Movement Deleted'),
        ('asset_create', 'Asset Registered'),
        ('asset_update', 'Asset Updated'),
        ('asset_delete', 'Asset Deleted'),
        ('audit_create', 'Audit Scheduled'),
        ('audit_update', 'Audit Updated'),
        ('audit_start', 'Audit Started'),
        ('audit_complete', 'Audit Completed'),
        ('audit_delete', 'Audit Deleted'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., asset name)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., asset UID)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_audit_created_at'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['model_name'], name='idx_audit_model_name'),
            models.Index(fields=['object_reference'], name='idx_audit_object_ref'),
        ]
