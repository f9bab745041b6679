"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from assettrack.assets.models import Asset
from assettrack.audits.models import Audit
from assettrack.movements.models import Movement
from django.utils import timezone
from datetime import timedelta
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role=User.ROLE_OPERATOR,
                    is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_admin(**kwargs):
        return TestDataFactory.create_user(role=User.ROLE_ADMIN, **kwargs)

    @staticmethod
    def create_shop_incharge(**kwargs):
        return TestDataFactory.create_user(role=User.ROLE_SHOP_INCHARGE, **kwargs)

    @staticmethod
    def create_asset(asset_uid=None, name=None, location='Tool Room', category='CNC_MACHINE',
                     status=Asset.STATUS_ACTIVE, criticality='MEDIUM', created_by=None, **kwargs):
        """Create a test asset"""
        if not asset_uid:
            asset_uid = f'AST-{TestDataFactory.random_string(8).upper()}'
        return Asset.objects.create(
            asset_uid=asset_uid,
            name=name or f'Asset {asset_uid}',
            category=category,
            status=status,
            criticality=criticality,
            location=location,
            created_by=created_by,
            **kwargs
        )

    @staticmethod
    def create_movement(asset=None, requested_by=None, from_location=None, to_location='Assembly Line 2',
                        status=Movement.STATUS_PENDING, sla_hours=24, request_date=None, received_at=None,
                        updated_at=None, **kwargs):
        """
        Create a movement row directly, bypassing the workflow.

        updated_at is auto-maintained by Django, so an explicit value is
        written with a queryset update after the insert.
        """
        if asset is None:
            asset = TestDataFactory.create_asset()
        if requested_by is None:
            requested_by = TestDataFactory.create_user()
        movement = Movement.objects.create(
            asset=asset,
            requested_by=requested_by,
            from_location=from_location or asset.location,
            to_location=to_location,
            status=status,
            sla_hours=sla_hours,
            request_date=request_date or timezone.now(),
            received_at=received_at,
            **kwargs
        )
        if updated_at is not None:
            Movement.objects.filter(pk=movement.pk).update(updated_at=updated_at)
            movement.refresh_from_db()
        return movement

    @staticmethod
    def create_audit(auditor=None, location='Tool Room', category=None, asset=None, status=Audit.STATUS_SCHEDULED,
                     scheduled_date=None, total_assets=10, assets_scanned=0, discrepancies=0, **kwargs):
        """Create an audit row directly, bypassing the lifecycle endpoints"""
        if auditor is None:
            auditor = TestDataFactory.create_shop_incharge()
        return Audit.objects.create(
            auditor=auditor,
            location=location,
            category=category,
            asset=asset,
            status=status,
            scheduled_date=scheduled_date or timezone.now() + timedelta(days=1),
            total_assets=total_assets,
            assets_scanned=assets_scanned,
            discrepancies=discrepancies,
            **kwargs
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
