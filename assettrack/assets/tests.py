"""
Test suite for the asset registry
Tests: CRUD, filters, delete protection, movement history, stats
"""
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from assettrack.core.models import AuditLog
from assettrack.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Asset


class AssetAPITests(TestCase):
    """Test asset endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_asset(self):
        response = self.client.post('/api/v1/assets/', {
            'asset_uid': 'CNC-0001',
            'name': 'Haas VF-2',
            'category': 'CNC_MACHINE',
            'location': 'Machine Shop',
            'criticality': 'HIGH',
            'serial_number': 'SN-778',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'ACTIVE')
        self.assertEqual(response.data['created_by'], self.user.id)
        self.assertTrue(AuditLog.objects.filter(action='asset_create', object_reference='CNC-0001').exists())

    def test_create_requires_location(self):
        response = self.client.post('/api/v1/assets/', {
            'asset_uid': 'CNC-0002', 'name': 'Lathe', 'category': 'CNC_MACHINE', 'location': '   ',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('location', response.data)

    def test_duplicate_uid_rejected(self):
        TestDataFactory.create_asset(asset_uid='WS-1')
        response = self.client.post('/api/v1/assets/', {
            'asset_uid': 'WS-1', 'name': 'Bench', 'category': 'WORKSTATION', 'location': 'Bay 1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_warranty_before_purchase_rejected(self):
        response = self.client.post('/api/v1/assets/', {
            'asset_uid': 'MH-1', 'name': 'Forklift', 'category': 'MATERIAL_HANDLING', 'location': 'Dock',
            'purchase_date': '2024-05-01', 'warranty_expiry': '2024-01-01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('warranty_expiry', response.data)

    def test_list_filters_and_search(self):
        TestDataFactory.create_asset(asset_uid='CNC-10', name='Mazak', category='CNC_MACHINE', location='Line A')
        TestDataFactory.create_asset(asset_uid='WS-10', name='Assembly bench', category='WORKSTATION', location='Line B')
        TestDataFactory.create_asset(asset_uid='WS-11', name='Packing bench', category='WORKSTATION',
                                     location='Line B', status=Asset.STATUS_MAINTENANCE)

        response = self.client.get('/api/v1/assets/?category=WORKSTATION')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

        response = self.client.get('/api/v1/assets/?search=mazak')
        self.assertEqual([a['asset_uid'] for a in response.data['results']], ['CNC-10'])

        response = self.client.get('/api/v1/assets/?status=MAINTENANCE&location=line%20b')
        self.assertEqual([a['asset_uid'] for a in response.data['results']], ['WS-11'])

    def test_list_rejects_unknown_choice(self):
        response = self.client.get('/api/v1/assets/?category=SPACESHIP')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_logs_changes(self):
        asset = TestDataFactory.create_asset(location='Bay 1')
        response = self.client.patch(f'/api/v1/assets/{asset.id}/', {'status': 'MAINTENANCE'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'MAINTENANCE')
        log = AuditLog.objects.get(action='asset_update', object_id=str(asset.id))
        self.assertEqual(log.changes, {'status': {'old': 'ACTIVE', 'new': 'MAINTENANCE'}})

    def test_delete_is_admin_only(self):
        asset = TestDataFactory.create_asset()
        self.assertEqual(self.client.delete(f'/api/v1/assets/{asset.id}/').status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        self.assertEqual(self.client.delete(f'/api/v1/assets/{asset.id}/').status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Asset.objects.filter(pk=asset.id).exists())

    def test_delete_refused_when_asset_has_movements(self):
        asset = TestDataFactory.create_asset()
        TestDataFactory.create_movement(asset=asset, requested_by=self.user)
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/assets/{asset.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Asset.objects.filter(pk=asset.id).exists())

    def test_movement_history(self):
        asset = TestDataFactory.create_asset()
        other = TestDataFactory.create_asset()
        mine = TestDataFactory.create_movement(asset=asset, requested_by=self.user)
        TestDataFactory.create_movement(asset=other, requested_by=self.user)
        response = self.client.get(f'/api/v1/assets/{asset.id}/movements/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['id'] for m in response.data], [mine.id])
        self.assertIn('sla', response.data[0])

    def test_missing_asset(self):
        self.assertEqual(self.client.get('/api/v1/assets/99999/').status_code, status.HTTP_404_NOT_FOUND)

    def test_stats(self):
        TestDataFactory.create_asset(category='CNC_MACHINE', criticality='HIGH')
        TestDataFactory.create_asset(category='CNC_MACHINE', status=Asset.STATUS_MAINTENANCE)
        old = TestDataFactory.create_asset(category='WORKSTATION', criticality='LOW')
        Asset.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=45))

        response = self.client.get('/api/v1/assets/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(response.data['by_category'], {
            'TOOL_ROOM_SPM': 0, 'CNC_MACHINE': 2, 'WORKSTATION': 1, 'MATERIAL_HANDLING': 0,
        })
        self.assertEqual(response.data['by_status'], {'ACTIVE': 2, 'MAINTENANCE': 1, 'INACTIVE': 0, 'RETIRED': 0})
        self.assertEqual(response.data['by_criticality'], {'HIGH': 1, 'MEDIUM': 1, 'LOW': 1})
        self.assertEqual(response.data['recently_added'], 2)

    def test_stats_on_empty_registry(self):
        response = self.client.get('/api/v1/assets/stats/')
        self.assertEqual(response.data['total'], 0)
        self.assertEqual(set(response.data['by_status'].values()), {0})
