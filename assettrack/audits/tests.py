"""
Test suite for compliance audits
Tests: scheduling, lifecycle, role guards, list filters, stats, upcoming audits
"""
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from assettrack.core.models import AuditLog
from assettrack.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Audit


class AuditAPITests(TestCase):
    """Audit endpoints"""

    def setUp(self):
        self.operator = TestDataFactory.create_user()
        self.incharge = TestDataFactory.create_shop_incharge()
        self.admin = TestDataFactory.create_admin()
        self.asset = TestDataFactory.create_asset(location='Tool Room')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.incharge)

    def _as(self, user):
        self.client.authenticate_user(user)
        return self.client

    def _schedule(self, **overrides):
        payload = {
            'location': 'Tool Room',
            'scheduled_date': (timezone.now() + timedelta(days=3)).isoformat(),
            'total_assets': 20,
        }
        payload.update(overrides)
        return self.client.post('/api/v1/audits/', payload, format='json')

    def test_requires_authentication(self):
        self.client.logout()
        self.assertEqual(self.client.get('/api/v1/audits/').status_code, status.HTTP_401_UNAUTHORIZED)

    def test_schedule_audit(self):
        response = self._schedule(location='  Assembly Line 2  ', category='CNC_MACHINE')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], Audit.STATUS_SCHEDULED)
        self.assertEqual(response.data['location'], 'Assembly Line 2')
        self.assertEqual(response.data['auditor']['id'], self.incharge.id)
        self.assertEqual(response.data['completion_percentage'], 0)
        log = AuditLog.objects.get(action='audit_create')
        self.assertEqual(log.model_name, 'Audit')
        self.assertEqual(log.object_id, str(response.data['id']))

    def test_schedule_single_asset_audit(self):
        response = self._schedule(location='', asset_id=self.asset.id)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['location'])
        self.assertEqual(response.data['asset']['asset_uid'], self.asset.asset_uid)

    def test_schedule_for_missing_asset(self):
        response = self._schedule(asset_id=99999)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['detail'], 'Asset not found')
        self.assertFalse(Audit.objects.exists())

    def test_schedule_validation(self):
        self.assertEqual(self._schedule(scheduled_date='soon').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self._schedule(total_assets=-1).status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self._schedule(category='SPACESHIP').status_code, status.HTTP_400_BAD_REQUEST)

    def test_operator_cannot_schedule_or_update(self):
        audit = TestDataFactory.create_audit(auditor=self.incharge)
        self._as(self.operator)
        self.assertEqual(self._schedule().status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.patch(f'/api/v1/audits/{audit.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_audit(self):
        audit = TestDataFactory.create_audit(auditor=self.incharge)
        response = self.client.patch(f'/api/v1/audits/{audit.id}/', {'total_assets': 40, 'notes': 'Bring scanner'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_assets'], 40)
        self.assertEqual(response.data['status'], Audit.STATUS_SCHEDULED)
        self.assertEqual(AuditLog.objects.get(action='audit_update').changes['total_assets'], '40')

    def test_update_to_missing_asset(self):
        audit = TestDataFactory.create_audit(auditor=self.incharge)
        response = self.client.put(f'/api/v1/audits/{audit.id}/', {'asset_id': 99999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_is_admin_only(self):
        audit = TestDataFactory.create_audit(auditor=self.incharge)
        self.assertEqual(self.client.delete(f'/api/v1/audits/{audit.id}/').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self._as(self.admin).delete(f'/api/v1/audits/{audit.id}/').status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Audit.objects.filter(pk=audit.id).exists())
        self.assertEqual(AuditLog.objects.get(action='audit_delete').object_id, str(audit.id))

    def test_get_audit(self):
        audit = TestDataFactory.create_audit(total_assets=8, assets_scanned=6)
        response = self._as(self.operator).get(f'/api/v1/audits/{audit.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['completion_percentage'], 75)
        self.assertEqual(self.client.get('/api/v1/audits/99999/').status_code, status.HTTP_404_NOT_FOUND)

    def test_lifecycle_without_discrepancies(self):
        audit_id = self._schedule().data['id']
        response = self.client.post(f'/api/v1/audits/{audit_id}/start/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Audit.STATUS_IN_PROGRESS)

        response = self.client.post(f'/api/v1/audits/{audit_id}/complete/', {'assets_scanned': 20}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Audit.STATUS_COMPLETED)
        self.assertEqual(response.data['discrepancies'], 0)
        self.assertEqual(response.data['completion_percentage'], 100)
        self.assertIsNotNone(response.data['completed_date'])
        self.assertEqual(
            list(AuditLog.objects.filter(model_name='Audit').order_by('id').values_list('action', flat=True)),
            ['audit_create', 'audit_start', 'audit_complete']
        )

    def test_complete_with_discrepancies(self):
        audit = TestDataFactory.create_audit(status=Audit.STATUS_IN_PROGRESS, notes='Initial plan')
        response = self.client.post(
            f'/api/v1/audits/{audit.id}/complete/',
            {'assets_scanned': 9, 'discrepancies': 2, 'notes': 'Two tags missing'},
            format='json'
        )
        self.assertEqual(response.data['status'], Audit.STATUS_DISCREPANCY_FOUND)
        self.assertEqual(response.data['notes'], 'Two tags missing')

    def test_complete_keeps_notes_when_none_given(self):
        audit = TestDataFactory.create_audit(status=Audit.STATUS_IN_PROGRESS, notes='Initial plan')
        self.client.post(f'/api/v1/audits/{audit.id}/complete/', {'assets_scanned': 10}, format='json')
        audit.refresh_from_db()
        self.assertEqual(audit.notes, 'Initial plan')

    def test_complete_requires_scan_count(self):
        audit = TestDataFactory.create_audit(status=Audit.STATUS_IN_PROGRESS)
        response = self.client.post(f'/api/v1/audits/{audit.id}/complete/', {'discrepancies': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('assets_scanned', response.data)
        audit.refresh_from_db()
        self.assertEqual(audit.status, Audit.STATUS_IN_PROGRESS)

    def test_invalid_transitions_return_conflict(self):
        scheduled = TestDataFactory.create_audit()
        response = self.client.post(f'/api/v1/audits/{scheduled.id}/complete/', {'assets_scanned': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['current_status'], Audit.STATUS_SCHEDULED)

        completed = TestDataFactory.create_audit(status=Audit.STATUS_COMPLETED)
        response = self.client.post(f'/api/v1/audits/{completed.id}/start/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['detail'], 'Cannot start audit with status: COMPLETED')
        completed.refresh_from_db()
        self.assertEqual(completed.status, Audit.STATUS_COMPLETED)

    def test_transition_on_missing_audit(self):
        self.assertEqual(self.client.post('/api/v1/audits/99999/start/').status_code, status.HTTP_404_NOT_FOUND)

    def test_list_filters_and_paging(self):
        for _ in range(3):
            TestDataFactory.create_audit(category='CNC_MACHINE')
        TestDataFactory.create_audit(status=Audit.STATUS_COMPLETED, category='WORKSTATION')

        response = self.client.get('/api/v1/audits/?limit=2&page=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 4)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(len(response.data['results']), 2)

        response = self.client.get('/api/v1/audits/?status=SCHEDULED&category=CNC_MACHINE')
        self.assertEqual(response.data['count'], 3)
        response = self.client.get('/api/v1/audits/?category=WORKSTATION')
        self.assertEqual(response.data['results'][0]['status'], Audit.STATUS_COMPLETED)

    def test_list_sorting(self):
        now = timezone.now()
        late = TestDataFactory.create_audit(scheduled_date=now + timedelta(days=9))
        early = TestDataFactory.create_audit(scheduled_date=now + timedelta(days=2))
        response = self.client.get('/api/v1/audits/?sort_by=scheduled_date&sort_order=asc')
        self.assertEqual([row['id'] for row in response.data['results']], [early.id, late.id])

    def test_list_rejects_bad_query(self):
        self.assertEqual(self.client.get('/api/v1/audits/?status=LOST').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.get('/api/v1/audits/?sort_by=auditor').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.get('/api/v1/audits/?limit=0').status_code, status.HTTP_400_BAD_REQUEST)

    def test_stats(self):
        TestDataFactory.create_audit()
        TestDataFactory.create_audit(status=Audit.STATUS_COMPLETED, total_assets=10, assets_scanned=10)
        TestDataFactory.create_audit(status=Audit.STATUS_COMPLETED, total_assets=20, assets_scanned=17)
        TestDataFactory.create_audit(status=Audit.STATUS_DISCREPANCY_FOUND, total_assets=5, assets_scanned=4, discrepancies=3)

        response = self.client.get('/api/v1/audits/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 4)
        self.assertEqual(response.data['by_status'], {
            'SCHEDULED': 1, 'IN_PROGRESS': 0, 'COMPLETED': 2, 'DISCREPANCY_FOUND': 1,
        })
        self.assertEqual(response.data['scheduled'], 1)
        self.assertEqual(response.data['total_discrepancies'], 3)
        # 27 of 30 scanned across completed audits
        self.assertEqual(response.data['completion_rate'], 90.0)
        self.assertEqual(response.data['completed_count'], 2)

    def test_stats_without_completed_audits(self):
        response = self.client.get('/api/v1/audits/stats/')
        self.assertEqual(response.data['total'], 0)
        self.assertEqual(response.data['completion_rate'], 0.0)
        self.assertEqual(response.data['total_discrepancies'], 0)

    def test_scheduled_lists_upcoming_soonest_first(self):
        now = timezone.now()
        later = TestDataFactory.create_audit(scheduled_date=now + timedelta(days=10))
        sooner = TestDataFactory.create_audit(scheduled_date=now + timedelta(days=1))
        TestDataFactory.create_audit(scheduled_date=now - timedelta(days=1))
        TestDataFactory.create_audit(status=Audit.STATUS_IN_PROGRESS, scheduled_date=now + timedelta(days=2))

        response = self._as(self.operator).get('/api/v1/audits/scheduled/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data], [sooner.id, later.id])
