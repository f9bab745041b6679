"""
Test suite for Reports module
Tests: Dashboard KPIs (assets, movements, audits), Dashboard Trends, Compliance Trend, Recent Activities
"""
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from assettrack.audits.models import Audit
from assettrack.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from assettrack.core.utils import create_audit_log
from assettrack.movements.models import Movement


class ReportsTests(TestCase):
    """Test report endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_dashboard_kpis(self):
        now = timezone.now()
        asset = TestDataFactory.create_asset(criticality='HIGH')
        TestDataFactory.create_asset(status='MAINTENANCE')
        TestDataFactory.create_movement(asset=asset, requested_by=self.user, request_date=now - timedelta(hours=30))
        TestDataFactory.create_movement(asset=asset, requested_by=self.user, status=Movement.STATUS_COMPLETED,
                                        request_date=now - timedelta(hours=10), received_at=now - timedelta(hours=2))

        response = self.client.get('/api/v1/reports/dashboard-kpis/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['assets']['total'], 2)
        self.assertEqual(response.data['assets']['maintenance'], 1)
        self.assertEqual(response.data['assets']['critical'], 1)
        self.assertEqual(response.data['movements']['pending'], 1)
        self.assertEqual(response.data['movements']['completed'], 1)
        self.assertEqual(response.data['movements']['overdue'], 1)
        self.assertEqual(response.data['compliance']['sla_compliance_rate'], 100.0)
        self.assertEqual(response.data['users']['total'], 1)

    def test_dashboard_kpis_empty(self):
        response = self.client.get('/api/v1/reports/dashboard-kpis/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['movements']['total'], 0)
        self.assertEqual(response.data['compliance']['total_completed'], 0)

    def test_dashboard_trends(self):
        TestDataFactory.create_asset()
        TestDataFactory.create_movement(requested_by=self.user)
        response = self.client.get('/api/v1/reports/dashboard-trends/?period=7')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['period'], 7)
        # create_movement also registers an asset
        self.assertEqual(sum(row['count'] for row in response.data['asset_registrations']), 2)
        self.assertEqual(sum(row['count'] for row in response.data['movement_trends']), 1)

    def test_compliance_trend(self):
        TestDataFactory.create_movement(requested_by=self.user, from_location='Stores')
        response = self.client.get('/api/v1/reports/compliance-trend/?days=14')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['period'], 14)
        self.assertEqual(response.data['location_frequency'], [{'location': 'Stores', 'count': 1}])

    def test_compliance_trend_rejects_bad_window(self):
        for days in ('0', '400', 'month'):
            response = self.client.get(f'/api/v1/reports/compliance-trend/?days={days}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertEqual(response.data['field'], 'days')

    def test_recent_activities(self):
        for i in range(3):
            create_audit_log(user=self.user, action='asset_create', model_name='Asset', object_id=i + 1)
        response = self.client.get('/api/v1/reports/activities/?limit=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        self.assertEqual(response.data[0]['object_id'], '3')

    def test_recent_activities_bad_limit(self):
        response = self.client.get('/api/v1/reports/activities/?limit=lots')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_recent_activities_limit_range(self):
        for limit in ('0', '101', '-5'):
            response = self.client.get(f'/api/v1/reports/activities/?limit={limit}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, limit)
        self.assertEqual(self.client.get('/api/v1/reports/activities/?limit=100').status_code, status.HTTP_200_OK)

    def test_dashboard_kpis_audit_counts(self):
        TestDataFactory.create_audit()
        TestDataFactory.create_audit(status=Audit.STATUS_IN_PROGRESS)
        TestDataFactory.create_audit(status=Audit.STATUS_COMPLETED)
        TestDataFactory.create_audit(status=Audit.STATUS_DISCREPANCY_FOUND, discrepancies=2)

        response = self.client.get('/api/v1/reports/dashboard-kpis/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['audits'], {
            'total': 4, 'scheduled': 1, 'in_progress': 1, 'completed': 1, 'discrepancy_found': 1,
        })

    def test_dashboard_trends_audits(self):
        day = (timezone.now() - timedelta(days=2)).replace(hour=10, minute=0, second=0, microsecond=0)
        TestDataFactory.create_audit(status=Audit.STATUS_COMPLETED, scheduled_date=day)
        TestDataFactory.create_audit(status=Audit.STATUS_DISCREPANCY_FOUND, scheduled_date=day + timedelta(hours=1))
        TestDataFactory.create_audit(status=Audit.STATUS_SCHEDULED, scheduled_date=day + timedelta(hours=2))
        # Outside the window
        TestDataFactory.create_audit(status=Audit.STATUS_COMPLETED, scheduled_date=day - timedelta(days=30))

        response = self.client.get('/api/v1/reports/dashboard-trends/?period=7')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['audit_trends'], [{'date': day.date().isoformat(), 'count': 3}])
        self.assertEqual(response.data['audit_completion_rates'], [{'date': day.date().isoformat(), 'rate': 33.33}])
