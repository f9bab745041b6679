"""
Test suite for the core module
Tests: JWT login, current user, role guards, user administration, audit logs
"""
from unittest import mock

from django.test import TestCase
from rest_framework import status

from .models import AuditLog, User
from .test_utils import TestDataFactory, AuthenticatedAPIClient
from .utils import create_audit_log


class AuthTests(TestCase):
    """Test token endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='operator1', password='testpass123')
        self.client = AuthenticatedAPIClient()

    def test_login_returns_tokens_and_user(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'operator1', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['role'], User.ROLE_OPERATOR)

    def test_login_with_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'operator1', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh(self):
        login = self.client.post('/api/v1/auth/login/', {'username': 'operator1', 'password': 'testpass123'}, format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_me_reports_capabilities(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'operator1')
        self.assertFalse(response.data['can_approve_movements'])
        self.assertFalse(response.data['is_admin'])

        incharge = TestDataFactory.create_shop_incharge()
        self.client.authenticate_user(incharge)
        self.assertTrue(self.client.get('/api/v1/auth/me/').data['can_approve_movements'])

    def test_superuser_effective_role_is_admin(self):
        root = TestDataFactory.create_user(is_superuser=True, is_staff=True)
        self.assertEqual(root.role, User.ROLE_OPERATOR)
        self.assertEqual(root.effective_role, User.ROLE_ADMIN)


class UserAdminTests(TestCase):
    """User administration is admin-only"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.operator = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()

    def test_non_admin_is_forbidden(self):
        self.client.authenticate_user(self.operator)
        self.assertEqual(self.client.get('/api/v1/users/').status_code, status.HTTP_403_FORBIDDEN)

    def test_list_and_filter_by_role(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/users/?role=ADMIN')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([u['id'] for u in response.data], [self.admin.id])

    def test_create_user(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/users/', {
            'username': 'incharge2',
            'email': 'incharge2@test.com',
            'password': 'Sh0p-Floor-2024!',
            'password_confirm': 'Sh0p-Floor-2024!',
            'role': User.ROLE_SHOP_INCHARGE,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        created = User.objects.get(username='incharge2')
        self.assertEqual(created.role, User.ROLE_SHOP_INCHARGE)
        self.assertTrue(created.check_password('Sh0p-Floor-2024!'))

    def test_create_user_password_mismatch(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/users/', {
            'username': 'incharge3',
            'password': 'Sh0p-Floor-2024!',
            'password_confirm': 'different-2024!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_deactivates(self):
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/users/{self.operator.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.operator.refresh_from_db()
        self.assertFalse(self.operator.is_active)

    def test_cannot_delete_self(self):
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AuditLogTests(TestCase):
    """Audit log helper and endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_audit_log(self):
        log = create_audit_log(user=self.user, action='asset_update', model_name='Asset', object_id=7,
                               changes={'location': {'old': 'A', 'new': 'B'}})
        self.assertEqual(log.object_id, '7')
        self.assertEqual(log.user, self.user)

    def test_missing_fields_are_skipped(self):
        self.assertIsNone(create_audit_log(user=self.user, action='asset_update'))
        self.assertFalse(AuditLog.objects.exists())

    def test_failures_are_swallowed(self):
        with mock.patch.object(AuditLog.objects, 'create', side_effect=RuntimeError('boom')):
            self.assertIsNone(create_audit_log(user=self.user, action='create', model_name='Asset', object_id=1))

    def test_list_filters(self):
        create_audit_log(user=self.user, action='movement_create', model_name='Movement', object_id=1)
        create_audit_log(user=self.user, action='asset_create', model_name='Asset', object_id=1)
        response = self.client.get('/api/v1/audit-logs/?model_name=Movement')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], 'movement_create')

    def test_list_rejects_bad_paging(self):
        response = self.client.get('/api/v1/audit-logs/?page=first')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
