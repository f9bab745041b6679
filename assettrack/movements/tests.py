"""
Test suite for the movements module
Tests: SLA clock, workflow transitions, concurrent transitions, fleet aggregation, movement API, admin
"""
import threading
import time
from datetime import datetime, timedelta, timezone as dt_timezone
from unittest import mock

from django.contrib import admin
from django.db import DatabaseError, connection
from django.test import SimpleTestCase, TestCase, TransactionTestCase
from django.utils import timezone
from rest_framework import status

from assettrack.assets.models import Asset
from assettrack.core.models import AuditLog
from assettrack.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from . import aggregation, services
from .exceptions import DataAccessError, InvalidTransition, NotFound, ValidationError
from .admin import MovementAdmin
from .models import Movement
from .sla import calculate_sla_status

T0 = datetime(2024, 1, 1, tzinfo=dt_timezone.utc)


def unsaved_movement(status=Movement.STATUS_PENDING, sla_hours=24, request_date=T0, **kwargs):
    return Movement(status=status, sla_hours=sla_hours, request_date=request_date, **kwargs)


class SLAClockTests(SimpleTestCase):
    """SLA snapshot is a pure function of the movement and the given time"""

    def test_same_inputs_give_same_snapshot(self):
        movement = unsaved_movement()
        now = T0 + timedelta(hours=7)
        self.assertEqual(calculate_sla_status(movement, now), calculate_sla_status(movement, now))

    def test_halfway_through_window(self):
        snapshot = calculate_sla_status(unsaved_movement(), T0 + timedelta(hours=12))
        self.assertEqual(snapshot['percent_elapsed'], 50)
        self.assertEqual(snapshot['elapsed_hours'], 12)
        self.assertEqual(snapshot['remaining_hours'], 12)
        self.assertEqual(snapshot['sla_status'], 'ON_TRACK')
        self.assertEqual(snapshot['deadline_date'], T0 + timedelta(hours=24))

    def test_past_deadline_is_breached_and_capped(self):
        snapshot = calculate_sla_status(unsaved_movement(), datetime(2024, 1, 2, 1, tzinfo=dt_timezone.utc))
        self.assertEqual(snapshot['percent_elapsed'], 100)
        self.assertEqual(snapshot['elapsed_hours'], 25)
        self.assertEqual(snapshot['remaining_hours'], 0)
        self.assertEqual(snapshot['sla_status'], 'BREACHED')

    def test_at_risk_band(self):
        snapshot = calculate_sla_status(unsaved_movement(sla_hours=10), T0 + timedelta(hours=8, minutes=15))
        self.assertEqual(snapshot['percent_elapsed'], 82)
        self.assertEqual(snapshot['sla_status'], 'AT_RISK')

    def test_band_edges(self):
        movement = unsaved_movement(sla_hours=10)
        self.assertEqual(calculate_sla_status(movement, T0 + timedelta(hours=8))['sla_status'], 'AT_RISK')
        self.assertEqual(calculate_sla_status(movement, T0 + timedelta(hours=7, minutes=59))['sla_status'], 'ON_TRACK')
        self.assertEqual(calculate_sla_status(movement, T0 + timedelta(hours=10))['sla_status'], 'BREACHED')

    def test_request_in_future_clamps_percent(self):
        snapshot = calculate_sla_status(unsaved_movement(), T0 - timedelta(hours=2))
        self.assertEqual(snapshot['percent_elapsed'], 0)
        self.assertEqual(snapshot['elapsed_hours'], -2)
        self.assertEqual(snapshot['remaining_hours'], 26)
        self.assertEqual(snapshot['sla_status'], 'ON_TRACK')

    def test_completed_within_window_is_met_regardless_of_now(self):
        movement = unsaved_movement(status=Movement.STATUS_COMPLETED, received_at=T0 + timedelta(hours=20))
        for now in (T0 + timedelta(hours=21), T0 + timedelta(days=90)):
            self.assertEqual(calculate_sla_status(movement, now)['sla_status'], 'MET')

    def test_completed_late_is_breached_regardless_of_now(self):
        movement = unsaved_movement(status=Movement.STATUS_COMPLETED, received_at=T0 + timedelta(hours=30))
        for now in (T0 + timedelta(hours=31), T0 + timedelta(days=90)):
            self.assertEqual(calculate_sla_status(movement, now)['sla_status'], 'BREACHED')

    def test_completed_without_receipt_falls_back_to_last_update(self):
        movement = unsaved_movement(
            status=Movement.STATUS_COMPLETED, received_at=None, updated_at=T0 + timedelta(hours=10)
        )
        self.assertEqual(calculate_sla_status(movement, T0 + timedelta(days=5))['sla_status'], 'MET')

    def test_rejected_movement_uses_active_bands(self):
        movement = unsaved_movement(status=Movement.STATUS_REJECTED)
        self.assertEqual(calculate_sla_status(movement, T0 + timedelta(hours=30))['sla_status'], 'BREACHED')


class MovementWorkflowTests(TestCase):
    """Transitions through the workflow service"""

    def setUp(self):
        self.requester = TestDataFactory.create_user()
        self.approver = TestDataFactory.create_shop_incharge()
        self.asset = TestDataFactory.create_asset(location='Tool Room')

    def _create(self, **kwargs):
        defaults = {
            'asset_id': self.asset.id,
            'from_location': 'Tool Room',
            'to_location': 'Assembly Line 2',
            'requested_by': self.requester,
        }
        defaults.update(kwargs)
        return services.create_movement(**defaults)

    def _status(self, movement):
        return Movement.objects.get(pk=movement.pk).status

    def test_create_movement_defaults(self):
        movement = self._create(now=T0)
        self.assertEqual(movement.status, Movement.STATUS_PENDING)
        self.assertEqual(movement.sla_hours, 24)
        self.assertEqual(movement.request_date, T0)
        self.assertEqual(movement.requested_by, self.requester)
        self.assertEqual(movement.sla['sla_status'], 'ON_TRACK')

    def test_create_trims_locations(self):
        movement = self._create(from_location='  Tool Room ', to_location=' Bay 4  ')
        self.assertEqual(movement.from_location, 'Tool Room')
        self.assertEqual(movement.to_location, 'Bay 4')

    def test_create_requires_locations(self):
        with self.assertRaises(ValidationError) as ctx:
            self._create(to_location='   ')
        self.assertEqual(ctx.exception.field, 'to_location')
        self.assertFalse(Movement.objects.exists())

    def test_create_rejects_out_of_range_sla(self):
        for bad in (0, 721, 2.5, 'abc', True):
            with self.assertRaises(ValidationError):
                self._create(sla_hours=bad)
        self.assertEqual(self._create(sla_hours=720).sla_hours, 720)
        self.assertEqual(self._create(sla_hours=1).sla_hours, 1)

    def test_create_for_missing_asset(self):
        with self.assertRaises(NotFound):
            self._create(asset_id=999999)

    def test_create_with_malformed_asset_id(self):
        with self.assertRaises(ValidationError) as ctx:
            self._create(asset_id='not-a-number')
        self.assertEqual(ctx.exception.field, 'asset_id')

    def test_full_lifecycle_moves_forward_only(self):
        movement = self._create(now=T0)

        approved = services.approve_movement(movement.id, self.approver, now=T0 + timedelta(hours=1))
        self.assertEqual(approved.status, Movement.STATUS_APPROVED)
        self.assertEqual(approved.approved_by, self.approver)
        self.assertEqual(approved.approval_date, T0 + timedelta(hours=1))

        dispatched = services.dispatch_movement(movement.id, now=T0 + timedelta(hours=2))
        self.assertEqual(dispatched.status, Movement.STATUS_IN_TRANSIT)
        self.assertEqual(dispatched.dispatched_at, T0 + timedelta(hours=2))

        completed = services.complete_movement(movement.id, now=T0 + timedelta(hours=5))
        self.assertEqual(completed.status, Movement.STATUS_COMPLETED)
        self.assertEqual(completed.received_at, T0 + timedelta(hours=5))
        self.assertEqual(completed.sla['sla_status'], 'MET')

        # Terminal: every further transition is refused
        for attempt in (
            lambda: services.approve_movement(movement.id, self.approver),
            lambda: services.reject_movement(movement.id, 'late'),
            lambda: services.dispatch_movement(movement.id),
            lambda: services.complete_movement(movement.id),
        ):
            with self.assertRaises(InvalidTransition):
                attempt()
        self.assertEqual(self._status(movement), Movement.STATUS_COMPLETED)

    def test_illegal_transitions_leave_status_unchanged(self):
        movement = self._create()
        with self.assertRaises(InvalidTransition) as ctx:
            services.dispatch_movement(movement.id)
        self.assertEqual(ctx.exception.current_status, Movement.STATUS_PENDING)
        self.assertEqual(ctx.exception.detail, 'Cannot dispatch movement with status: PENDING')
        with self.assertRaises(InvalidTransition):
            services.complete_movement(movement.id)
        self.assertEqual(self._status(movement), Movement.STATUS_PENDING)

        services.approve_movement(movement.id, self.approver)
        for attempt in (
            lambda: services.approve_movement(movement.id, self.approver),
            lambda: services.reject_movement(movement.id, 'no'),
            lambda: services.complete_movement(movement.id),
        ):
            with self.assertRaises(InvalidTransition):
                attempt()
        self.assertEqual(self._status(movement), Movement.STATUS_APPROVED)

    def test_rejected_is_terminal(self):
        movement = self._create(notes='original note')
        rejected = services.reject_movement(movement.id, 'Destination bay is full')
        self.assertEqual(rejected.status, Movement.STATUS_REJECTED)
        self.assertEqual(rejected.notes, 'Destination bay is full')
        with self.assertRaises(InvalidTransition):
            services.approve_movement(movement.id, self.approver)
        self.assertEqual(self._status(movement), Movement.STATUS_REJECTED)

    def test_blank_rejection_reason_keeps_notes(self):
        movement = self._create(notes='original note')
        rejected = services.reject_movement(movement.id, '   ')
        self.assertEqual(rejected.status, Movement.STATUS_REJECTED)
        self.assertEqual(rejected.notes, 'original note')

    def test_transition_on_missing_movement(self):
        for attempt in (
            lambda: services.approve_movement(424242, self.approver),
            lambda: services.reject_movement(424242, 'x'),
            lambda: services.dispatch_movement(424242),
            lambda: services.complete_movement(424242),
            lambda: services.get_movement(424242),
            lambda: services.delete_movement(424242),
        ):
            with self.assertRaises(NotFound):
                attempt()

    def test_complete_relocates_asset(self):
        movement = self._create(to_location='Paint Shop')
        services.approve_movement(movement.id, self.approver)
        services.dispatch_movement(movement.id)
        services.complete_movement(movement.id)
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.location, 'Paint Shop')

    def test_failed_complete_rolls_back_both_records(self):
        movement = self._create(to_location='Paint Shop')
        services.approve_movement(movement.id, self.approver)
        services.dispatch_movement(movement.id)

        with mock.patch.object(Asset.objects, 'filter', side_effect=DatabaseError('disk full')):
            with self.assertRaises(DataAccessError):
                services.complete_movement(movement.id)

        fresh = Movement.objects.get(pk=movement.pk)
        self.assertEqual(fresh.status, Movement.STATUS_IN_TRANSIT)
        self.assertIsNone(fresh.received_at)
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.location, 'Tool Room')

    def test_approve_reject_race_has_single_winner(self):
        movement = self._create()
        # Both callers observed PENDING before either wrote
        seen_by_approver = services.get_movement(movement.id)
        seen_by_rejecter = services.get_movement(movement.id)
        self.assertEqual(seen_by_approver.status, Movement.STATUS_PENDING)
        self.assertEqual(seen_by_rejecter.status, Movement.STATUS_PENDING)

        services.approve_movement(seen_by_approver.id, self.approver)
        with self.assertRaises(InvalidTransition) as ctx:
            services.reject_movement(seen_by_rejecter.id, 'too late')
        self.assertEqual(ctx.exception.current_status, Movement.STATUS_APPROVED)
        self.assertEqual(self._status(movement), Movement.STATUS_APPROVED)

    def test_reject_first_wins_race(self):
        movement = self._create()
        services.reject_movement(movement.id, 'not needed')
        with self.assertRaises(InvalidTransition):
            services.approve_movement(movement.id, self.approver)
        fresh = Movement.objects.get(pk=movement.pk)
        self.assertEqual(fresh.status, Movement.STATUS_REJECTED)
        self.assertIsNone(fresh.approved_by)

    def test_delete_in_any_state(self):
        movement = self._create()
        services.approve_movement(movement.id, self.approver)
        deleted = services.delete_movement(movement.id)
        self.assertEqual(deleted.status, Movement.STATUS_APPROVED)
        self.assertFalse(Movement.objects.filter(pk=movement.id).exists())

    def test_database_failure_is_translated(self):
        with mock.patch.object(Movement.objects, 'select_related', side_effect=DatabaseError('gone')):
            with self.assertRaises(DataAccessError) as ctx:
                services.get_movement(1)
        self.assertEqual(ctx.exception.status_code, 500)


class MovementAggregationTests(TestCase):
    """Fleet level metrics"""

    def setUp(self):
        self.now = datetime(2024, 3, 10, 12, tzinfo=dt_timezone.utc)
        self.user = TestDataFactory.create_user()
        self.asset = TestDataFactory.create_asset()

    def _movement(self, **kwargs):
        kwargs.setdefault('asset', self.asset)
        kwargs.setdefault('requested_by', self.user)
        return TestDataFactory.create_movement(**kwargs)

    def test_compliance_rate(self):
        for hours in (5, 10, 23):
            self._movement(status=Movement.STATUS_COMPLETED, request_date=T0, received_at=T0 + timedelta(hours=hours))
        self._movement(status=Movement.STATUS_COMPLETED, request_date=T0, received_at=T0 + timedelta(hours=30))
        # No receipt timestamp: excluded from numerator and denominator
        self._movement(status=Movement.STATUS_COMPLETED, request_date=T0, received_at=None)
        self._movement(status=Movement.STATUS_PENDING, request_date=T0)

        result = aggregation.get_compliance_rate()
        self.assertEqual(result['sla_compliance_rate'], 75.00)
        self.assertEqual(result['met_sla'], 3)
        self.assertEqual(result['total_completed'], 4)

    def test_compliance_rate_with_no_completions(self):
        self._movement(status=Movement.STATUS_PENDING)
        self.assertEqual(aggregation.get_compliance_rate()['sla_compliance_rate'], 0)

    def test_stats_counts_by_status_and_sla(self):
        self._movement(status=Movement.STATUS_PENDING, request_date=self.now - timedelta(hours=1))
        self._movement(status=Movement.STATUS_APPROVED, request_date=self.now - timedelta(hours=20))
        self._movement(status=Movement.STATUS_IN_TRANSIT, request_date=self.now - timedelta(hours=48))
        self._movement(status=Movement.STATUS_COMPLETED, request_date=self.now - timedelta(hours=48),
                       received_at=self.now - timedelta(hours=40))

        stats = aggregation.get_movement_stats(self.now)
        self.assertEqual(stats['total'], 4)
        self.assertEqual(stats['pending'], 1)
        self.assertEqual(stats['by_status'], {
            'PENDING': 1, 'APPROVED': 1, 'IN_TRANSIT': 1, 'COMPLETED': 1, 'REJECTED': 0,
        })
        self.assertEqual(stats['sla_metrics'], {
            'on_track': 1, 'at_risk': 1, 'breached': 1, 'total_active': 3,
        })

    def test_stats_on_empty_database(self):
        stats = aggregation.get_movement_stats(self.now)
        self.assertEqual(stats['total'], 0)
        self.assertEqual(stats['sla_metrics']['total_active'], 0)

    def test_pending_oldest_first(self):
        newer = self._movement(request_date=self.now - timedelta(hours=1))
        older = self._movement(request_date=self.now - timedelta(hours=5))
        self._movement(status=Movement.STATUS_APPROVED, request_date=self.now - timedelta(hours=9))

        pending = aggregation.get_pending_movements(self.now)
        self.assertEqual([m.id for m in pending], [older.id, newer.id])
        self.assertEqual(pending[0].sla['elapsed_hours'], 5)

    def test_overdue_includes_at_risk_and_breached_active_only(self):
        breached = self._movement(status=Movement.STATUS_IN_TRANSIT, request_date=self.now - timedelta(hours=30))
        at_risk = self._movement(status=Movement.STATUS_APPROVED, request_date=self.now - timedelta(hours=22))
        self._movement(status=Movement.STATUS_PENDING, request_date=self.now - timedelta(hours=2))
        self._movement(status=Movement.STATUS_COMPLETED, request_date=self.now - timedelta(hours=60),
                       received_at=self.now - timedelta(hours=1))
        self._movement(status=Movement.STATUS_REJECTED, request_date=self.now - timedelta(hours=60))

        overdue = aggregation.get_overdue_movements(self.now)
        self.assertEqual({m.id for m in overdue}, {breached.id, at_risk.id})
        self.assertEqual(aggregation.count_overdue_movements(self.now), 1)

    def test_filter_by_sla_status(self):
        self._movement(request_date=self.now - timedelta(hours=30))
        on_track = self._movement(request_date=self.now - timedelta(hours=1))
        result = aggregation.filter_by_sla_status(Movement.objects.all(), 'ON_TRACK', self.now)
        self.assertEqual([m.id for m in result], [on_track.id])

    def test_compliance_trend(self):
        day_1 = datetime(2024, 3, 8, 9, tzinfo=dt_timezone.utc)
        day_2 = datetime(2024, 3, 9, 9, tzinfo=dt_timezone.utc)
        self._movement(from_location='Tool Room', request_date=day_1, status=Movement.STATUS_COMPLETED,
                       received_at=day_1 + timedelta(hours=4))
        self._movement(from_location='Tool Room', request_date=day_1, status=Movement.STATUS_COMPLETED,
                       received_at=day_1 + timedelta(hours=40))
        self._movement(from_location='Paint Shop', request_date=day_2)
        # Outside the window
        self._movement(from_location='Paint Shop', request_date=self.now - timedelta(days=40))

        trend = aggregation.get_compliance_trend(30, now=self.now)
        self.assertEqual(trend['period'], 30)
        self.assertEqual(trend['movement_trends'], [
            {'date': '2024-03-08', 'count': 2},
            {'date': '2024-03-09', 'count': 1},
        ])
        self.assertEqual(trend['location_frequency'], [
            {'location': 'Tool Room', 'count': 2},
            {'location': 'Paint Shop', 'count': 1},
        ])
        self.assertEqual(trend['sla_breach_rates'], [{'date': '2024-03-08', 'rate': 50.0}])

    def test_trend_window_validation(self):
        for bad in (0, -3, 366, 'week', None):
            with self.assertRaises(ValidationError):
                aggregation.get_compliance_trend(bad, now=self.now)
        self.assertEqual(aggregation.get_compliance_trend('7', now=self.now)['period'], 7)


class MovementAPITests(TestCase):
    """Movement endpoints"""

    def setUp(self):
        self.operator = TestDataFactory.create_user()
        self.incharge = TestDataFactory.create_shop_incharge()
        self.admin = TestDataFactory.create_admin()
        self.asset = TestDataFactory.create_asset(location='Tool Room')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.operator)

    def _as(self, user):
        self.client.authenticate_user(user)
        return self.client

    def _create(self, **overrides):
        payload = {'asset_id': self.asset.id, 'from_location': 'Tool Room', 'to_location': 'Bay 7'}
        payload.update(overrides)
        return self.client.post('/api/v1/movements/', payload, format='json')

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/movements/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_movement(self):
        response = self._create(reason='Retooling', sla_hours=8)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'PENDING')
        self.assertEqual(response.data['sla_hours'], 8)
        self.assertEqual(response.data['asset']['asset_uid'], self.asset.asset_uid)
        self.assertEqual(response.data['requested_by']['id'], self.operator.id)
        self.assertEqual(response.data['sla']['sla_status'], 'ON_TRACK')
        self.assertTrue(AuditLog.objects.filter(action='movement_create', object_id=str(response.data['id'])).exists())

    def test_create_defaults_sla_hours(self):
        response = self._create()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sla_hours'], 24)

    def test_create_validation_errors(self):
        self.assertEqual(self._create(to_location='  ').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self._create(sla_hours=0).status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self._create(sla_hours=721).status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self._create(asset_id='abc').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Movement.objects.exists())

    def test_create_for_unknown_asset(self):
        response = self._create(asset_id=987654)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Not found', 'detail': 'Asset not found'})

    def test_get_movement(self):
        movement = TestDataFactory.create_movement(asset=self.asset)
        response = self.client.get(f'/api/v1/movements/{movement.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], movement.id)
        self.assertIn('deadline_date', response.data['sla'])

    def test_get_missing_movement(self):
        response = self.client.get('/api/v1/movements/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Not found')

    def test_operator_cannot_approve_or_reject(self):
        movement = TestDataFactory.create_movement(asset=self.asset)
        self.assertEqual(self.client.post(f'/api/v1/movements/{movement.id}/approve/').status_code,
                         status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.post(f'/api/v1/movements/{movement.id}/reject/', {'reason': 'x'}, format='json').status_code,
                         status.HTTP_403_FORBIDDEN)
        movement.refresh_from_db()
        self.assertEqual(movement.status, Movement.STATUS_PENDING)

    def test_workflow_through_api(self):
        movement_id = self._create().data['id']

        response = self._as(self.incharge).post(f'/api/v1/movements/{movement_id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'APPROVED')
        self.assertEqual(response.data['approved_by']['id'], self.incharge.id)

        response = self._as(self.operator).post(f'/api/v1/movements/{movement_id}/dispatch/')
        self.assertEqual(response.data['status'], 'IN_TRANSIT')

        response = self.client.post(f'/api/v1/movements/{movement_id}/complete/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'COMPLETED')
        self.assertEqual(response.data['sla']['sla_status'], 'MET')

        self.asset.refresh_from_db()
        self.assertEqual(self.asset.location, 'Bay 7')
        actions = set(AuditLog.objects.filter(object_id=str(movement_id)).values_list('action', flat=True))
        self.assertEqual(actions, {'movement_create', 'movement_approve', 'movement_dispatch', 'movement_complete'})

    def test_superuser_counts_as_admin(self):
        root = TestDataFactory.create_user(is_superuser=True, is_staff=True)
        movement = TestDataFactory.create_movement(asset=self.asset)
        response = self._as(root).post(f'/api/v1/movements/{movement.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_invalid_transition_returns_conflict(self):
        movement = TestDataFactory.create_movement(asset=self.asset)
        response = self.client.post(f'/api/v1/movements/{movement.id}/dispatch/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'Invalid transition')
        self.assertEqual(response.data['current_status'], 'PENDING')
        self.assertEqual(response.data['detail'], 'Cannot dispatch movement with status: PENDING')

    def test_reject_requires_reason(self):
        movement = TestDataFactory.create_movement(asset=self.asset)
        client = self._as(self.incharge)
        response = client.post(f'/api/v1/movements/{movement.id}/reject/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('reason', response.data)

        response = client.post(f'/api/v1/movements/{movement.id}/reject/', {'reason': 'Bay closed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'REJECTED')
        self.assertEqual(response.data['notes'], 'Bay closed')

    def test_transition_on_missing_movement(self):
        response = self.client.post('/api/v1/movements/99999/complete/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_is_admin_only(self):
        movement = TestDataFactory.create_movement(asset=self.asset)
        response = self._as(self.incharge).delete(f'/api/v1/movements/{movement.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Movement.objects.filter(pk=movement.id).exists())

        response = self._as(self.admin).delete(f'/api/v1/movements/{movement.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Movement.objects.filter(pk=movement.id).exists())
        self.assertTrue(AuditLog.objects.filter(action='movement_delete', object_id=str(movement.id)).exists())

    def test_list_pagination(self):
        for _ in range(12):
            TestDataFactory.create_movement(asset=self.asset, requested_by=self.operator)
        response = self.client.get('/api/v1/movements/?limit=5&page=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 12)
        self.assertEqual(response.data['total_pages'], 3)
        self.assertEqual(response.data['page'], 2)
        self.assertEqual(response.data['next'], 3)
        self.assertEqual(response.data['previous'], 1)
        self.assertEqual(len(response.data['results']), 5)

    def test_list_filters_by_status(self):
        TestDataFactory.create_movement(asset=self.asset, requested_by=self.operator)
        TestDataFactory.create_movement(asset=self.asset, requested_by=self.operator, status=Movement.STATUS_APPROVED)
        response = self.client.get('/api/v1/movements/?status=APPROVED')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['status'], 'APPROVED')

    def test_list_filters_by_sla_status_before_paging(self):
        now = timezone.now()
        for _ in range(3):
            TestDataFactory.create_movement(asset=self.asset, requested_by=self.operator, request_date=now)
        breached = TestDataFactory.create_movement(
            asset=self.asset, requested_by=self.operator, request_date=now - timedelta(hours=48)
        )
        response = self.client.get('/api/v1/movements/?sla_status=BREACHED&limit=2&sort_by=request_date&sort_order=desc')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], breached.id)

    def test_list_sorting(self):
        now = timezone.now()
        old = TestDataFactory.create_movement(asset=self.asset, requested_by=self.operator, request_date=now - timedelta(hours=3))
        new = TestDataFactory.create_movement(asset=self.asset, requested_by=self.operator, request_date=now)
        response = self.client.get('/api/v1/movements/?sort_by=request_date&sort_order=asc')
        self.assertEqual([row['id'] for row in response.data['results']], [old.id, new.id])

    def test_list_rejects_bad_query(self):
        self.assertEqual(self.client.get('/api/v1/movements/?sort_by=password').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.get('/api/v1/movements/?limit=500').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.get('/api/v1/movements/?sla_status=LATE').status_code, status.HTTP_400_BAD_REQUEST)

    def test_stats_pending_and_overdue_endpoints(self):
        now = timezone.now()
        TestDataFactory.create_movement(asset=self.asset, requested_by=self.operator, request_date=now - timedelta(hours=30))
        TestDataFactory.create_movement(asset=self.asset, requested_by=self.operator, request_date=now)

        stats = self.client.get('/api/v1/movements/stats/')
        self.assertEqual(stats.status_code, status.HTTP_200_OK)
        self.assertEqual(stats.data['pending'], 2)
        self.assertEqual(stats.data['sla_metrics']['breached'], 1)

        pending = self.client.get('/api/v1/movements/pending/')
        self.assertEqual(len(pending.data), 2)
        self.assertEqual(pending.data[0]['sla']['sla_status'], 'BREACHED')

        overdue = self.client.get('/api/v1/movements/overdue/')
        self.assertEqual(len(overdue.data), 1)

    def test_stats_database_failure_returns_500(self):
        with mock.patch.object(Movement.objects, 'values', side_effect=DatabaseError('connection reset')):
            response = self.client.get('/api/v1/movements/stats/')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'error': 'Internal server error', 'detail': 'Failed to access movement data'})

    def test_pending_and_trend_database_failure_returns_500(self):
        for url in ('/api/v1/movements/pending/', '/api/v1/reports/compliance-trend/'):
            with mock.patch.object(Movement.objects, 'filter', side_effect=DatabaseError('connection reset')):
                response = self.client.get(url)
            self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR, url)
            self.assertEqual(response.data['detail'], 'Failed to access movement data')


class MovementConcurrencyTests(TransactionTestCase):
    """Approve and reject issued at the same moment from separate connections"""

    ROUNDS = 5

    def setUp(self):
        self.requester = TestDataFactory.create_user()
        self.approver = TestDataFactory.create_shop_incharge()
        self.asset = TestDataFactory.create_asset(location='Tool Room')

    def _run(self, barrier, outcomes, action):
        try:
            barrier.wait()
            # SQLite may report a locked table to the slower writer; retry until it sees the committed row
            for _ in range(50):
                try:
                    action()
                except DataAccessError:
                    time.sleep(0.01)
                    continue
                except InvalidTransition:
                    outcomes.append('invalid')
                    return
                outcomes.append('ok')
                return
            outcomes.append('error')
        finally:
            connection.close()

    def test_concurrent_approve_and_reject_have_one_winner(self):
        for _ in range(self.ROUNDS):
            movement = services.create_movement(
                asset_id=self.asset.id, from_location='Tool Room', to_location='Bay 7', requested_by=self.requester
            )
            barrier = threading.Barrier(2)
            approve_outcome, reject_outcome = [], []
            threads = [
                threading.Thread(target=self._run, args=(
                    barrier, approve_outcome, lambda: services.approve_movement(movement.id, self.approver))),
                threading.Thread(target=self._run, args=(
                    barrier, reject_outcome, lambda: services.reject_movement(movement.id, 'not needed'))),
            ]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

            self.assertEqual(sorted(approve_outcome + reject_outcome), ['invalid', 'ok'])
            fresh = Movement.objects.get(pk=movement.pk)
            if approve_outcome == ['ok']:
                self.assertEqual(fresh.status, Movement.STATUS_APPROVED)
                self.assertEqual(fresh.approved_by, self.approver)
            else:
                self.assertEqual(fresh.status, Movement.STATUS_REJECTED)
                self.assertIsNone(fresh.approved_by)


class MovementAdminTests(TestCase):
    """Admin form restrictions"""

    def test_route_is_read_only_once_requested(self):
        model_admin = MovementAdmin(Movement, admin.site)
        self.assertNotIn('asset', model_admin.get_readonly_fields(None))
        movement = TestDataFactory.create_movement()
        readonly = model_admin.get_readonly_fields(None, obj=movement)
        for field in ('asset', 'from_location', 'to_location', 'status', 'approved_by'):
            self.assertIn(field, readonly)
