"""
Movement workflow.

    PENDING -> APPROVED -> IN_TRANSIT -> COMPLETED
    PENDING -> REJECTED

Each transition is one conditional UPDATE keyed on the expected current
status, so two racing requests against the same movement cannot both win:
the loser matches no row and gets InvalidTransition. Completing a movement
also moves the asset, inside the same database transaction.

All operations accept an explicit `now` so callers (and tests) control the
clock; it defaults to timezone.now().
"""
import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from assettrack.assets.models import Asset
from .exceptions import ValidationError, NotFound, InvalidTransition, translate_database_errors
from .models import Movement
from .sla import annotate_sla

logger = logging.getLogger(__name__)


def _sla_bounds():
    config = settings.MOVEMENT_SLA
    return config['MIN_SLA_HOURS'], config['MAX_SLA_HOURS']


def _clean_location(field, value):
    value = (value or '').strip()
    if not value:
        label = field.replace('_', ' ').capitalize()
        raise ValidationError(field, f"{label} is required")
    return value


def _clean_sla_hours(sla_hours):
    if sla_hours is None or sla_hours == '':
        return settings.MOVEMENT_SLA['DEFAULT_SLA_HOURS']
    low, high = _sla_bounds()
    message = f"SLA hours must be an integer between {low} and {high}"
    if isinstance(sla_hours, bool) or (isinstance(sla_hours, float) and not sla_hours.is_integer()):
        raise ValidationError('sla_hours', message)
    try:
        hours = int(sla_hours)
    except (TypeError, ValueError):
        raise ValidationError('sla_hours', message)
    if not low <= hours <= high:
        raise ValidationError('sla_hours', message)
    return hours


def _fetch(movement_id):
    try:
        return Movement.objects.select_related('asset', 'requested_by', 'approved_by').get(pk=movement_id)
    except Movement.DoesNotExist:
        raise NotFound('Movement not found')


def _transition(movement_id, action, from_status, to_status, now, **changes):
    """Move movement_id from from_status to to_status, or explain why not"""
    updated = Movement.objects.filter(pk=movement_id, status=from_status).update(
        status=to_status, updated_at=now, **changes
    )
    if updated:
        logger.info(f"Movement {movement_id}: {from_status} -> {to_status} ({action})")
        return

    current = Movement.objects.filter(pk=movement_id).values_list('status', flat=True).first()
    if current is None:
        raise NotFound('Movement not found')
    logger.warning(f"Refused to {action} movement {movement_id} in status {current}")
    raise InvalidTransition(action, current)


@translate_database_errors
def get_movement(movement_id, now=None):
    """Fetch one movement annotated with its SLA snapshot"""
    return annotate_sla(_fetch(movement_id), now or timezone.now())


@translate_database_errors
def create_movement(asset_id, from_location, to_location, requested_by,
                    reason='', notes='', sla_hours=None, now=None):
    """Open a PENDING movement request for an existing asset"""
    from_location = _clean_location('from_location', from_location)
    to_location = _clean_location('to_location', to_location)
    sla_hours = _clean_sla_hours(sla_hours)
    now = now or timezone.now()

    try:
        asset_exists = Asset.objects.filter(pk=asset_id).exists()
    except (TypeError, ValueError):
        raise ValidationError('asset_id', 'Valid asset ID is required')
    if not asset_exists:
        raise NotFound('Asset not found')

    movement = Movement.objects.create(
        asset_id=asset_id,
        from_location=from_location,
        to_location=to_location,
        reason=(reason or '').strip(),
        notes=(notes or '').strip(),
        sla_hours=sla_hours,
        status=Movement.STATUS_PENDING,
        request_date=now,
        requested_by=requested_by,
    )
    logger.info(f"Movement {movement.pk} requested for asset {asset_id}: {from_location} -> {to_location} (SLA {sla_hours}h)")
    return get_movement(movement.pk, now=now)


@translate_database_errors
def approve_movement(movement_id, approver, now=None):
    now = now or timezone.now()
    _transition(
        movement_id, 'approve', Movement.STATUS_PENDING, Movement.STATUS_APPROVED, now,
        approval_date=now, approved_by=approver,
    )
    return get_movement(movement_id, now=now)


@translate_database_errors
def reject_movement(movement_id, reason, now=None):
    """Reject a pending request. A non-blank reason replaces the notes."""
    now = now or timezone.now()
    changes = {}
    reason = (reason or '').strip()
    if reason:
        changes['notes'] = reason
    _transition(movement_id, 'reject', Movement.STATUS_PENDING, Movement.STATUS_REJECTED, now, **changes)
    return get_movement(movement_id, now=now)


@translate_database_errors
def dispatch_movement(movement_id, now=None):
    now = now or timezone.now()
    _transition(
        movement_id, 'dispatch', Movement.STATUS_APPROVED, Movement.STATUS_IN_TRANSIT, now,
        dispatched_at=now,
    )
    return get_movement(movement_id, now=now)


@translate_database_errors
def complete_movement(movement_id, now=None):
    """Mark a movement received and move its asset to the destination, atomically"""
    now = now or timezone.now()
    with transaction.atomic():
        _transition(
            movement_id, 'complete', Movement.STATUS_IN_TRANSIT, Movement.STATUS_COMPLETED, now,
            received_at=now,
        )
        asset_id, to_location = Movement.objects.filter(pk=movement_id).values_list('asset_id', 'to_location').get()
        Asset.objects.filter(pk=asset_id).update(location=to_location, updated_at=now)
    logger.info(f"Asset {asset_id} relocated to {to_location} by movement {movement_id}")
    return get_movement(movement_id, now=now)


@translate_database_errors
def delete_movement(movement_id):
    """
    Hard-delete a movement in any state. Returns the deleted instance so the
    caller can still log what was removed.
    """
    movement = _fetch(movement_id)
    if movement.is_active:
        logger.warning(f"Deleting movement {movement_id} while still {movement.status}")
    movement.delete()
    return movement
