"""
Fleet level movement metrics for dashboards and reports.

Everything is computed from the current movement rows on each call; SLA
classification goes through the same clock used for single movements.
A database failure aborts the whole call with DataAccessError.
"""
import logging
from collections import defaultdict
from datetime import timedelta, timezone as dt_timezone

from django.conf import settings
from django.db.models import Count
from django.db.models.functions import TruncDate
from django.utils import timezone

from .exceptions import ValidationError, translate_database_errors
from .models import Movement
from .sla import (
    SLA_ON_TRACK, SLA_AT_RISK, SLA_BREACHED,
    annotate_sla, calculate_sla_status, deadline_for, met_deadline,
)

logger = logging.getLogger(__name__)


def _with_relations(queryset):
    return queryset.select_related('asset', 'requested_by', 'approved_by')


def filter_by_sla_status(movements, sla_status, now):
    """Annotate every movement and keep those whose SLA status matches"""
    return [m for m in (annotate_sla(m, now) for m in movements) if m.sla['sla_status'] == sla_status]


@translate_database_errors
def get_movement_stats(now=None):
    """Totals by workflow status plus the SLA breakdown of active movements"""
    now = now or timezone.now()

    by_status = {value: 0 for value, _ in Movement.STATUS_CHOICES}
    for row in Movement.objects.values('status').annotate(count=Count('id')).order_by('status'):
        by_status[row['status']] = row['count']

    sla_counts = {SLA_ON_TRACK: 0, SLA_AT_RISK: 0, SLA_BREACHED: 0}
    active = Movement.objects.filter(status__in=Movement.ACTIVE_STATUSES).only(
        'id', 'status', 'request_date', 'sla_hours', 'received_at', 'updated_at'
    )
    for movement in active.iterator():
        sla_counts[calculate_sla_status(movement, now)['sla_status']] += 1
    logger.debug(f"Movement stats computed: {sla_counts}")

    return {
        'total': sum(by_status.values()),
        'by_status': by_status,
        'pending': by_status[Movement.STATUS_PENDING],
        'sla_metrics': {
            'on_track': sla_counts[SLA_ON_TRACK],
            'at_risk': sla_counts[SLA_AT_RISK],
            'breached': sla_counts[SLA_BREACHED],
            'total_active': sum(sla_counts.values()),
        },
    }


@translate_database_errors
def get_pending_movements(now=None):
    """Pending requests, oldest first"""
    now = now or timezone.now()
    pending = _with_relations(Movement.objects.filter(status=Movement.STATUS_PENDING)).order_by('request_date', 'id')
    return [annotate_sla(m, now) for m in pending]


@translate_database_errors
def get_overdue_movements(now=None):
    """Active movements that are at risk of, or already past, their deadline"""
    now = now or timezone.now()
    active = _with_relations(Movement.objects.filter(status__in=Movement.ACTIVE_STATUSES))
    return [
        m for m in (annotate_sla(m, now) for m in active)
        if m.sla['sla_status'] in (SLA_BREACHED, SLA_AT_RISK)
    ]


@translate_database_errors
def count_overdue_movements(now=None):
    """Active movements whose deadline has already passed"""
    now = now or timezone.now()
    active = Movement.objects.filter(status__in=Movement.ACTIVE_STATUSES).values_list('request_date', 'sla_hours')
    return sum(1 for request_date, sla_hours in active.iterator() if now > deadline_for(request_date, sla_hours))


@translate_database_errors
def get_compliance_rate():
    """
    Share of completed movements received within their SLA window.

    Only completed movements with a receipt timestamp count, in both the
    numerator and the denominator.
    """
    completed = Movement.objects.filter(
        status=Movement.STATUS_COMPLETED, received_at__isnull=False
    ).values_list('request_date', 'sla_hours', 'received_at')

    total = 0
    met = 0
    for request_date, sla_hours, received_at in completed.iterator():
        total += 1
        if met_deadline(request_date, sla_hours, received_at):
            met += 1

    rate = round(met / total * 100, 2) if total else 0.0
    return {
        'sla_compliance_rate': rate,
        'met_sla': met,
        'total_completed': total,
    }


def clean_window_days(window_days):
    max_days = settings.MOVEMENT_SLA['MAX_TREND_DAYS']
    message = f"days must be an integer between 1 and {max_days}"
    try:
        days = int(window_days)
    except (TypeError, ValueError):
        raise ValidationError('days', message)
    if not 1 <= days <= max_days:
        raise ValidationError('days', message)
    return days


def _utc_day(value):
    return value.astimezone(dt_timezone.utc).date().isoformat()


@translate_database_errors
def get_compliance_trend(window_days=30, now=None):
    """
    Per-day series over the last window_days days, keyed by the UTC date of
    the request: movement counts, busiest source locations, and the share of
    completed movements that breached their SLA.
    """
    days = clean_window_days(window_days)
    now = now or timezone.now()
    start = now - timedelta(days=days)
    recent = Movement.objects.filter(request_date__gte=start)

    daily = recent.annotate(
        date=TruncDate('request_date', tzinfo=dt_timezone.utc)
    ).values('date').annotate(count=Count('id')).order_by('date')

    locations = recent.values('from_location').annotate(count=Count('id')).order_by('-count', 'from_location')

    breach_buckets = defaultdict(lambda: {'total': 0, 'breached': 0})
    completed = recent.filter(
        status=Movement.STATUS_COMPLETED, received_at__isnull=False, sla_hours__isnull=False
    ).values_list('request_date', 'sla_hours', 'received_at')
    for request_date, sla_hours, received_at in completed.iterator():
        bucket = breach_buckets[_utc_day(request_date)]
        bucket['total'] += 1
        if not met_deadline(request_date, sla_hours, received_at):
            bucket['breached'] += 1

    return {
        'period': days,
        'start_date': start.isoformat(),
        'movement_trends': [{'date': row['date'].isoformat(), 'count': row['count']} for row in daily],
        'location_frequency': [{'location': row['from_location'], 'count': row['count']} for row in locations],
        'sla_breach_rates': [
            {'date': date, 'rate': round(bucket['breached'] / bucket['total'] * 100, 2)}
            for date, bucket in sorted(breach_buckets.items())
        ],
    }
