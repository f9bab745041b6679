import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count, Q
from django.db.models.functions import TruncDate
from django.utils import timezone
from datetime import timedelta, timezone as dt_timezone

from assettrack.assets.models import Asset
from assettrack.audits.models import Audit
from assettrack.core.models import AuditLog, User
from assettrack.core.serializers import AuditLogSerializer
from assettrack.movements import aggregation
from assettrack.movements.exceptions import MovementError
from assettrack.movements.models import Movement

logger = logging.getLogger('assettrack.reports')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_kpis(request):
    """Headline counts for the dashboard: assets, movements, audits, users and SLA compliance"""
    now = timezone.now()
    try:
        asset_counts = Asset.objects.aggregate(
            total=Count('id'),
            active=Count('id', filter=Q(status=Asset.STATUS_ACTIVE)),
            maintenance=Count('id', filter=Q(status=Asset.STATUS_MAINTENANCE)),
            retired=Count('id', filter=Q(status=Asset.STATUS_RETIRED)),
            critical=Count('id', filter=Q(criticality=Asset.CRITICALITY_HIGH)),
        )
        stats = aggregation.get_movement_stats(now)
        overdue = aggregation.count_overdue_movements(now)
        compliance = aggregation.get_compliance_rate()
        audit_counts = Audit.objects.aggregate(
            total=Count('id'),
            scheduled=Count('id', filter=Q(status=Audit.STATUS_SCHEDULED)),
            in_progress=Count('id', filter=Q(status=Audit.STATUS_IN_PROGRESS)),
            completed=Count('id', filter=Q(status=Audit.STATUS_COMPLETED)),
            discrepancy_found=Count('id', filter=Q(status=Audit.STATUS_DISCREPANCY_FOUND)),
        )
    except MovementError as exc:
        return Response(exc.as_response_data(), status=exc.status_code)

    by_status = stats['by_status']
    return Response({
        'assets': asset_counts,
        'movements': {
            'total': stats['total'],
            'pending': by_status[Movement.STATUS_PENDING],
            'approved': by_status[Movement.STATUS_APPROVED],
            'in_transit': by_status[Movement.STATUS_IN_TRANSIT],
            'completed': by_status[Movement.STATUS_COMPLETED],
            'rejected': by_status[Movement.STATUS_REJECTED],
            'overdue': overdue,
        },
        'audits': audit_counts,
        'users': {
            'total': User.objects.filter(is_active=True).count(),
        },
        'compliance': compliance,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_trends(request):
    """Asset registrations, audits and the movement compliance trend per day over ?period= days"""
    now = timezone.now()
    try:
        trend = aggregation.get_compliance_trend(request.query_params.get('period', 30), now)
    except MovementError as exc:
        return Response(exc.as_response_data(), status=exc.status_code)

    start = now - timedelta(days=trend['period'])
    registrations = Asset.objects.filter(created_at__gte=start).annotate(
        date=TruncDate('created_at', tzinfo=dt_timezone.utc)
    ).values('date').annotate(count=Count('id')).order_by('date')

    trend['asset_registrations'] = [
        {'date': row['date'].isoformat(), 'count': row['count']} for row in registrations
    ]

    audits = Audit.objects.filter(scheduled_date__gte=start).annotate(
        date=TruncDate('scheduled_date', tzinfo=dt_timezone.utc)
    ).values('date').annotate(
        total=Count('id'),
        completed=Count('id', filter=Q(status=Audit.STATUS_COMPLETED)),
    ).order_by('date')

    trend['audit_trends'] = [{'date': row['date'].isoformat(), 'count': row['total']} for row in audits]
    trend['audit_completion_rates'] = [
        {'date': row['date'].isoformat(), 'rate': round(row['completed'] / row['total'] * 100, 2)}
        for row in audits
    ]
    return Response(trend)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def compliance_trend(request):
    """Per-day movement volume, busiest source locations and SLA breach rates over ?days="""
    try:
        trend = aggregation.get_compliance_trend(request.query_params.get('days', 30))
    except MovementError as exc:
        return Response(exc.as_response_data(), status=exc.status_code)
    logger.info(f"Compliance trend generated for {trend['period']} days")
    return Response(trend)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def recent_activities(request):
    """Latest audit log entries"""
    try:
        limit = int(request.query_params.get('limit', 50))
    except ValueError:
        limit = None
    if limit is None or not 1 <= limit <= 100:
        return Response(
            {'error': 'limit must be an integer between 1 and 100'},
            status=status.HTTP_400_BAD_REQUEST
        )

    logs = AuditLog.objects.select_related('user').order_by('-created_at', '-id')[:limit]
    return Response(AuditLogSerializer(logs, many=True).data)
