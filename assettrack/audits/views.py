import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.db.models import Count, Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone

from assettrack.assets.models import Asset
from assettrack.core.models import User
from assettrack.core.permissions import IsAdminOrShopIncharge
from assettrack.core.utils import create_audit_log
from .filters import AuditFilter
from .models import Audit
from .serializers import AuditSerializer, AuditWriteSerializer, AuditCompleteSerializer, AuditListQuerySerializer

logger = logging.getLogger('assettrack.audits')

AUDIT_RELATIONS = ('asset', 'auditor')


def _audit_target(audit):
    if audit.asset_id:
        return audit.asset.asset_uid
    return audit.location or audit.category or 'all assets'


def _log_audit_activity(request, action, audit, changes=None, object_id=None):
    create_audit_log(
        request=request,
        action=action,
        model_name='Audit',
        object_id=str(object_id or audit.id),
        object_name=_audit_target(audit),
        object_reference=audit.scheduled_date.isoformat(),
        changes=changes,
    )


def _asset_missing(data):
    asset_id = data.get('asset_id')
    return asset_id is not None and not Asset.objects.filter(pk=asset_id).exists()


def _refused_transition(pk, action):
    current = Audit.objects.filter(pk=pk).values_list('status', flat=True).first()
    if current is None:
        return Response({'error': 'Not found', 'detail': 'Audit not found'}, status=status.HTTP_404_NOT_FOUND)
    logger.warning(f"Refused to {action} audit {pk} in status {current}")
    return Response(
        {'error': 'Invalid transition', 'detail': f"Cannot {action} audit with status: {current}", 'current_status': current},
        status=status.HTTP_409_CONFLICT
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def audit_list_create(request):
    """List audits with filters and pagination, or schedule a new audit (admins and shop incharges)"""
    if request.method == 'GET':
        return _audit_list(request)

    if not IsAdminOrShopIncharge().has_permission(request, None):
        return Response(
            {'error': 'Permission denied', 'detail': 'Only admins and shop incharges can schedule audits'},
            status=status.HTTP_403_FORBIDDEN
        )
    serializer = AuditWriteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    if _asset_missing(serializer.validated_data):
        return Response({'error': 'Not found', 'detail': 'Asset not found'}, status=status.HTTP_404_NOT_FOUND)

    audit = serializer.save(auditor=request.user, status=Audit.STATUS_SCHEDULED)
    audit = Audit.objects.select_related(*AUDIT_RELATIONS).get(pk=audit.pk)
    logger.info(f"Audit {audit.id} scheduled for {_audit_target(audit)} on {audit.scheduled_date}")
    _log_audit_activity(request, 'audit_create', audit, {
        'target': _audit_target(audit),
        'scheduled_date': audit.scheduled_date.isoformat(),
        'total_assets': audit.total_assets,
    })
    return Response(AuditSerializer(audit).data, status=status.HTTP_201_CREATED)


def _audit_list(request):
    query = AuditListQuerySerializer(data=request.query_params)
    if not query.is_valid():
        return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)
    params = query.validated_data

    filterset = AuditFilter(request.query_params, queryset=Audit.objects.select_related(*AUDIT_RELATIONS))
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)

    ordering = params['sort_by'] if params['sort_order'] == 'asc' else f"-{params['sort_by']}"
    paginator = Paginator(filterset.qs.order_by(ordering, '-id'), params['limit'])
    page_obj = paginator.get_page(params['page'])
    return Response({
        'results': AuditSerializer(page_obj, many=True).data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': params['limit'],
        'total_pages': paginator.num_pages,
    })


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def audit_detail(request, pk):
    """Retrieve, update (admins and shop incharges) or delete (admins) an audit"""
    audit = get_object_or_404(Audit.objects.select_related(*AUDIT_RELATIONS), pk=pk)

    if request.method == 'GET':
        return Response(AuditSerializer(audit).data)

    if request.method in ('PUT', 'PATCH'):
        if not IsAdminOrShopIncharge().has_permission(request, None):
            return Response(
                {'error': 'Permission denied', 'detail': 'Only admins and shop incharges can update audits'},
                status=status.HTTP_403_FORBIDDEN
            )
        serializer = AuditWriteSerializer(audit, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        if _asset_missing(serializer.validated_data):
            return Response({'error': 'Not found', 'detail': 'Asset not found'}, status=status.HTTP_404_NOT_FOUND)
        serializer.save()
        audit = Audit.objects.select_related(*AUDIT_RELATIONS).get(pk=pk)
        changes = {field: str(value) if value is not None else None for field, value in serializer.validated_data.items()}
        _log_audit_activity(request, 'audit_update', audit, changes)
        return Response(AuditSerializer(audit).data)

    if request.user.effective_role != User.ROLE_ADMIN:
        return Response(
            {'error': 'Permission denied', 'detail': 'Only admins can delete audits'},
            status=status.HTTP_403_FORBIDDEN
        )
    audit.delete()
    _log_audit_activity(request, 'audit_delete', audit, {'status': audit.status}, object_id=pk)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def audit_start(request, pk):
    """Start a scheduled audit"""
    started = Audit.objects.filter(pk=pk, status=Audit.STATUS_SCHEDULED).update(
        status=Audit.STATUS_IN_PROGRESS, updated_at=timezone.now()
    )
    if not started:
        return _refused_transition(pk, 'start')

    audit = Audit.objects.select_related(*AUDIT_RELATIONS).get(pk=pk)
    logger.info(f"Audit {pk} started")
    _log_audit_activity(request, 'audit_start', audit, {'status': audit.status})
    return Response(AuditSerializer(audit).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def audit_complete(request, pk):
    """Record the scan results of an audit in progress; any discrepancy flags it"""
    serializer = AuditCompleteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    now = timezone.now()
    final_status = Audit.STATUS_DISCREPANCY_FOUND if data['discrepancies'] > 0 else Audit.STATUS_COMPLETED
    changes = {
        'status': final_status,
        'completed_date': now,
        'assets_scanned': data['assets_scanned'],
        'discrepancies': data['discrepancies'],
        'updated_at': now,
    }
    if data.get('notes', '').strip():
        changes['notes'] = data['notes'].strip()

    completed = Audit.objects.filter(pk=pk, status=Audit.STATUS_IN_PROGRESS).update(**changes)
    if not completed:
        return _refused_transition(pk, 'complete')

    audit = Audit.objects.select_related(*AUDIT_RELATIONS).get(pk=pk)
    logger.info(f"Audit {pk} completed: {audit.assets_scanned}/{audit.total_assets} scanned, {audit.discrepancies} discrepancies")
    _log_audit_activity(request, 'audit_complete', audit, {
        'status': audit.status,
        'assets_scanned': audit.assets_scanned,
        'discrepancies': audit.discrepancies,
        'completion_percentage': audit.completion_percentage,
    })
    return Response(AuditSerializer(audit).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_stats(request):
    """Audit counts by status, total discrepancies and the scan completion rate of completed audits"""
    by_status = {value: 0 for value, _ in Audit.STATUS_CHOICES}
    for row in Audit.objects.values('status').annotate(count=Count('id')).order_by('status'):
        by_status[row['status']] = row['count']

    totals = Audit.objects.filter(status=Audit.STATUS_COMPLETED).aggregate(
        scanned=Sum('assets_scanned'), expected=Sum('total_assets'), count=Count('id')
    )
    scanned = totals['scanned'] or 0
    expected = totals['expected'] or 0

    return Response({
        'total': sum(by_status.values()),
        'by_status': by_status,
        'scheduled': by_status[Audit.STATUS_SCHEDULED],
        'total_discrepancies': Audit.objects.aggregate(total=Sum('discrepancies'))['total'] or 0,
        'completion_rate': round(scanned / expected * 100, 1) if expected else 0.0,
        'completed_count': totals['count'],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_scheduled(request):
    """Upcoming scheduled audits, soonest first"""
    audits = Audit.objects.select_related(*AUDIT_RELATIONS).filter(
        status=Audit.STATUS_SCHEDULED, scheduled_date__gte=timezone.now()
    ).order_by('scheduled_date', 'id')
    return Response(AuditSerializer(audits, many=True).data)
