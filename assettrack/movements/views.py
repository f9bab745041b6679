import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.utils import timezone

from assettrack.core.models import User
from assettrack.core.permissions import IsAdminOrShopIncharge
from assettrack.core.utils import create_audit_log
from . import aggregation, services
from .exceptions import MovementError
from .filters import MovementFilter
from .models import Movement
from .serializers import (
    MovementSerializer, MovementCreateSerializer, MovementRejectSerializer,
    MovementListQuerySerializer,
)

logger = logging.getLogger('assettrack.movements')


def error_response(exc):
    return Response(exc.as_response_data(), status=exc.status_code)


def movement_response(movement, now, status_code=status.HTTP_200_OK):
    return Response(MovementSerializer(movement, context={'now': now}).data, status=status_code)


def log_movement_activity(request, action, movement, changes=None):
    create_audit_log(
        request=request,
        action=action,
        model_name='Movement',
        object_id=str(movement.id),
        object_name=movement.asset.name,
        object_reference=movement.asset.asset_uid,
        changes=changes,
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def movement_list_create(request):
    """List movements with filters and pagination, or request a new movement"""
    if request.method == 'GET':
        return _movement_list(request)

    serializer = MovementCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        movement = services.create_movement(
            asset_id=data['asset_id'],
            from_location=data['from_location'],
            to_location=data['to_location'],
            requested_by=request.user,
            reason=data.get('reason', ''),
            notes=data.get('notes', ''),
            sla_hours=data.get('sla_hours'),
        )
    except MovementError as exc:
        return error_response(exc)

    log_movement_activity(request, 'movement_create', movement, {
        'from_location': movement.from_location,
        'to_location': movement.to_location,
        'sla_hours': movement.sla_hours,
        'reason': movement.reason,
    })
    return movement_response(movement, timezone.now(), status.HTTP_201_CREATED)


def _movement_list(request):
    query = MovementListQuerySerializer(data=request.query_params)
    if not query.is_valid():
        return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)
    params = query.validated_data

    filterset = MovementFilter(
        request.query_params,
        queryset=Movement.objects.select_related('asset', 'requested_by', 'approved_by'),
    )
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)

    ordering = params['sort_by'] if params['sort_order'] == 'asc' else f"-{params['sort_by']}"
    queryset = filterset.qs.order_by(ordering, '-id')

    now = timezone.now()
    sla_status = params.get('sla_status')
    # SLA status is derived, so that filter runs over the whole filtered set before paging
    movements = aggregation.filter_by_sla_status(queryset, sla_status, now) if sla_status else queryset

    paginator = Paginator(movements, params['limit'])
    page_obj = paginator.get_page(params['page'])
    serializer = MovementSerializer(page_obj, many=True, context={'now': now})

    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': params['limit'],
        'total_pages': paginator.num_pages,
    })


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def movement_detail(request, pk):
    """Retrieve a movement, or hard-delete it (admins only)"""
    if request.method == 'GET':
        try:
            movement = services.get_movement(pk)
        except MovementError as exc:
            return error_response(exc)
        return movement_response(movement, timezone.now())

    if request.user.effective_role != User.ROLE_ADMIN:
        return Response(
            {'error': 'Permission denied', 'detail': 'Only admins can delete movements'},
            status=status.HTTP_403_FORBIDDEN
        )
    try:
        movement = services.delete_movement(pk)
    except MovementError as exc:
        return error_response(exc)

    create_audit_log(
        request=request,
        action='movement_delete',
        model_name='Movement',
        object_id=str(pk),
        object_name=movement.asset.name,
        object_reference=movement.asset.asset_uid,
        changes={'status': movement.status, 'from_location': movement.from_location, 'to_location': movement.to_location},
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminOrShopIncharge])
def movement_approve(request, pk):
    """Approve a pending movement request"""
    try:
        movement = services.approve_movement(pk, approver=request.user)
    except MovementError as exc:
        return error_response(exc)
    log_movement_activity(request, 'movement_approve', movement, {'status': movement.status})
    return movement_response(movement, timezone.now())


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminOrShopIncharge])
def movement_reject(request, pk):
    """Reject a pending movement request; the reason replaces the notes"""
    serializer = MovementRejectSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    reason = serializer.validated_data['reason']
    try:
        movement = services.reject_movement(pk, reason=reason)
    except MovementError as exc:
        return error_response(exc)
    log_movement_activity(request, 'movement_reject', movement, {'status': movement.status, 'reason': reason})
    return movement_response(movement, timezone.now())


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def movement_dispatch(request, pk):
    """Mark an approved movement as dispatched"""
    try:
        movement = services.dispatch_movement(pk)
    except MovementError as exc:
        return error_response(exc)
    log_movement_activity(request, 'movement_dispatch', movement, {'status': movement.status})
    return movement_response(movement, timezone.now())


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def movement_complete(request, pk):
    """Mark an in-transit movement as received; the asset moves to the destination"""
    try:
        movement = services.complete_movement(pk)
    except MovementError as exc:
        return error_response(exc)
    log_movement_activity(request, 'movement_complete', movement, {
        'status': movement.status,
        'asset_location': movement.to_location,
        'sla_status': movement.sla['sla_status'],
    })
    return movement_response(movement, timezone.now())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def movement_stats(request):
    """Movement counts by status and SLA breakdown of active movements"""
    try:
        stats = aggregation.get_movement_stats()
    except MovementError as exc:
        return error_response(exc)
    return Response(stats)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def movement_pending(request):
    """Pending movements awaiting approval, oldest first"""
    now = timezone.now()
    try:
        movements = aggregation.get_pending_movements(now)
    except MovementError as exc:
        return error_response(exc)
    return Response(MovementSerializer(movements, many=True, context={'now': now}).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def movement_overdue(request):
    """Active movements that are at risk or past their SLA deadline"""
    now = timezone.now()
    try:
        movements = aggregation.get_overdue_movements(now)
    except MovementError as exc:
        return error_response(exc)
    logger.info(f"User {request.user.username} viewed {len(movements)} overdue/at-risk movements")
    return Response(MovementSerializer(movements, many=True, context={'now': now}).data)
