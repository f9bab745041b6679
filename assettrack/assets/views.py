import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.db.models import Count, ProtectedError
from django.shortcuts import get_object_or_404
from django.utils import timezone
from datetime import timedelta

from assettrack.core.models import User
from assettrack.core.utils import create_audit_log
from assettrack.movements.models import Movement
from assettrack.movements.serializers import MovementSerializer
from .filters import AssetFilter
from .models import Asset
from .serializers import AssetSerializer

logger = logging.getLogger('assettrack.assets')


def _log_asset_activity(request, action, asset, changes=None, object_id=None):
    create_audit_log(
        request=request,
        action=action,
        model_name='Asset',
        object_id=str(object_id or asset.id),
        object_name=asset.name,
        object_reference=asset.asset_uid,
        changes=changes,
    )


def _page_params(request, default_limit=20):
    page = max(1, int(request.query_params.get('page', 1)))
    limit = min(100, max(1, int(request.query_params.get('limit', default_limit))))
    return page, limit


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def asset_list_create(request):
    """List the asset registry with filters, or register a new asset"""
    if request.method == 'GET':
        filterset = AssetFilter(request.query_params, queryset=Asset.objects.select_related('created_by'))
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            page, limit = _page_params(request)
        except ValueError:
            return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)

        paginator = Paginator(filterset.qs.order_by('-created_at', '-id'), limit)
        page_obj = paginator.get_page(page)
        return Response({
            'results': AssetSerializer(page_obj, many=True).data,
            'count': paginator.count,
            'next': page_obj.next_page_number() if page_obj.has_next() else None,
            'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
            'page': page_obj.number,
            'page_size': limit,
            'total_pages': paginator.num_pages,
        })

    serializer = AssetSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    asset = serializer.save(created_by=request.user)
    logger.info(f"Asset {asset.asset_uid} registered at {asset.location} by {request.user.username}")
    _log_asset_activity(request, 'asset_create', asset, {
        'category': asset.category,
        'location': asset.location,
        'status': asset.status,
    })
    return Response(AssetSerializer(asset).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def asset_detail(request, pk):
    """Retrieve, update or delete an asset"""
    asset = get_object_or_404(Asset.objects.select_related('created_by'), pk=pk)

    if request.method == 'GET':
        return Response(AssetSerializer(asset).data)

    if request.method in ('PUT', 'PATCH'):
        before = AssetSerializer(asset).data
        serializer = AssetSerializer(asset, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        asset = serializer.save()
        after = AssetSerializer(asset).data
        changes = {
            field: {'old': before[field], 'new': after[field]}
            for field in serializer.validated_data if before.get(field) != after.get(field)
        }
        _log_asset_activity(request, 'asset_update', asset, changes)
        return Response(after)

    if request.user.effective_role != User.ROLE_ADMIN:
        return Response(
            {'error': 'Permission denied', 'detail': 'Only admins can delete assets'},
            status=status.HTTP_403_FORBIDDEN
        )
    try:
        asset.delete()
    except ProtectedError:
        logger.warning(f"Refused to delete asset {asset.asset_uid}: it has movement history")
        return Response(
            {'error': 'Asset in use', 'detail': 'Cannot delete an asset that has movements'},
            status=status.HTTP_400_BAD_REQUEST
        )
    _log_asset_activity(request, 'asset_delete', asset, {'location': asset.location}, object_id=pk)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def asset_movements(request, pk):
    """Movement history of one asset, newest request first"""
    asset = get_object_or_404(Asset, pk=pk)
    movements = Movement.objects.filter(asset=asset).select_related(
        'asset', 'requested_by', 'approved_by'
    ).order_by('-request_date', '-id')
    serializer = MovementSerializer(movements, many=True, context={'now': timezone.now()})
    return Response(serializer.data)


def _counts_by(field, choices):
    counts = {value: 0 for value, _ in choices}
    for row in Asset.objects.values(field).annotate(count=Count('id')).order_by(field):
        counts[row[field]] = row['count']
    return counts


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def asset_stats(request):
    """Asset counts by category, status and criticality, plus registrations in the last 30 days"""
    return Response({
        'total': Asset.objects.count(),
        'by_category': _counts_by('category', Asset.CATEGORY_CHOICES),
        'by_status': _counts_by('status', Asset.STATUS_CHOICES),
        'by_criticality': _counts_by('criticality', Asset.CRITICALITY_CHOICES),
        'recently_added': Asset.objects.filter(created_at__gte=timezone.now() - timedelta(days=30)).count(),
    })
