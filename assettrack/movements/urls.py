from django.urls import path
from .views import (
    movement_list_create, movement_detail,
    movement_approve, movement_reject, movement_dispatch, movement_complete,
    movement_stats, movement_pending, movement_overdue,
)

urlpatterns = [
    path('movements/', movement_list_create, name='movement-list-create'),
    path('movements/stats/', movement_stats, name='movement-stats'),
    path('movements/pending/', movement_pending, name='movement-pending'),
    path('movements/overdue/', movement_overdue, name='movement-overdue'),
    path('movements/<int:pk>/', movement_detail, name='movement-detail'),

    # Workflow transitions
    path('movements/<int:pk>/approve/', movement_approve, name='movement-approve'),
    path('movements/<int:pk>/reject/', movement_reject, name='movement-reject'),
    path('movements/<int:pk>/dispatch/', movement_dispatch, name='movement-dispatch'),
    path('movements/<int:pk>/complete/', movement_complete, name='movement-complete'),
]
