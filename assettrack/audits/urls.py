from django.urls import path
from .views import (
    audit_list_create, audit_detail, audit_start, audit_complete,
    audit_stats, audit_scheduled,
)

urlpatterns = [
    path('audits/', audit_list_create, name='audit-list-create'),
    path('audits/stats/', audit_stats, name='audit-stats'),
    path('audits/scheduled/', audit_scheduled, name='audit-scheduled'),
    path('audits/<int:pk>/', audit_detail, name='audit-detail'),

    # Lifecycle
    path('audits/<int:pk>/start/', audit_start, name='audit-start'),
    path('audits/<int:pk>/complete/', audit_complete, name='audit-complete'),
]
