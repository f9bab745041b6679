from django.urls import path
from .views import asset_list_create, asset_detail, asset_movements, asset_stats

urlpatterns = [
    path('assets/', asset_list_create, name='asset-list-create'),
    path('assets/stats/', asset_stats, name='asset-stats'),
    path('assets/<int:pk>/', asset_detail, name='asset-detail'),
    path('assets/<int:pk>/movements/', asset_movements, name='asset-movements'),
]
