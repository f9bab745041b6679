"""
URL configuration for the asset tracking backend.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Asset Tracking Admin Panel"
admin.site.site_title = "Asset Tracking Admin Portal"
admin.site.index_title = "Factory asset movements"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('assettrack.core.urls')),
    path('api/v1/', include('assettrack.assets.urls')),
    path('api/v1/', include('assettrack.movements.urls')),
    path('api/v1/', include('assettrack.audits.urls')),
    path('api/v1/', include('assettrack.reports.urls')),
]
