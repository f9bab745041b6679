from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard-kpis/', views.dashboard_kpis, name='dashboard-kpis'),
    path('reports/dashboard-trends/', views.dashboard_trends, name='dashboard-trends'),
    path('reports/compliance-trend/', views.compliance_trend, name='compliance-trend'),
    path('reports/activities/', views.recent_activities, name='recent-activities'),
]
