from django.urls import path, include
from rest_framework.routers import DefaultRouter

from apps.audit.views import AuditLogViewSet, AuditExportView

router = DefaultRouter()
router.register(r'logs', AuditLogViewSet, basename='audit-logs')

urlpatterns = [
    # Registered before the router so "export" is not read as an entry id
    path('logs/export/', AuditExportView.as_view(), name='audit-export'),
    path('', include(router.urls)),
]
