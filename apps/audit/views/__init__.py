from .base import AuditLogViewSet
from .export import AuditExportView

__all__ = ["AuditLogViewSet", "AuditExportView"]
