from .base import AuditLogSerializer
from .detail import AuditLogDetailSerializer
from .query import AuditQueryParamsSerializer, AuditSearchSerializer, FailedLoginQuerySerializer, CriticalQuerySerializer
from .stats import AuditStatsQuerySerializer, AuditStatsSerializer
from .export import AuditExportSerializer
from .response import PaginatedAuditSerializer
