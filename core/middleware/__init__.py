# core/middleware/__init__.py

from .audit_middleware import AuditContextMiddleware

__all__ = ['AuditContextMiddleware']
