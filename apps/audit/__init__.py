"""
Audit App for the clinic back office

Features:
1. Immutable, append-only audit entries
2. Redacted before/after snapshots of sensitive mutations
3. Non-blocking recording (thread pool or inline dispatch)
4. Principal-scoped query API (list, search, trail, statistics)
5. Export (JSON, CSV, Excel) for super admins

Usage:
- Decorate view handlers with ``apps.audit.hooks.audited``
- Install ``core.middleware.AuditContextMiddleware``
- Query through ``apps.audit.services.AuditQueryService``
"""
