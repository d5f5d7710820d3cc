"""
Read access to the audit trail.

Every query goes through ``AuditQueryService`` built for one
PrincipalContext. Non-privileged principals only ever see their own
entries: any actor filter they send is replaced by their own id.
"""

import logging
import math
from datetime import timedelta
from typing import Any, Dict

from django.conf import settings
from django.core.paginator import EmptyPage, Paginator
from django.db.models import Count, Q
from django.utils import timezone
from django_filters.utils import translate_validation
from rest_framework.exceptions import NotFound, ValidationError

from apps.accounts.policy import MinimumRole, OneOfRoles, engine
from apps.audit.filters import AuditLogFilter, ENTITY_MAX_LENGTH
from apps.audit.hooks import audit_access
from apps.audit.models import AuditLog
from apps.audit.serializers.query import (
    AuditQueryParamsSerializer,
    AuditSearchSerializer,
    CriticalQuerySerializer,
    FailedLoginQuerySerializer,
    FAILED_LOGIN_PERIODS,
    SORT_FIELDS,
)
from apps.audit.serializers.stats import AuditStatsQuerySerializer
from core.constants import AuditActions, AuditEntities, Role

logger = logging.getLogger(__name__)

PRIVILEGED = MinimumRole(Role.ADMIN)
EXPORT_TIER = OneOfRoles(Role.SUPER_ADMIN)

CRITICAL_ENTITIES = (AuditEntities.USERS, AuditEntities.STAFF_MEMBERS)


def _audit_setting(name, default):
    return (getattr(settings, "AUDIT", {}) or {}).get(name, default)


def _as_dict(params) -> Dict[str, Any]:
    if params is None:
        return {}
    if hasattr(params, "lists"):
        # QueryDict: keep repeated keys (action=create&action=update)
        data = {key: values if len(values) > 1 else values[0] for key, values in params.lists()}
    else:
        data = dict(params)

    action = data.get("action")
    if isinstance(action, str):
        data["action"] = [a.strip() for a in action.split(",") if a.strip()]
    return data


class AuditQueryService:
    def __init__(self, context, request=None):
        self.context = context
        self.request = request

    # ==========================
    # SCOPING
    # ==========================

    @property
    def is_privileged(self) -> bool:
        return engine.evaluate(self.context, PRIVILEGED).allowed

    def _require(self, requirement):
        engine.authorize(self.context, requirement)

    def _scoped(self, params) -> Dict[str, Any]:
        params = _as_dict(params)
        if not self.is_privileged:
            params["actor"] = self.context.actor_id
        return params

    def _base_queryset(self):
        return AuditLog.objects.select_related("actor")

    def _filtered(self, params, queryset=None):
        filterset = AuditLogFilter(
            data=params,
            queryset=self._base_queryset() if queryset is None else queryset,
        )
        if not filterset.is_valid():
            raise translate_validation(filterset.errors)
        return filterset.qs

    def _paginate(self, queryset, params) -> Dict[str, Any]:
        serializer = AuditQueryParamsSerializer(data=params)
        serializer.is_valid(raise_exception=True)
        opts = serializer.validated_data

        prefix = "-" if opts["sort_order"] == "desc" else ""
        queryset = queryset.order_by(f"{prefix}{SORT_FIELDS[opts['sort_by']]}", f"{prefix}id")

        paginator = Paginator(queryset, opts["page_size"])
        try:
            items = list(paginator.page(opts["page"]).object_list)
        except EmptyPage:
            items = []

        return {
            "items": items,
            "pagination": {
                "page": opts["page"],
                "page_size": opts["page_size"],
                "total_items": paginator.count,
                "total_pages": math.ceil(paginator.count / opts["page_size"]),
            },
        }

    # ==========================
    # READ OPERATIONS
    # ==========================

    def list(self, params=None) -> Dict[str, Any]:
        params = self._scoped(params)
        return self._paginate(self._filtered(params), params)

    def get_by_id(self, entry_id) -> AuditLog:
        entry = self._base_queryset().filter(pk=entry_id).first()
        if entry is None:
            raise NotFound("Audit log not found.")

        if not self.is_privileged and entry.actor_id != self.context.actor_id:
            self._require(PRIVILEGED)
        return entry

    def get_by_actor(self, actor_id, params=None) -> Dict[str, Any]:
        if str(actor_id) != str(self.context.actor_id):
            self._require(PRIVILEGED)

        params = _as_dict(params)
        params["actor"] = actor_id
        return self._paginate(self._filtered(params), params)

    def get_by_entity(self, entity_type, entity_id, params=None) -> Dict[str, Any]:
        if not entity_type or len(entity_type) > ENTITY_MAX_LENGTH:
            raise ValidationError({"entity_type": f"Must be 1-{ENTITY_MAX_LENGTH} characters."})

        params = self._scoped(params)
        params["target_entity"] = entity_type
        params["target_id"] = str(entity_id)
        return self._paginate(self._filtered(params), params)

    def search(self, query, params=None) -> Dict[str, Any]:
        serializer = AuditSearchSerializer(data={"q": query})
        serializer.is_valid(raise_exception=True)

        params = self._scoped(params)
        params["q"] = serializer.validated_data["q"]
        return self._paginate(self._filtered(params), params)

    def my_trail(self, params=None) -> Dict[str, Any]:
        params = _as_dict(params)
        params["actor"] = self.context.actor_id
        return self._paginate(self._filtered(params), params)

    # ==========================
    # PRIVILEGED REPORTS
    # ==========================

    def statistics(self, start_date=None, end_date=None) -> Dict[str, Any]:
        self._require(PRIVILEGED)

        serializer = AuditStatsQuerySerializer(data={
            key: value for key, value in (("start_date", start_date), ("end_date", end_date)) if value
        })
        serializer.is_valid(raise_exception=True)
        start = serializer.validated_data.get("start_date")
        end = serializer.validated_data.get("end_date")

        qs = AuditLog.objects.all()
        if start:
            qs = qs.filter(timestamp__gte=start)
        if end:
            qs = qs.filter(timestamp__lte=end)

        by_action = list(
            qs.values("action").annotate(count=Count("id")).order_by("-count", "action")
        )
        by_entity = list(
            qs.values("target_entity").annotate(count=Count("id")).order_by("-count", "target_entity")[:10]
        )

        return {
            "period_start": start,
            "period_end": end,
            "total_logs": qs.count(),
            "unique_actors": qs.exclude(actor__isnull=True).values("actor_id").distinct().count(),
            "by_action": by_action,
            "by_entity": by_entity,
        }

    def recent_critical(self, limit=50):
        self._require(PRIVILEGED)

        serializer = CriticalQuerySerializer(data={"limit": limit})
        serializer.is_valid(raise_exception=True)

        return list(
            self._base_queryset()
            .filter(
                Q(action=AuditActions.DELETE)
                | Q(action=AuditActions.UPDATE, target_entity__in=CRITICAL_ENTITIES)
            )
            .order_by("-timestamp", "-id")[: serializer.validated_data["limit"]]
        )

    def failed_logins(self, period="24h"):
        self._require(PRIVILEGED)

        serializer = FailedLoginQuerySerializer(data={"period": period})
        serializer.is_valid(raise_exception=True)
        since = timezone.now() - timedelta(**FAILED_LOGIN_PERIODS[serializer.validated_data["period"]])

        return list(
            self._base_queryset()
            .filter(action=AuditActions.LOGIN, after_state__success=False, timestamp__gte=since)
            .order_by("-timestamp", "-id")
        )

    def export(self, params=None):
        """
        Rows for a bulk export, capped at AUDIT["EXPORT_LIMIT"].
        Call record_export() once the file has been rendered.
        """
        self._require(EXPORT_TIER)

        params = _as_dict(params)
        limit = _audit_setting("EXPORT_LIMIT", 10000)
        return list(self._filtered(params).order_by("-timestamp", "-id")[:limit])

    def record_export(self, params, row_count):
        """The delivered export is itself recorded as an access entry."""
        params = _as_dict(params)
        filters = {k: v for k, v in params.items() if k != "export_format"}
        audit_access(
            self.request,
            AuditEntities.AUDIT_LOGS,
            details={"export": True, "filters": filters, "row_count": row_count},
            actor_id=self.context.actor_id,
        )
        logger.info(f"Audit export by {self.context.actor_id}: {row_count} rows")
