from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.accounts.policy import MinimumRole
from apps.audit.serializers import (
    AuditLogSerializer,
    AuditLogDetailSerializer,
    AuditStatsSerializer,
    PaginatedAuditSerializer,
)
from apps.audit.services import AuditQueryService, PRIVILEGED
from core.constants import Role
from core.mixins.policy import PolicyViewMixin

AUTHENTICATED = MinimumRole(Role.PATIENT)


class AuditLogViewSet(PolicyViewMixin, viewsets.GenericViewSet):
    """
    Read-only access to the audit trail.
    No route accepts a write verb against an entry.
    """

    http_method_names = ["get", "head", "options"]
    serializer_class = AuditLogSerializer

    requirements = {
        "list": AUTHENTICATED,
        "retrieve": AUTHENTICATED,
        "search": AUTHENTICATED,
        "my_trail": AUTHENTICATED,
        "by_actor": AUTHENTICATED,
        "by_entity": AUTHENTICATED,
        "statistics": PRIVILEGED,
        "critical": PRIVILEGED,
        "failed_logins": PRIVILEGED,
    }

    def get_service(self):
        return AuditQueryService(self.principal_context, request=self.request)

    def _page(self, result):
        return Response(PaginatedAuditSerializer(result).data)

    def list(self, request):
        return self._page(self.get_service().list(request.query_params))

    def retrieve(self, request, pk=None):
        entry = self.get_service().get_by_id(pk)
        return Response(AuditLogDetailSerializer(entry).data)

    @action(detail=False, methods=["get"])
    def search(self, request):
        return self._page(
            self.get_service().search(request.query_params.get("q", ""), request.query_params)
        )

    @action(detail=False, methods=["get"], url_path="my-trail")
    def my_trail(self, request):
        return self._page(self.get_service().my_trail(request.query_params))

    @action(detail=False, methods=["get"], url_path=r"actor/(?P<actor_id>\d+)")
    def by_actor(self, request, actor_id=None):
        return self._page(self.get_service().get_by_actor(actor_id, request.query_params))

    @action(
        detail=False,
        methods=["get"],
        url_path=r"entity/(?P<entity_type>[^/.]+)/(?P<entity_id>[^/.]+)",
    )
    def by_entity(self, request, entity_type=None, entity_id=None):
        return self._page(
            self.get_service().get_by_entity(entity_type, entity_id, request.query_params)
        )

    @action(detail=False, methods=["get"])
    def statistics(self, request):
        stats = self.get_service().statistics(
            request.query_params.get("start_date"),
            request.query_params.get("end_date"),
        )
        return Response(AuditStatsSerializer(stats).data)

    @action(detail=False, methods=["get"])
    def critical(self, request):
        entries = self.get_service().recent_critical(request.query_params.get("limit", 50))
        return Response(AuditLogSerializer(entries, many=True).data)

    @action(detail=False, methods=["get"], url_path="failed-logins")
    def failed_logins(self, request):
        entries = self.get_service().failed_logins(request.query_params.get("period", "24h"))
        return Response(AuditLogSerializer(entries, many=True).data)
