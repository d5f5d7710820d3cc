from rest_framework.views import APIView

from apps.accounts.policy import OneOfRoles
from apps.audit.serializers import AuditExportSerializer, AuditLogSerializer
from apps.audit.services import AuditQueryService
from core.constants import Role
from core.mixins.policy import PolicyViewMixin
from core.utils.excel_export import export_to_csv, export_to_excel, export_to_json

EXPORT_COLUMNS = AuditLogSerializer.Meta.fields


class AuditExportView(PolicyViewMixin, APIView):
    requirements = {
        "get": OneOfRoles(Role.SUPER_ADMIN),
    }

    def get(self, request):
        serializer = AuditExportSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        export_format = serializer.validated_data["export_format"]

        service = AuditQueryService(self.principal_context, request=request)
        entries = service.export(request.query_params)
        rows = AuditLogSerializer(entries, many=True).data

        response = self.render_export(rows, export_format)
        service.record_export(request.query_params, len(rows))
        return response

    def render_export(self, rows, export_format):
        filename = "audit_logs_export"
        if export_format == "csv":
            return export_to_csv(rows, filename, columns=EXPORT_COLUMNS)
        if export_format == "xlsx":
            return export_to_excel(rows, filename, sheet_name="Audit Logs", columns=EXPORT_COLUMNS)
        return export_to_json(rows, filename)
