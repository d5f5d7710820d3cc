from rest_framework import serializers

EXPORT_FORMATS = ["json", "csv", "xlsx"]


class AuditExportSerializer(serializers.Serializer):
    export_format = serializers.ChoiceField(choices=EXPORT_FORMATS, default="json")
