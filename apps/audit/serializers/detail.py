from rest_framework import serializers

from apps.audit.utils import diff_dicts
from .base import AuditLogSerializer


class AuditLogDetailSerializer(AuditLogSerializer):
    changes = serializers.SerializerMethodField()
    changed_fields = serializers.SerializerMethodField()

    class Meta(AuditLogSerializer.Meta):
        fields = AuditLogSerializer.Meta.fields + [
            "changes",
            "changed_fields",
        ]
        read_only_fields = fields

    def get_changes(self, obj):
        before = self.get_before_state(obj)
        after = self.get_after_state(obj)
        if not before or not after:
            return None
        return diff_dicts(before, after)

    def get_changed_fields(self, obj):
        diffs = self.get_changes(obj)
        if not diffs:
            return []
        return list(diffs.keys())
