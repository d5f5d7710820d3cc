from rest_framework import serializers

from apps.audit.models import AuditLog
from apps.audit.redaction import redact


class AuditLogSerializer(serializers.ModelSerializer):
    """
    Full audit entry. Snapshots are redacted again on the way out so rows
    written before a pattern was added never leak it.
    """
    actor_email = serializers.CharField(source="actor.email", read_only=True, default=None)
    actor_name = serializers.CharField(source="actor.full_name", read_only=True, default=None)

    before_state = serializers.SerializerMethodField()
    after_state = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = [
            "id",
            "timestamp",
            "action",
            "target_entity",
            "target_id",
            "actor",
            "actor_email",
            "actor_name",
            "ip_address",
            "user_agent",
            "before_state",
            "after_state",
        ]
        read_only_fields = fields

    def get_before_state(self, obj):
        return redact(obj.before_state)

    def get_after_state(self, obj):
        return redact(obj.after_state)
