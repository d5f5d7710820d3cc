from django.conf import settings
from rest_framework import serializers

from apps.audit.filters import SEARCH_MAX_LENGTH

SORT_FIELDS = {
    "timestamp": "timestamp",
    "action": "action",
    "target_entity": "target_entity",
    "actor": "actor_id",
}

FAILED_LOGIN_PERIODS = {
    "1h": {"hours": 1},
    "24h": {"hours": 24},
    "7d": {"days": 7},
    "30d": {"days": 30},
}


def _audit_setting(name, default):
    return (getattr(settings, "AUDIT", {}) or {}).get(name, default)


class AuditQueryParamsSerializer(serializers.Serializer):
    """Paging and ordering. Filters are validated by AuditLogFilter."""
    page = serializers.IntegerField(min_value=1, default=1)
    page_size = serializers.IntegerField(min_value=1, required=False)
    sort_by = serializers.ChoiceField(choices=list(SORT_FIELDS), default="timestamp")
    sort_order = serializers.ChoiceField(choices=["asc", "desc"], default="desc")

    def to_internal_value(self, data):
        # Accept "ASC"/"DESC" as sent by older clients
        if hasattr(data, "get") and isinstance(data.get("sort_order"), str):
            data = data.copy()
            data["sort_order"] = data["sort_order"].lower()
        return super().to_internal_value(data)

    def validate_page_size(self, value):
        max_size = _audit_setting("MAX_PAGE_SIZE", 100)
        if value > max_size:
            raise serializers.ValidationError(f"Ensure this value is less than or equal to {max_size}.")
        return value

    def validate(self, attrs):
        attrs.setdefault("page_size", _audit_setting("DEFAULT_PAGE_SIZE", 50))
        return attrs


class AuditSearchSerializer(serializers.Serializer):
    q = serializers.CharField(max_length=SEARCH_MAX_LENGTH, trim_whitespace=True)


class CriticalQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=100, default=50)


class FailedLoginQuerySerializer(serializers.Serializer):
    period = serializers.ChoiceField(choices=list(FAILED_LOGIN_PERIODS), default="24h")
