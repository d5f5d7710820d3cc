from rest_framework import serializers


class AuditStatsQuerySerializer(serializers.Serializer):
    start_date = serializers.DateTimeField(required=False)
    end_date = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        start, end = attrs.get("start_date"), attrs.get("end_date")
        if start and end and start > end:
            raise serializers.ValidationError({"end_date": "end_date must be after start_date."})
        return attrs


class AuditStatsSerializer(serializers.Serializer):
    period_start = serializers.DateTimeField(allow_null=True)
    period_end = serializers.DateTimeField(allow_null=True)

    total_logs = serializers.IntegerField()
    unique_actors = serializers.IntegerField()

    by_action = serializers.ListField()
    by_entity = serializers.ListField()
