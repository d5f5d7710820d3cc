from rest_framework import serializers

from .base import AuditLogSerializer


class PaginationSerializer(serializers.Serializer):
    page = serializers.IntegerField()
    page_size = serializers.IntegerField()
    total_items = serializers.IntegerField()
    total_pages = serializers.IntegerField()


class PaginatedAuditSerializer(serializers.Serializer):
    items = AuditLogSerializer(many=True)
    pagination = PaginationSerializer()
