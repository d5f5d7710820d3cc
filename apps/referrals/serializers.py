from rest_framework import serializers

from .models import Referral


class ReferralSerializer(serializers.ModelSerializer):
    partner_email = serializers.CharField(source="partner.email", read_only=True)
    patient_email = serializers.CharField(source="patient.email", read_only=True)

    class Meta:
        model = Referral
        fields = [
            "id",
            "partner",
            "partner_email",
            "patient",
            "patient_email",
            "commission_amount",
            "status",
            "created_at",
        ]
        read_only_fields = fields


class ReferralCreateSerializer(serializers.Serializer):
    partner_id = serializers.IntegerField(min_value=1)
    patient_id = serializers.IntegerField(min_value=1)
