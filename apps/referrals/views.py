from rest_framework import mixins, status, viewsets
from rest_framework.response import Response

from apps.accounts.policy import AnyOf, OneOfPermissions, Owner
from apps.audit.hooks import audit_referral_creation
from core.constants import StaffPermission
from core.mixins.policy import PolicyViewMixin

from .models import Referral
from .serializers import ReferralCreateSerializer, ReferralSerializer
from .services import create_referral

MANAGE_USERS = OneOfPermissions(StaffPermission.MANAGE_USERS)


def _patient_or_manager(view):
    # Patients register their own referral at signup
    data = view.request.data
    patient_id = data.get("patient_id") if isinstance(data, dict) else None
    return AnyOf(Owner(patient_id), MANAGE_USERS)


class ReferralViewSet(PolicyViewMixin, mixins.CreateModelMixin, mixins.ListModelMixin,
                      mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    queryset = Referral.objects.select_related("partner", "patient").all()
    serializer_class = ReferralSerializer

    requirements = {
        "list": MANAGE_USERS,
        "retrieve": MANAGE_USERS,
        "create": _patient_or_manager,
    }

    def create(self, request, *args, **kwargs):
        serializer = ReferralCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        referral = create_referral(**serializer.validated_data)
        audit_referral_creation(request, referral)

        return Response(ReferralSerializer(referral).data, status=status.HTTP_201_CREATED)
