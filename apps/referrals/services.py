import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from rest_framework.exceptions import ValidationError

from apps.accounts.models import User
from core.constants import DEFAULT_COMMISSION, Role
from .models import Referral

logger = logging.getLogger(__name__)


def calculate_commission() -> Decimal:
    """Flat commission per referred patient."""
    return Decimal(DEFAULT_COMMISSION)


@transaction.atomic
def create_referral(*, partner_id, patient_id) -> Referral:
    partner = User.objects.filter(pk=partner_id).first()
    if partner is None or partner.role != Role.PARTNER:
        raise ValidationError({"partner_id": "Partner not found."})
    if not partner.is_active:
        raise ValidationError({"partner_id": "Partner account is inactive."})

    patient = User.objects.filter(pk=patient_id).first()
    if patient is None or patient.role != Role.PATIENT:
        raise ValidationError({"patient_id": "Patient not found."})

    duplicate = ValidationError({"patient_id": "Patient already has a referral."})
    if Referral.objects.filter(patient=patient).exists():
        raise duplicate

    # A concurrent request can win the race past the check above
    try:
        with transaction.atomic():
            referral = Referral.objects.create(
                partner=partner,
                patient=patient,
                commission_amount=calculate_commission(),
            )
    except IntegrityError:
        raise duplicate
    logger.info(f"Referral {referral.pk} created: partner {partner.pk} -> patient {patient.pk}")
    return referral
