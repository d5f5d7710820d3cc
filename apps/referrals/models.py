from decimal import Decimal

from django.conf import settings
from django.db import models

from core.constants import DEFAULT_COMMISSION, ReferralStatus


class Referral(models.Model):
    """A partner referring a patient. One referral per patient."""
    partner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="referrals_made",
    )
    patient = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="referral",
    )
    commission_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal(DEFAULT_COMMISSION),
    )
    status = models.CharField(
        max_length=20,
        choices=ReferralStatus.choices,
        default=ReferralStatus.PENDING,
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Referral {self.pk}: partner {self.partner_id} -> patient {self.patient_id}"
