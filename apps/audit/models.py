from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.db import models

from core.constants import AuditActions


class AuditLogQuerySet(models.QuerySet):
    """Append-only: bulk writes against existing rows are refused."""

    def update(self, **kwargs):
        raise PermissionDenied("AuditLog is immutable (update forbidden)")

    def bulk_update(self, objs, fields, batch_size=None):
        raise PermissionDenied("AuditLog is immutable (update forbidden)")

    def delete(self):
        raise PermissionDenied("AuditLog cannot be deleted")

    delete.queryset_only = True


class AuditLog(models.Model):
    id = models.BigAutoField(primary_key=True)

    # Kept as a bare id reference so deleting a user never rewrites history
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="audit_entries",
    )

    action = models.CharField(max_length=20, choices=AuditActions.choices, db_index=True)
    target_entity = models.CharField(max_length=100, db_index=True)
    target_id = models.CharField(max_length=255, null=True, blank=True)

    before_state = models.JSONField(null=True, blank=True)
    after_state = models.JSONField(null=True, blank=True)

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, null=True, blank=True)

    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"
        ordering = ["-timestamp", "-id"]
        indexes = [
            models.Index(fields=["actor", "timestamp"], name="audit_audit_actor_i_3b9d1a_idx"),
            models.Index(fields=["target_entity", "target_id"], name="audit_audit_target__8c2f4e_idx"),
            models.Index(fields=["action", "timestamp"], name="audit_audit_action_5e7a0b_idx"),
        ]

    def __str__(self):
        return f"{self.id} | {self.action} | {self.target_entity}:{self.target_id}"

    # ============================
    # IMMUTABILITY ENFORCEMENT
    # ============================

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PermissionDenied("AuditLog is immutable (update forbidden)")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionDenied("AuditLog cannot be deleted")
