"""
Audit signals for authentication events.

Rules:
- Signals NEVER write business logic
- Signals NEVER assume request existence
- Signals ONLY call audit hooks
"""

import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.signals import user_logged_in, user_logged_out, user_login_failed
from django.dispatch import receiver

from apps.audit.hooks import log_action
from core.constants import AuditActions, AuditEntities

logger = logging.getLogger(__name__)


@receiver(user_logged_in, dispatch_uid="audit_user_logged_in")
def audit_login(sender, request, user, **kwargs):
    log_action(
        request,
        action=AuditActions.LOGIN,
        target_entity=AuditEntities.USERS,
        target_id=user.pk,
        after={"success": True, "email": user.email},
        actor_id=user.pk,
    )


@receiver(user_logged_out, dispatch_uid="audit_user_logged_out")
def audit_logout(sender, request, user, **kwargs):
    if user is None:
        return

    log_action(
        request,
        action=AuditActions.LOGOUT,
        target_entity=AuditEntities.USERS,
        target_id=user.pk,
        actor_id=user.pk,
    )


@receiver(user_login_failed, dispatch_uid="audit_user_login_failed")
def audit_login_failed(sender, credentials, request=None, **kwargs):
    """
    Failed attempts are recorded against the targeted account.
    Unknown emails have no actor and are only logged.
    """
    User = get_user_model()
    email = credentials.get(User.USERNAME_FIELD) or credentials.get("email")

    user = User.objects.filter(email__iexact=email).first() if email else None
    if user is None:
        logger.info("Failed login for unknown account")
        return

    log_action(
        request,
        action=AuditActions.LOGIN,
        target_entity=AuditEntities.USERS,
        target_id=user.pk,
        after={"success": False, "email": user.email},
        actor_id=user.pk,
    )
