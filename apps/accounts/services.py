"""
User management operations.

These are the mutations the audit pipeline wraps; they know nothing about
auditing or authorization.
"""

import logging

from django.db import transaction
from rest_framework.exceptions import ValidationError

from apps.accounts.models import StaffMember, User
from core.constants import Role

logger = logging.getLogger(__name__)


@transaction.atomic
def create_user(*, email, password, full_name, role=Role.PATIENT, phone=None,
                staff_role=None, permissions=None) -> User:
    user = User.objects.create_user(
        email=email,
        password=password,
        full_name=full_name,
        role=role,
        phone=phone,
        is_staff=role in (Role.ADMIN, Role.SUPER_ADMIN),
    )

    if role == Role.STAFF:
        defaults = {"permissions": sorted(set(permissions or []))}
        if staff_role:
            defaults["staff_role"] = staff_role
        StaffMember.objects.create(user=user, **defaults)

    logger.info(f"User {user.pk} created with role {role}")
    return user


def update_user(user: User, **changes) -> User:
    for field, value in changes.items():
        setattr(user, field, value)
    user.save()
    return user


def deactivate_user(user: User) -> User:
    if not user.is_active:
        raise ValidationError({"detail": "User is already inactive."})

    user.is_active = False
    user.save(update_fields=["is_active", "updated_at"])
    logger.info(f"User {user.pk} deactivated")
    return user


def reactivate_user(user: User) -> User:
    if user.is_active:
        raise ValidationError({"detail": "User is already active."})

    user.is_active = True
    user.save(update_fields=["is_active", "updated_at"])
    logger.info(f"User {user.pk} reactivated")
    return user


def set_staff_permissions(user: User, permissions) -> StaffMember:
    if user.role != Role.STAFF:
        raise ValidationError({"permissions": "Permissions can only be set on staff accounts."})

    staff, _ = StaffMember.objects.get_or_create(user=user)
    staff.permissions = sorted(set(permissions))
    staff.save(update_fields=["permissions", "updated_at"])
    return staff
