"""
Per-request view of the authenticated actor.

The Principal is built once from the already-authenticated ``request.user``
and never changes afterwards. Staff permissions are loaded lazily, at most
once per context, the first time a permission check needs them.
"""

import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, Optional

from core.constants import Role, PRIVILEGED_ROLES, role_rank

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    id: int
    role: str
    active: bool = True

    @property
    def rank(self) -> int:
        return role_rank(self.role)

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN


def load_staff_permissions(user_id) -> Optional[FrozenSet[str]]:
    """
    Read the staff profile permissions for a user.
    Returns None when the user has no staff profile.
    """
    from apps.accounts.models import StaffMember

    staff = StaffMember.objects.filter(user_id=user_id).only("permissions").first()
    if staff is None:
        return None
    return staff.permission_set()


class PrincipalContext:
    """Holds the Principal plus its lazily fetched permission set."""

    def __init__(self, principal: Optional[Principal], permission_loader: Callable = load_staff_permissions):
        self.principal = principal
        self._permission_loader = permission_loader
        self._permissions: Optional[FrozenSet[str]] = None
        self._loaded = False
        self.permission_lookups = 0

    @classmethod
    def from_user(cls, user, **kwargs):
        if user is None or not getattr(user, "is_authenticated", False):
            return cls(None, **kwargs)

        principal = Principal(
            id=user.pk,
            role=getattr(user, "role", None),
            active=bool(user.is_active),
        )
        return cls(principal, **kwargs)

    @classmethod
    def anonymous(cls):
        return cls(None)

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None and self.principal.active

    @property
    def actor_id(self):
        return self.principal.id if self.principal else None

    @property
    def has_staff_profile(self) -> bool:
        return self._resolve() is not None

    @property
    def permissions(self) -> FrozenSet[str]:
        return self._resolve() or frozenset()

    def _resolve(self) -> Optional[FrozenSet[str]]:
        if self._loaded:
            return self._permissions

        self._loaded = True
        if self.principal is None or self.principal.role != Role.STAFF:
            self._permissions = frozenset()
            return self._permissions

        self.permission_lookups += 1
        self._permissions = self._permission_loader(self.principal.id)
        if self._permissions is None:
            logger.warning(f"Staff user {self.principal.id} has no staff profile")
        return self._permissions

    def __repr__(self):
        return f"<PrincipalContext {self.principal!r}>"
