"""
Authorization decision engine.

A protected operation declares a ``Requirement`` and the engine decides it
against a ``PrincipalContext``. Every requirement variant is handled by one
dispatcher table; combinators evaluate their children cheapest first so the
staff permission lookup only happens when role checks could not decide.
"""

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple

from core.constants import Role, role_rank, required_rank
from core.exceptions import Forbidden, Unauthenticated

logger = logging.getLogger(__name__)


# ==========================
# REQUIREMENTS
# ==========================

class Requirement:
    cost = 0

    def __and__(self, other):
        return AllOf(self, other)

    def __or__(self, other):
        return AnyOf(self, other)


@dataclass(frozen=True)
class MinimumRole(Requirement):
    role: str


@dataclass(frozen=True)
class OneOfRoles(Requirement):
    roles: FrozenSet[str]

    def __init__(self, *roles):
        object.__setattr__(self, "roles", frozenset(roles))


@dataclass(frozen=True)
class OneOfPermissions(Requirement):
    permissions: FrozenSet[str]
    cost = 10

    def __init__(self, *permissions):
        object.__setattr__(self, "permissions", frozenset(permissions))


@dataclass(frozen=True)
class Owner(Requirement):
    owner_id: object
    cost = 1


@dataclass(frozen=True)
class NotSelf(Requirement):
    """Satisfied only when the target is not the acting principal."""
    target_id: object
    cost = 1


@dataclass(frozen=True)
class AllOf(Requirement):
    children: Tuple[Requirement, ...]

    def __init__(self, *children):
        object.__setattr__(self, "children", tuple(children))

    @property
    def cost(self):
        return sum(c.cost for c in self.children)


@dataclass(frozen=True)
class AnyOf(Requirement):
    children: Tuple[Requirement, ...]

    def __init__(self, *children):
        object.__setattr__(self, "children", tuple(children))

    @property
    def cost(self):
        return sum(c.cost for c in self.children)


def contains_not_self(requirement) -> bool:
    if isinstance(requirement, NotSelf):
        return True
    if isinstance(requirement, (AllOf, AnyOf)):
        return any(contains_not_self(c) for c in requirement.children)
    return False


def _same_id(left, right) -> bool:
    if left is None or right is None:
        return False
    return str(left) == str(right)


# ==========================
# DECISION
# ==========================

@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""
    unmet: Optional[Requirement] = field(default=None, compare=False)

    def __bool__(self):
        return self.allowed


ALLOW = Decision(True, "allowed")


class PolicyEngine:
    """
    Evaluates requirements. Stateless; one instance is shared process-wide.
    """

    def __init__(self):
        self._handlers = {
            MinimumRole: self._check_minimum_role,
            OneOfRoles: self._check_one_of_roles,
            OneOfPermissions: self._check_permissions,
            Owner: self._check_owner,
            NotSelf: self._check_not_self,
            AllOf: self._check_all_of,
            AnyOf: self._check_any_of,
        }

    def evaluate(self, context, requirement: Requirement) -> Decision:
        if context is None or not context.is_authenticated:
            return Decision(False, "unauthenticated", requirement)

        principal = context.principal

        # super_admin passes everything except an explicit self-action guard
        if principal.role == Role.SUPER_ADMIN and not contains_not_self(requirement):
            return ALLOW

        return self._dispatch(context, requirement)

    def authorize(self, context, requirement: Requirement) -> Decision:
        decision = self.evaluate(context, requirement)
        if decision.allowed:
            return decision

        if decision.reason == "unauthenticated":
            raise Unauthenticated(requirement=requirement)

        logger.info(
            f"Authorization denied for principal {context.actor_id} "
            f"({context.principal.role}): {decision.reason} unmet={decision.unmet!r}"
        )
        raise Forbidden(requirement=decision.unmet)

    def _dispatch(self, context, requirement) -> Decision:
        handler = self._handlers.get(type(requirement))
        if handler is None:
            raise TypeError(f"Unsupported requirement: {requirement!r}")
        return handler(context, requirement)

    # ==========================
    # LEAF CHECKS
    # ==========================

    def _check_one_of_roles(self, context, req):
        if context.principal.role in req.roles:
            return ALLOW
        return Decision(False, "role not permitted", req)

    def _check_minimum_role(self, context, req):
        if role_rank(context.principal.role) >= required_rank(req.role):
            return ALLOW
        return Decision(False, "insufficient role", req)

    def _check_owner(self, context, req):
        if _same_id(req.owner_id, context.principal.id):
            return ALLOW
        return Decision(False, "not owner", req)

    def _check_not_self(self, context, req):
        if _same_id(req.target_id, context.principal.id):
            return Decision(False, "action not allowed on own account", req)
        return ALLOW

    def _check_permissions(self, context, req):
        principal = context.principal
        if principal.is_privileged:
            return ALLOW

        if principal.role != Role.STAFF:
            return Decision(False, "permissions apply to staff only", req)

        if not context.has_staff_profile:
            return Decision(False, "staff profile not found", req)

        if context.permissions & req.permissions:
            return ALLOW
        return Decision(False, "missing permission", req)

    # ==========================
    # COMBINATORS
    # ==========================

    def _check_all_of(self, context, req):
        for child in sorted(req.children, key=lambda c: c.cost):
            decision = self._dispatch(context, child)
            if not decision.allowed:
                return decision
        return ALLOW

    def _check_any_of(self, context, req):
        first_denial = None
        for child in sorted(req.children, key=lambda c: c.cost):
            decision = self._dispatch(context, child)
            if decision.allowed:
                return decision
            first_denial = first_denial or decision

        reason = first_denial.reason if first_denial else "no alternative satisfied"
        return Decision(False, reason, req)


engine = PolicyEngine()
