from apps.accounts.policy import MinimumRole
from apps.accounts.principal import PrincipalContext
from core.constants import Role
from core.permissions import PolicyPermission


class PolicyViewMixin:
    """
    Gives a view one PrincipalContext per request and a per-action
    requirement table.

    ``requirements`` maps an action name (or HTTP method name for plain
    APIViews) to a Requirement or to a callable ``(view) -> Requirement``.
    Anything not listed needs an authenticated, active principal.
    """

    permission_classes = [PolicyPermission]
    requirements = {}
    default_requirement = MinimumRole(Role.PATIENT)

    _principal_context = None

    def get_principal_context(self):
        if self._principal_context is None:
            self._principal_context = PrincipalContext.from_user(
                getattr(self.request, "user", None)
            )
        return self._principal_context

    @property
    def principal_context(self):
        return self.get_principal_context()

    def get_requirement(self):
        method = self.request.method.lower()
        if method == "options":
            return None

        key = getattr(self, "action", None) or ("get" if method == "head" else method)
        requirement = self.requirements.get(key, self.default_requirement)
        if callable(requirement):
            return requirement(self)
        return requirement
