from rest_framework.permissions import BasePermission

from apps.accounts.policy import engine


class PolicyPermission(BasePermission):
    """
    Single DRF permission class for policy-protected views.
    The view supplies ``get_principal_context()`` and ``get_requirement()``.
    Denials raise so the client gets a generic 401/403 body.
    """

    def has_permission(self, request, view):
        requirement = view.get_requirement()
        if requirement is None:
            return True

        engine.authorize(view.get_principal_context(), requirement)
        return True
