import pytest

from apps.accounts.policy import (
    AllOf,
    AnyOf,
    MinimumRole,
    NotSelf,
    OneOfPermissions,
    OneOfRoles,
    Owner,
    PolicyEngine,
)
from apps.accounts.principal import Principal, PrincipalContext
from core.constants import ROLE_RANK, Role, role_rank
from core.exceptions import Forbidden, Unauthenticated

engine = PolicyEngine()


def ctx(role, user_id=1, permissions=None, active=True):
    calls = []

    def loader(uid):
        calls.append(uid)
        return None if permissions is None else frozenset(permissions)

    context = PrincipalContext(Principal(id=user_id, role=role, active=active), permission_loader=loader)
    context.loader_calls = calls
    return context


ALL_REQUIREMENTS = [
    MinimumRole(Role.SUPER_ADMIN),
    MinimumRole(Role.STAFF),
    OneOfRoles(Role.PATIENT),
    OneOfPermissions("manage_users"),
    Owner(999),
    AllOf(OneOfRoles(Role.PARTNER), OneOfPermissions("view_reports")),
    AnyOf(Owner(42), OneOfRoles(Role.STAFF)),
]


def test_role_rank_is_strict_total_order():
    ladder = [Role.PATIENT, Role.PARTNER, Role.STAFF, Role.ADMIN, Role.SUPER_ADMIN]
    ranks = [role_rank(r) for r in ladder]
    assert ranks == sorted(ranks)
    assert len(set(ranks)) == len(ROLE_RANK)


def test_patient_below_staff_is_forbidden():
    with pytest.raises(Forbidden):
        engine.authorize(ctx(Role.PATIENT), MinimumRole(Role.STAFF))


def test_higher_rank_satisfies_minimum_role():
    assert engine.evaluate(ctx(Role.ADMIN), MinimumRole(Role.STAFF)).allowed


def test_unknown_required_role_is_never_met():
    assert not engine.evaluate(ctx(Role.ADMIN), MinimumRole("chief_wizard")).allowed


@pytest.mark.parametrize("requirement", ALL_REQUIREMENTS)
def test_super_admin_is_allowed_for_every_requirement(requirement):
    assert engine.evaluate(ctx(Role.SUPER_ADMIN), requirement).allowed


def test_staff_missing_permission_is_forbidden():
    context = ctx(Role.STAFF, permissions=["process_payments"])
    with pytest.raises(Forbidden) as exc:
        engine.authorize(context, OneOfPermissions("manage_users"))
    assert exc.value.requirement == OneOfPermissions("manage_users")


def test_staff_with_any_listed_permission_is_allowed():
    context = ctx(Role.STAFF, permissions=["process_payments"])
    decision = engine.authorize(context, OneOfPermissions("process_payments", "manage_users"))
    assert decision.allowed


def test_staff_without_profile_is_denied():
    context = ctx(Role.STAFF, permissions=None)
    assert not engine.evaluate(context, OneOfPermissions("manage_users")).allowed


@pytest.mark.parametrize("role", [Role.ADMIN, Role.SUPER_ADMIN])
def test_privileged_roles_bypass_permission_checks(role):
    context = ctx(role)
    assert engine.evaluate(context, OneOfPermissions("system_settings")).allowed
    assert context.loader_calls == []


@pytest.mark.parametrize("role", [Role.PATIENT, Role.PARTNER])
def test_non_staff_roles_are_denied_permission_checks(role):
    context = ctx(role, permissions=["manage_users"])
    assert not engine.evaluate(context, OneOfPermissions("manage_users")).allowed
    assert context.loader_calls == []


def test_permissions_are_loaded_once_per_context():
    context = ctx(Role.STAFF, permissions=["view_reports"])
    engine.evaluate(context, OneOfPermissions("view_reports"))
    engine.evaluate(context, OneOfPermissions("manage_users"))
    engine.evaluate(context, AnyOf(OneOfPermissions("manage_documents"), Owner(5)))
    assert context.loader_calls == [1]


def test_cheap_role_checks_run_before_permission_lookup():
    context = ctx(Role.STAFF, permissions=["view_reports"])
    requirement = AnyOf(OneOfPermissions("view_reports"), OneOfRoles(Role.STAFF))
    assert engine.evaluate(context, requirement).allowed
    assert context.loader_calls == []


def test_owner_allows_matching_principal():
    assert engine.evaluate(ctx(Role.PATIENT, user_id=7), Owner(7)).allowed
    assert engine.evaluate(ctx(Role.PATIENT, user_id=7), Owner("7")).allowed
    assert not engine.evaluate(ctx(Role.PATIENT, user_id=7), Owner(8)).allowed


@pytest.mark.parametrize("role", [Role.ADMIN, Role.SUPER_ADMIN])
def test_not_self_blocks_action_on_own_account(role):
    requirement = AllOf(MinimumRole(Role.ADMIN), NotSelf(3))
    assert not engine.evaluate(ctx(role, user_id=3), requirement).allowed
    assert engine.evaluate(ctx(role, user_id=4), requirement).allowed


def test_all_of_reports_first_unmet_requirement():
    decision = engine.evaluate(ctx(Role.STAFF, permissions=[]), AllOf(MinimumRole(Role.STAFF), OneOfRoles(Role.ADMIN)))
    assert not decision.allowed
    assert decision.unmet == OneOfRoles(Role.ADMIN)


def test_any_of_needs_one_branch():
    requirement = AnyOf(Owner(10), OneOfPermissions("manage_users"))
    assert engine.evaluate(ctx(Role.PATIENT, user_id=10), requirement).allowed
    assert not engine.evaluate(ctx(Role.PATIENT, user_id=11), requirement).allowed
    assert engine.evaluate(ctx(Role.STAFF, user_id=11, permissions=["manage_users"]), requirement).allowed


def test_operators_build_combinators():
    requirement = MinimumRole(Role.STAFF) | Owner(2)
    assert isinstance(requirement, AnyOf)
    assert isinstance(MinimumRole(Role.STAFF) & Owner(2), AllOf)


def test_missing_principal_is_unauthenticated():
    with pytest.raises(Unauthenticated):
        engine.authorize(PrincipalContext(None), MinimumRole(Role.PATIENT))


def test_inactive_principal_is_unauthenticated():
    with pytest.raises(Unauthenticated):
        engine.authorize(ctx(Role.SUPER_ADMIN, active=False), MinimumRole(Role.PATIENT))


def test_decisions_are_deterministic():
    requirement = AnyOf(Owner(2), OneOfPermissions("view_reports"))
    context = ctx(Role.STAFF, user_id=5, permissions=["view_reports"])
    results = {engine.evaluate(context, requirement).allowed for _ in range(5)}
    assert results == {True}


def test_denial_message_is_generic():
    with pytest.raises(Forbidden) as exc:
        engine.authorize(ctx(Role.PATIENT), OneOfPermissions("manage_users"))
    assert "manage_users" not in str(exc.value.detail)
