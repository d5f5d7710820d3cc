import pytest
from rest_framework.test import APIClient

from apps.accounts.models import StaffMember, User
from core.constants import Role


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role=Role.PATIENT, permissions=None, password="s3cure-pass!", **extra):
        counter["n"] += 1
        user = User.objects.create_user(
            email=extra.pop("email", f"{role}{counter['n']}@clinic.test"),
            password=password,
            full_name=extra.pop("full_name", f"{role.title()} {counter['n']}"),
            role=role,
            **extra,
        )
        if permissions is not None:
            StaffMember.objects.create(user=user, permissions=list(permissions))
        return user

    return _make


@pytest.fixture
def super_admin(make_user):
    return make_user(Role.SUPER_ADMIN)


@pytest.fixture
def admin_user(make_user):
    return make_user(Role.ADMIN)


@pytest.fixture
def manager(make_user):
    return make_user(Role.STAFF, permissions=["manage_users"])


@pytest.fixture
def cashier(make_user):
    return make_user(Role.STAFF, permissions=["process_payments"])


@pytest.fixture
def patient(make_user):
    return make_user(Role.PATIENT)


@pytest.fixture
def partner(make_user):
    return make_user(Role.PARTNER)


@pytest.fixture
def client_for(api_client):
    def _client(user):
        api_client.force_authenticate(user=user)
        return api_client

    return _client
