import pytest

from apps.audit.models import AuditLog
from apps.referrals.models import Referral
from core.constants import AuditActions, AuditEntities

pytestmark = pytest.mark.django_db

REFERRALS_URL = "/api/referrals/"


def test_referral_creation_fans_out_to_both_participants(client_for, patient, partner):
    response = client_for(patient).post(
        REFERRALS_URL,
        {"partner_id": partner.pk, "patient_id": patient.pk},
        format="json",
    )

    assert response.status_code == 201
    assert response.data["commission_amount"] == "10.00"

    entries = list(AuditLog.objects.order_by("id"))
    assert len(entries) == 2
    assert {e.actor_id for e in entries} == {partner.pk, patient.pk}
    assert {e.target_entity for e in entries} == {AuditEntities.REFERRALS}
    assert {e.action for e in entries} == {AuditActions.CREATE}
    assert {e.target_id for e in entries} == {str(response.data["id"])}
    assert {e.after_state["commission_amount"] for e in entries} == {"10.00"}

    by_actor = {e.actor_id: e.after_state for e in entries}
    assert by_actor[partner.pk]["event"] == "referral_created"
    assert by_actor[patient.pk]["event"] == "referred_by_partner"


def test_one_referral_per_patient(client_for, patient, partner, make_user):
    Referral.objects.create(partner=partner, patient=patient)
    other_partner = make_user(role="partner")

    response = client_for(patient).post(
        REFERRALS_URL,
        {"partner_id": other_partner.pk, "patient_id": patient.pk},
        format="json",
    )

    assert response.status_code == 400
    assert AuditLog.objects.count() == 0


def test_partner_must_be_an_active_partner(client_for, patient, make_user):
    not_a_partner = make_user(role="staff")
    response = client_for(patient).post(
        REFERRALS_URL,
        {"partner_id": not_a_partner.pk, "patient_id": patient.pk},
        format="json",
    )
    assert response.status_code == 400


def test_patient_cannot_register_referral_for_someone_else(client_for, patient, partner, make_user):
    someone = make_user()
    response = client_for(patient).post(
        REFERRALS_URL,
        {"partner_id": partner.pk, "patient_id": someone.pk},
        format="json",
    )
    assert response.status_code == 403
    assert not Referral.objects.exists()


def test_manager_registers_referral(client_for, manager, partner, patient):
    response = client_for(manager).post(
        REFERRALS_URL,
        {"partner_id": partner.pk, "patient_id": patient.pk},
        format="json",
    )
    assert response.status_code == 201
    assert AuditLog.objects.count() == 2


def test_one_failed_fan_out_entry_does_not_block_the_other(client_for, patient, partner, monkeypatch):
    from apps.audit.recorder import recorder

    real_insert = recorder.store.insert

    def flaky_insert(**fields):
        if fields["actor_id"] == partner.pk:
            raise RuntimeError("write timeout")
        return real_insert(**fields)

    monkeypatch.setattr(recorder.store, "insert", flaky_insert)

    response = client_for(patient).post(
        REFERRALS_URL,
        {"partner_id": partner.pk, "patient_id": patient.pk},
        format="json",
    )

    assert response.status_code == 201
    assert list(AuditLog.objects.values_list("actor_id", flat=True)) == [patient.pk]


def test_concurrent_duplicate_is_a_validation_error(patient, partner, make_user, monkeypatch):
    from rest_framework.exceptions import ValidationError

    from apps.referrals.services import create_referral

    Referral.objects.create(partner=partner, patient=patient)
    # The other request committed after this one checked for duplicates
    monkeypatch.setattr(Referral.objects, "filter", lambda **kwargs: Referral.objects.none())

    with pytest.raises(ValidationError) as exc:
        create_referral(partner_id=make_user(role="partner").pk, patient_id=patient.pk)

    assert "patient_id" in exc.value.detail
    assert Referral.objects.count() == 1


def test_non_object_body_is_rejected_cleanly(client_for, patient):
    response = client_for(patient).post(REFERRALS_URL, [1, 2], format="json")

    assert response.status_code == 403
    assert AuditLog.objects.count() == 0


def test_manager_with_non_object_body_gets_validation_error(client_for, manager):
    response = client_for(manager).post(REFERRALS_URL, [1, 2], format="json")
    assert response.status_code == 400
