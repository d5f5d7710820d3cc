import pytest

from apps.audit.capture import ChangeCapture, ModelSnapshotReader, capture, serialize_model
from apps.referrals.models import Referral
from core.constants import AuditEntities

pytestmark = pytest.mark.django_db


def test_before_reads_current_state(patient):
    snapshot = capture.before(AuditEntities.USERS, patient.pk)

    assert snapshot["id"] == patient.pk
    assert snapshot["email"] == patient.email
    assert snapshot["is_active"] is True
    assert "groups" not in snapshot
    assert "created_at" in snapshot


def test_before_for_missing_entity_is_none():
    assert capture.before(AuditEntities.USERS, 987654) is None


def test_unknown_entity_label_is_none(patient):
    assert capture.before("Invoices", patient.pk) is None


def test_reader_errors_do_not_propagate(patient):
    class BrokenReader(ModelSnapshotReader):
        def read(self, label, entity_id):
            raise RuntimeError("connection lost")

    broken = ChangeCapture(BrokenReader())
    assert broken.before(AuditEntities.USERS, patient.pk) is None
    assert broken.after(None, AuditEntities.USERS, patient.pk) is None


def test_after_from_model_instance(partner, patient):
    referral = Referral.objects.create(partner=partner, patient=patient)
    snapshot = capture.after(referral, AuditEntities.REFERRALS, referral.pk)

    assert snapshot["partner"] == partner.pk
    assert snapshot["patient"] == patient.pk
    assert snapshot["commission_amount"] == "10.00"


def test_after_from_mapping():
    assert capture.after({"id": 3, "status": "done"}, AuditEntities.REFERRALS) == {"id": 3, "status": "done"}


def test_after_rereads_when_result_has_no_state(patient):
    snapshot = capture.after(None, AuditEntities.USERS, patient.pk)
    assert snapshot["email"] == patient.email


def test_staff_snapshots_are_keyed_by_user(manager):
    snapshot = capture.before(AuditEntities.STAFF_MEMBERS, manager.pk)
    assert snapshot["user"] == manager.pk
    assert snapshot["permissions"] == ["manage_users"]


def test_serialize_model_none():
    assert serialize_model(None) is None
