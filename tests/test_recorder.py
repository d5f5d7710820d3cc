import pytest

from apps.audit.models import AuditLog
from apps.audit.recorder import AuditDispatcher, AuditDraft, AuditRecorder
from core.constants import REDACTED, AuditActions, AuditEntities

pytestmark = pytest.mark.django_db


def draft(actor_id, **overrides):
    fields = {
        "actor_id": actor_id,
        "action": AuditActions.UPDATE,
        "target_entity": AuditEntities.USERS,
        "target_id": 12,
        "before_state": {"email": "old@clinic.test", "password": "x"},
        "after_state": {"email": "new@clinic.test", "credentials": {"apiKey": "abc"}},
        "ip_address": "10.0.0.8",
        "user_agent": "pytest",
    }
    fields.update(overrides)
    return AuditDraft(**fields)


def test_record_persists_redacted_entry(admin_user):
    entry_id = AuditRecorder().record(draft(admin_user.pk))

    entry = AuditLog.objects.get(pk=entry_id)
    assert entry.actor_id == admin_user.pk
    assert entry.action == AuditActions.UPDATE
    assert entry.target_id == "12"
    assert entry.before_state == {"email": "old@clinic.test", "password": REDACTED}
    assert entry.after_state["credentials"] == {"apiKey": REDACTED}
    assert entry.ip_address == "10.0.0.8"


def test_client_supplied_timestamp_is_ignored(admin_user):
    entry_id = AuditRecorder().record(draft(admin_user.pk, extra={"timestamp": "1999-01-01T00:00:00Z"}))
    assert AuditLog.objects.get(pk=entry_id).timestamp.year != 1999


@pytest.mark.parametrize("overrides", [
    {"actor_id": None},
    {"action": "approve"},
    {"target_entity": ""},
    {"target_entity": "x" * 101},
])
def test_invalid_drafts_are_rejected_without_raising(admin_user, overrides):
    recorder = AuditRecorder()
    fields = {"actor_id": admin_user.pk, **overrides}

    assert recorder.record(draft(**fields)) is None
    assert recorder.failures == 1
    assert AuditLog.objects.count() == 0


def test_store_failure_returns_none(admin_user):
    class BrokenStore:
        def insert(self, **fields):
            raise RuntimeError("disk full")

    recorder = AuditRecorder(store=BrokenStore())
    assert recorder.record(draft(admin_user.pk)) is None
    assert recorder.failures == 1


def test_record_many_writes_each_entry_independently(partner, patient):
    recorder = AuditRecorder()
    ids = recorder.record_many([
        draft(partner.pk, action=AuditActions.CREATE),
        draft(None),
        draft(patient.pk, action=AuditActions.CREATE),
    ])

    assert ids[1] is None
    assert ids[0] and ids[2] and ids[0] != ids[2]
    assert recorder.recorded == 2
    assert set(AuditLog.objects.values_list("actor_id", flat=True)) == {partner.pk, patient.pk}


def test_ids_are_monotonic(admin_user):
    recorder = AuditRecorder()
    ids = [recorder.record(draft(admin_user.pk)) for _ in range(3)]
    assert ids == sorted(ids)


def test_inline_dispatcher_records_immediately(admin_user, settings):
    settings.AUDIT = {**settings.AUDIT, "DISPATCH_MODE": "inline"}
    dispatcher = AuditDispatcher(AuditRecorder())

    result = dispatcher.submit([draft(admin_user.pk)])

    assert len(result) == 1
    assert AuditLog.objects.count() == 1


def test_dispatcher_ignores_empty_batches():
    assert AuditDispatcher(AuditRecorder()).submit([]) is None


def test_threaded_dispatcher_hands_off_to_pool(admin_user, settings):
    settings.AUDIT = {**settings.AUDIT, "DISPATCH_MODE": "thread"}

    class MemoryStore:
        def __init__(self):
            self.rows = []

        def insert(self, **fields):
            self.rows.append(fields)
            return len(self.rows)

    store = MemoryStore()
    dispatcher = AuditDispatcher(AuditRecorder(store=store))
    future = dispatcher.submit([draft(admin_user.pk), draft(admin_user.pk)])
    try:
        assert future.result(timeout=5) == [1, 2]
    finally:
        dispatcher.shutdown()

    assert store.rows[0]["before_state"]["password"] == REDACTED


@pytest.mark.parametrize("ip", ["unknown", "not-an-ip", "999.1.1.1"])
def test_malformed_ip_is_stored_as_null(admin_user, ip):
    entry_id = AuditRecorder().record(draft(admin_user.pk, ip_address=ip))

    entry = AuditLog.objects.get(pk=entry_id)
    assert entry.ip_address is None
    entry.clean_fields()
