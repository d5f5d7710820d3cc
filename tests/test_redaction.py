import datetime
import uuid
from decimal import Decimal

import pytest

from apps.audit.redaction import Redactor, is_sensitive_key, redact
from core.constants import REDACTED


@pytest.mark.parametrize("key", [
    "password",
    "Password",
    "password_hash",
    "newPassword",
    "access_token",
    "refreshToken",
    "client_secret",
    "Authorization",
    "apiKey",
    "api_key",
    "privateKey",
    "signature",
    "hash",
    "record_hash",
    "iv",
    "IV",
    "authTag",
    "encryptedData",
    "raw_payload",
    "hashes",
    "hashed_pin",
    "contenthash",
    "passhash",
    "fileHash",
])
def test_sensitive_keys_are_detected(key):
    assert is_sensitive_key(key)


@pytest.mark.parametrize("key", ["is_active", "isActive", "email", "private", "archive", "role"])
def test_ordinary_keys_pass(key):
    assert not is_sensitive_key(key)


def test_sensitive_values_are_replaced_at_any_depth():
    snapshot = {
        "email": "a@clinic.test",
        "password": "hunter2",
        "profile": {
            "settings": [{"apiKey": "k-123", "theme": "dark"}],
            "Authorization": {"scheme": "Bearer", "value": "abc"},
        },
    }
    out = redact(snapshot)

    assert out["email"] == "a@clinic.test"
    assert out["password"] == REDACTED
    assert out["profile"]["settings"][0] == {"apiKey": REDACTED, "theme": "dark"}
    assert out["profile"]["Authorization"] == REDACTED
    assert snapshot["password"] == "hunter2"


def test_redaction_is_idempotent():
    snapshot = {
        "token": "t",
        "nested": {"a": [1, 2, {"secret": "s", "ok": True}], "when": datetime.date(2024, 1, 2)},
        "amount": Decimal("10.00"),
        "ref": uuid.UUID("12345678-1234-5678-1234-567812345678"),
        "tags": {"x", "y"},
    }
    once = redact(snapshot)
    assert redact(once) == once


def test_depth_cap_masks_deeper_subtrees():
    deep = {"level": {"level": {"level": {"value": 1}}}}
    out = Redactor(max_depth=2).redact(deep)
    assert out == {"level": {"level": REDACTED}}


def test_cycles_are_masked():
    node = {"name": "loop"}
    node["self"] = node
    out = redact(node)
    assert out == {"name": "loop", "self": REDACTED}


def test_unknown_types_are_masked_whole():
    out = redact({"callback": object(), "count": 3})
    assert out == {"callback": REDACTED, "count": 3}


def test_scalars_and_none_pass_through():
    assert redact(None) is None
    assert redact("plain") == "plain"
    assert redact([1, 2.5, False]) == [1, 2.5, False]


def test_special_values_become_strings():
    out = redact({"amount": Decimal("10.00"), "at": datetime.datetime(2024, 5, 1, 12, 0)})
    assert out == {"amount": "10.00", "at": "2024-05-01T12:00:00"}
