"""
Sensitive-field masking for audit snapshots.

``redact`` walks a JSON-like value tree and returns a new tree in which
every value stored under a sensitive key is replaced by the marker. The walk
is depth capped; anything past the cap, any cycle, and any value of a type
the walk does not know is masked whole. Output only ever contains
None/bool/int/float/str, lists and str-keyed dicts, so redacting an already
redacted tree returns it unchanged.
"""

import datetime
import re
import uuid
from decimal import Decimal
from typing import Any, Iterable, Optional

from django.conf import settings

from core.constants import REDACTED

# Matched as substrings of the normalized key
SENSITIVE_SUBSTRINGS = (
    "password",
    "token",
    "secret",
    "authorization",
    "apikey",
    "privatekey",
    "signature",
    "authtag",
    "encrypteddata",
    "rawpayload",
    "hash",
)

# Too short to match as substrings ("iv" would hit "active")
SENSITIVE_WORDS = (
    "iv",
)

DEFAULT_MAX_DEPTH = 10

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEPARATORS = re.compile(r"[_\-\s.]+")


def _key_words(key: str):
    spaced = _CAMEL_BOUNDARY.sub("_", key)
    return [w for w in _SEPARATORS.split(spaced.lower()) if w]


def is_sensitive_key(key: Any) -> bool:
    if not isinstance(key, str):
        return False

    words = _key_words(key)
    normalized = "".join(words)

    if any(pattern in normalized for pattern in SENSITIVE_SUBSTRINGS):
        return True

    return any(word in SENSITIVE_WORDS for word in words)


def _max_depth() -> int:
    audit = getattr(settings, "AUDIT", {}) or {}
    return int(audit.get("REDACTION_MAX_DEPTH", DEFAULT_MAX_DEPTH))


class Redactor:
    def __init__(self, max_depth: Optional[int] = None, marker: str = REDACTED):
        self.max_depth = max_depth
        self.marker = marker

    def __call__(self, value):
        return self.redact(value)

    def redact(self, value: Any) -> Any:
        depth = self.max_depth if self.max_depth is not None else _max_depth()
        return self._walk(value, 0, depth, set())

    def _walk(self, value, depth, max_depth, active):
        # Scalars
        if value is None or isinstance(value, (bool, str)):
            return value

        if isinstance(value, (int, float)):
            return value

        if isinstance(value, Decimal):
            return str(value)

        if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
            return value.isoformat()

        if isinstance(value, uuid.UUID):
            return str(value)

        # Containers
        if isinstance(value, (dict, list, tuple, set, frozenset)):
            if depth >= max_depth or id(value) in active:
                return self.marker

            active.add(id(value))
            try:
                if isinstance(value, dict):
                    return self._walk_mapping(value, depth, max_depth, active)
                return self._walk_sequence(value, depth, max_depth, active)
            finally:
                active.discard(id(value))

        return self.marker

    def _walk_mapping(self, value, depth, max_depth, active):
        out = {}
        for key, item in value.items():
            key = key if isinstance(key, str) else str(key)
            if is_sensitive_key(key):
                out[key] = self.marker
            else:
                out[key] = self._walk(item, depth + 1, max_depth, active)
        return out

    def _walk_sequence(self, value: Iterable, depth, max_depth, active):
        if isinstance(value, (set, frozenset)):
            value = sorted(value, key=repr)
        return [self._walk(item, depth + 1, max_depth, active) for item in value]


default_redactor = Redactor()


def redact(value: Any, max_depth: Optional[int] = None) -> Any:
    if max_depth is not None:
        return Redactor(max_depth=max_depth).redact(value)
    return default_redactor.redact(value)
