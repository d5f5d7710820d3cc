"""
Audit entry assembly and persistence.

``AuditRecorder.record`` never raises: invalid drafts and storage failures
are logged, counted and reported as ``None``. The calling business
operation cannot observe an audit failure.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings
from django.db import close_old_connections

from apps.audit.redaction import redact
from core.constants import AuditActions
from core.utils.request import clean_ip

logger = logging.getLogger(__name__)

VALID_ACTIONS = frozenset(AuditActions.values)

MAX_TARGET_ENTITY_LENGTH = 100
MAX_USER_AGENT_LENGTH = 500


@dataclass
class AuditDraft:
    """One audit event as assembled by the request path, before persistence."""
    actor_id: Optional[int]
    action: str
    target_entity: str
    target_id: Optional[Any] = None
    before_state: Optional[Any] = None
    after_state: Optional[Any] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    # Anything else a caller attaches (e.g. a client timestamp) is dropped
    extra: Dict[str, Any] = field(default_factory=dict)


class DjangoAuditStore:
    """Append-only store over the AuditLog table."""

    def insert(self, **fields) -> int:
        from apps.audit.models import AuditLog

        entry = AuditLog.objects.create(**fields)
        return entry.id


class AuditRecorder:
    def __init__(self, store=None):
        self.store = store or DjangoAuditStore()
        self._lock = threading.Lock()
        self.failures = 0
        self.recorded = 0

    def validate(self, draft: AuditDraft) -> Optional[str]:
        if draft.actor_id is None:
            return "actor_id is required"
        if draft.action not in VALID_ACTIONS:
            return f"invalid action '{draft.action}'"
        if not draft.target_entity:
            return "target_entity is required"
        if len(draft.target_entity) > MAX_TARGET_ENTITY_LENGTH:
            return "target_entity too long"
        return None

    def build_fields(self, draft: AuditDraft) -> Dict[str, Any]:
        return {
            "actor_id": draft.actor_id,
            "action": draft.action,
            "target_entity": draft.target_entity,
            "target_id": None if draft.target_id is None else str(draft.target_id),
            "before_state": redact(draft.before_state),
            "after_state": redact(draft.after_state),
            "ip_address": clean_ip(draft.ip_address),
            "user_agent": (draft.user_agent or "")[:MAX_USER_AGENT_LENGTH] or None,
        }

    def record(self, draft: AuditDraft) -> Optional[int]:
        error = self.validate(draft)
        if error:
            self._count_failure()
            logger.error(f"Audit draft rejected ({error}): {draft.action} {draft.target_entity}")
            return None

        try:
            fields = self.build_fields(draft)
            entry_id = self.store.insert(**fields)
        except Exception as e:
            self._count_failure()
            logger.error(
                f"Audit logging failed for {draft.action} "
                f"{draft.target_entity}:{draft.target_id}: {e}",
                exc_info=True,
            )
            return None

        with self._lock:
            self.recorded += 1
        logger.debug(f"Audit entry {entry_id} recorded: {draft.action} {draft.target_entity}")
        return entry_id

    def record_many(self, drafts: Iterable[AuditDraft]) -> List[Optional[int]]:
        """Fan-out: each draft is written on its own, one failure does not stop the rest."""
        return [self.record(draft) for draft in drafts]

    def _count_failure(self):
        with self._lock:
            self.failures += 1


recorder = AuditRecorder()


# ==========================
# DISPATCH
# ==========================

def _audit_settings():
    return getattr(settings, "AUDIT", {}) or {}


class AuditDispatcher:
    """
    Hands drafts to the recorder off the request path.
    DISPATCH_MODE "thread" uses a bounded worker pool, "inline" records
    immediately (tests, management commands).
    """

    def __init__(self, audit_recorder: AuditRecorder = None):
        self._recorder = audit_recorder
        self._executor = None
        self._executor_lock = threading.Lock()

    @property
    def recorder(self) -> AuditRecorder:
        return self._recorder or recorder

    @property
    def mode(self) -> str:
        return _audit_settings().get("DISPATCH_MODE", "thread")

    def _get_executor(self):
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=_audit_settings().get("MAX_WORKERS", 2),
                    thread_name_prefix="audit",
                )
            return self._executor

    def submit(self, drafts: Iterable[AuditDraft]):
        drafts = list(drafts)
        if not drafts:
            return None

        if self.mode == "inline":
            return self.recorder.record_many(drafts)

        try:
            return self._get_executor().submit(self._run, drafts)
        except RuntimeError as e:
            # Executor already shut down (interpreter exit)
            logger.error(f"Audit dispatch unavailable, recording inline: {e}")
            return self.recorder.record_many(drafts)

    def _run(self, drafts):
        try:
            return self.recorder.record_many(drafts)
        finally:
            close_old_connections()

    def shutdown(self, wait=True):
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait)
                self._executor = None


dispatcher = AuditDispatcher()
