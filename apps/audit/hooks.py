"""
Request-side audit hooks.

Views never write audit rows directly. They build drafts and put them on the
request's ``AuditQueue``; ``AuditContextMiddleware`` hands the queue to the
dispatcher once the response exists. Without the middleware (management
commands, signals outside a request) drafts go straight to the dispatcher.
"""

import functools
import logging
from typing import List, Optional

from apps.audit.capture import capture
from apps.audit.recorder import AuditDraft, dispatcher
from core.constants import AuditActions, AuditEntities
from core.utils.request import get_client_ip, get_user_agent

logger = logging.getLogger(__name__)

AUDIT_QUEUE_ATTR = "audit_queue"


class AuditQueue:
    """Drafts collected during one request. Never shared between requests."""

    def __init__(self):
        self._drafts: List[AuditDraft] = []

    def add(self, draft: AuditDraft):
        self._drafts.append(draft)

    def drain(self) -> List[AuditDraft]:
        drafts, self._drafts = self._drafts, []
        return drafts

    def __len__(self):
        return len(self._drafts)


def _http_request(request):
    # DRF Request wraps the Django HttpRequest
    return getattr(request, "_request", request)


def get_audit_queue(request) -> Optional[AuditQueue]:
    if request is None:
        return None
    return getattr(_http_request(request), AUDIT_QUEUE_ATTR, None)


def build_draft(request, *, action, target_entity, target_id=None,
                before=None, after=None, actor_id=None) -> AuditDraft:
    if actor_id is None:
        user = getattr(request, "user", None)
        actor_id = user.pk if user is not None and user.is_authenticated else None

    return AuditDraft(
        actor_id=actor_id,
        action=action,
        target_entity=target_entity,
        target_id=target_id,
        before_state=before,
        after_state=after,
        ip_address=get_client_ip(_http_request(request)) if request is not None else None,
        user_agent=get_user_agent(_http_request(request)) if request is not None else None,
    )


def enqueue(request, *drafts: AuditDraft):
    queue = get_audit_queue(request)
    if queue is None:
        dispatcher.submit(drafts)
        return

    for draft in drafts:
        queue.add(draft)


def log_action(request, *, action, target_entity, target_id=None,
               before=None, after=None, actor_id=None):
    enqueue(
        request,
        build_draft(
            request,
            action=action,
            target_entity=target_entity,
            target_id=target_id,
            before=before,
            after=after,
            actor_id=actor_id,
        ),
    )


def _is_success(response) -> bool:
    status_code = getattr(response, "status_code", None)
    return status_code is not None and 200 <= status_code < 300


def _resolve_target_id(response, lookup_value):
    if lookup_value is not None:
        return lookup_value
    data = getattr(response, "data", None)
    if isinstance(data, dict):
        return data.get("id")
    return None


def audited(action: str, target_entity: str, lookup_kwarg: Optional[str] = "pk"):
    """
    Wrap a DRF view handler with before/after capture.

    The before snapshot is taken before the handler runs. Only a 2xx
    response produces a draft; if the handler raises or fails, the
    snapshot is dropped and nothing is recorded.

        @audited(AuditActions.UPDATE, AuditEntities.USERS)
        def update(self, request, *args, **kwargs):
            ...
    """

    def decorator(handler):
        @functools.wraps(handler)
        def wrapper(view, request, *args, **kwargs):
            lookup_value = kwargs.get(lookup_kwarg) if lookup_kwarg else None
            before = capture.before(target_entity, lookup_value) if lookup_value is not None else None

            response = handler(view, request, *args, **kwargs)

            if not _is_success(response):
                return response

            target_id = _resolve_target_id(response, lookup_value)
            after = capture.after(None, target_entity, target_id)
            if after is None and action != AuditActions.DELETE:
                after = capture.after(response, target_entity, target_id)

            log_action(
                request,
                action=action,
                target_entity=target_entity,
                target_id=target_id,
                before=before,
                after=after,
            )
            return response

        return wrapper

    return decorator


def audit_access(request, target_entity, target_id=None, details=None, actor_id=None):
    """Record that a principal read or exported protected data."""
    log_action(
        request,
        action=AuditActions.ACCESS,
        target_entity=target_entity,
        target_id=target_id,
        after=details,
        actor_id=actor_id,
    )


def audit_referral_creation(request, referral):
    """
    Fan-out: one referral produces an entry for each participant, both
    carrying the same commission amount.
    """
    commission = str(referral.commission_amount)
    after = capture.after(referral, AuditEntities.REFERRALS, referral.pk) or {}

    partner_draft = build_draft(
        request,
        action=AuditActions.CREATE,
        target_entity=AuditEntities.REFERRALS,
        target_id=referral.pk,
        after={
            **after,
            "event": "referral_created",
            "patient_id": referral.patient_id,
            "commission_amount": commission,
        },
        actor_id=referral.partner_id,
    )
    patient_draft = build_draft(
        request,
        action=AuditActions.CREATE,
        target_entity=AuditEntities.REFERRALS,
        target_id=referral.pk,
        after={
            **after,
            "event": "referred_by_partner",
            "partner_id": referral.partner_id,
            "commission_amount": commission,
        },
        actor_id=referral.patient_id,
    )
    enqueue(request, partner_draft, patient_draft)
