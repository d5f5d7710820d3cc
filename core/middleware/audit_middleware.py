import logging

from apps.audit.hooks import AUDIT_QUEUE_ATTR, AuditQueue
from apps.audit.recorder import dispatcher

logger = logging.getLogger(__name__)


class AuditContextMiddleware:
    """
    Gives every request its own audit queue and dispatches whatever the
    view enqueued after the response has been produced. Dispatch errors are
    logged and never reach the client.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        queue = AuditQueue()
        setattr(request, AUDIT_QUEUE_ATTR, queue)

        response = self.get_response(request)

        drafts = queue.drain()
        if drafts:
            try:
                dispatcher.submit(drafts)
            except Exception as e:
                logger.error(f"Audit dispatch failed for {request.path}: {e}", exc_info=True)

        return response
