"""
Celery tasks for notification delivery.
"""
from hookwarden.core.celery_app import celery_app
from hookwarden.core.database import get_session_context
from hookwarden.core.exceptions import StorageError
from hookwarden.core.logging_config import log_error, log_info
from hookwarden.services.dispatch import DispatchMessage, deliver


@celery_app.task(name="hookwarden.tasks.notifications.deliver_notification", bind=True)
def deliver_notification(self, payload: dict):
    """
    Persist one routed notification.

    Not retried: a retry after a partial failure could deliver the same
    notification twice.

    Args:
        payload: DispatchMessage.to_payload() output
    """
    message = DispatchMessage.from_payload(payload)
    with get_session_context() as db:
        try:
            deliver(db, message)
        except StorageError as exc:
            log_error(exc, recipient_id=payload.get("recipient_id"), task_id=self.request.id)
            return {"delivered": False}

    log_info("Notification delivered", recipient_id=payload.get("recipient_id"))
    return {"delivered": True}
