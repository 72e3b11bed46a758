"""Fire-and-forget notification dispatch.

Notifications are sent after the workflow mutation has committed. Failures
are logged and swallowed here so they can never fail the operation that
triggered them.
"""
import logging
from dataclasses import dataclass, field, asdict
from typing import Callable, List, Optional

import httpx
from sqlalchemy.orm import Session

from goldworks.models.activity import Notification, NotificationType

logger = logging.getLogger(__name__)


@dataclass
class NotificationMessage:
    """A notification addressed to one or more users."""
    type: NotificationType
    title: str
    message: str
    recipient_ids: List[str] = field(default_factory=list)
    order_id: Optional[str] = None
    order_number: Optional[str] = None
    urgent: bool = False

    def to_dict(self):
        data = asdict(self)
        data["type"] = NotificationType(self.type).value
        return data


class NotificationDispatcher:
    """Stores notifications in their own session and optionally posts them to a webhook."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        webhook_url: Optional[str] = None,
        timeout: float = 5.0,
    ) -> None:
        self.session_factory = session_factory
        self.webhook_url = webhook_url
        self.timeout = timeout

    def dispatch(self, notification: NotificationMessage) -> bool:
        """Deliver a notification. Returns False if delivery failed."""
        try:
            self._store(notification)
            if self.webhook_url:
                self._post(notification)
        except Exception:
            logger.exception(
                "Failed to dispatch notification type=%s order=%s recipients=%s",
                NotificationType(notification.type).value,
                notification.order_id,
                notification.recipient_ids,
            )
            return False
        logger.info(
            "Notification dispatched type=%s order=%s recipients=%d",
            NotificationType(notification.type).value,
            notification.order_id,
            len(notification.recipient_ids),
        )
        return True

    def _store(self, notification: NotificationMessage) -> None:
        if not notification.recipient_ids:
            return
        db = self.session_factory()
        try:
            for user_id in notification.recipient_ids:
                db.add(Notification(
                    user_id=user_id,
                    type=NotificationType(notification.type).value,
                    title=notification.title,
                    message=notification.message,
                    related_order_id=notification.order_id,
                ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _post(self, notification: NotificationMessage) -> None:
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(self.webhook_url, json=notification.to_dict())
            response.raise_for_status()
