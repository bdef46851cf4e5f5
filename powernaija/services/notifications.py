"""
In-app notifications and device push.

Notifications are written in the caller's database transaction. Pushes are
queued and only sent by ``dispatch`` once the caller has committed.
Notifications whose insert was rolled back are dropped from the queue.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

import firebase_admin
from firebase_admin import messaging
from sqlalchemy import inspect
from sqlalchemy.orm import Session

from powernaija.core.errors import NotFoundError
from powernaija.models.notification import Notification
from powernaija.models.user import User

logger = logging.getLogger(__name__)


class PushSender(ABC):
    """Delivers a notification to a single device."""

    @abstractmethod
    def send(self, device_token: str, title: str, body: str, data: dict[str, Any] | None = None) -> None:
        pass


class FirebasePushSender(PushSender):
    """Push through Firebase Cloud Messaging."""

    def __init__(self, app: firebase_admin.App):
        self.app = app

    def send(self, device_token: str, title: str, body: str, data: dict[str, Any] | None = None) -> None:
        message = messaging.Message(
            token=device_token,
            notification=messaging.Notification(title=title, body=body),
            # FCM data payloads only carry strings
            data={key: str(value) for key, value in (data or {}).items()},
        )
        message_id = messaging.send(message, app=self.app)
        logger.debug("Push delivered: %s", message_id)


class NotificationService:
    def __init__(self, db: Session, push_sender: PushSender | None = None):
        self.db = db
        self.push_sender = push_sender
        self._outbox: list[Notification] = []

    def create(
        self,
        user_id: str,
        type: str,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id, type=type, title=title, body=body, data=data or {}, is_read=False
        )
        self.db.add(notification)
        self.db.flush()
        self._outbox.append(notification)
        return notification

    def dispatch(self) -> int:
        """Push queued notifications to registered devices. Never raises."""
        pending, self._outbox = self._outbox, []
        # Rollback expunges rows inserted in the failed transaction
        pending = [notification for notification in pending if inspect(notification).persistent]
        if not self.push_sender or not pending:
            return 0

        sent = 0
        for notification in pending:
            user = self.db.get(User, notification.user_id)
            if not user or not user.fcm_token:
                continue
            try:
                self.push_sender.send(
                    user.fcm_token,
                    notification.title,
                    notification.body,
                    {"type": notification.type, "notificationId": notification.id},
                )
                sent += 1
            except Exception:
                logger.exception("Push failed for notification %s", notification.id)
        return sent

    def list_for_user(
        self, user_id: str, unread_only: bool = False, limit: int = 50
    ) -> tuple[list[Notification], int]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        items = query.order_by(Notification.created_at.desc()).limit(limit).all()
        unread = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .count()
        )
        return items, unread

    def mark_read(self, user_id: str, notification_id: str) -> Notification:
        notification = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )
        if not notification:
            raise NotFoundError("Notification not found")
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            self.db.flush()
        return notification

    def mark_all_read(self, user_id: str) -> int:
        updated = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update(
                {Notification.is_read: True, Notification.read_at: datetime.now(timezone.utc)},
                synchronize_session=False,
            )
        )
        self.db.flush()
        return updated
