from datetime import datetime
from typing import Any

from .common import CamelModel


class NotificationResponse(CamelModel):
    id: str
    type: str
    title: str
    body: str
    data: dict[str, Any] | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime | None = None


class NotificationList(CamelModel):
    notifications: list[NotificationResponse]
    unread_count: int
