"""Profile management."""

import logging
from typing import Any

from sqlalchemy.orm import Session, joinedload

from powernaija.db.session import atomic
from powernaija.models.user import User

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def update_profile(self, user: User, **changes: Any) -> User:
        with atomic(self.db):
            for field, value in changes.items():
                setattr(user, field, value)
        logger.info("Profile updated: %s (%s)", user.email, ", ".join(sorted(changes)))
        return user

    def set_device_token(self, user: User, fcm_token: str | None) -> User:
        with atomic(self.db):
            user.fcm_token = fcm_token
        logger.info("Device token %s for %s", "registered" if fcm_token else "cleared", user.email)
        return user

    def list_users(self, page: int = 1, limit: int = 20) -> tuple[list[User], int]:
        total = self.db.query(User).count()
        users = (
            self.db.query(User)
            .options(joinedload(User.wallet))
            .order_by(User.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return users, total
