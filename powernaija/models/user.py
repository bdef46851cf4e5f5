"""
User model for authentication and profile management.
"""

import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from powernaija.db.base_class import Base


class UserRole(str, enum.Enum):
    """Roles a user can hold."""

    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"
    COMPANY_REP = "COMPANY_REP"


SUPPORTED_LANGUAGES = {
    "en": "English",
    "ha": "Hausa",
    "ig": "Igbo",
    "yo": "Yoruba",
    "pidgin": "Nigerian Pidgin",
}


class User(Base):
    """User model for authentication and profile management."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    # Null for accounts created through the identity provider
    hashed_password = Column(String(255))

    # Profile fields
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(20))
    language = Column(String(10), nullable=False, default="en")
    profile_image = Column(String(500))

    role = Column(Enum(UserRole, name="user_role"), nullable=False, default=UserRole.CUSTOMER)

    # Identity provider + push device
    firebase_uid = Column(String(128), unique=True, index=True)
    fcm_token = Column(String(512))

    # Status fields
    is_active = Column(Boolean, default=True)
    email_verified = Column(Boolean, default=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    last_login = Column(DateTime(timezone=True))

    # Relationships
    wallet = relationship(
        "Wallet", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    usage_limit = relationship(
        "UsageLimit", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    usage_logs = relationship("UsageLog", back_populates="user", cascade="all, delete-orphan")
    carbon_credits = relationship(
        "CarbonCredit", back_populates="user", cascade="all, delete-orphan"
    )
    transactions = relationship(
        "Transaction", back_populates="user", cascade="all, delete-orphan"
    )
    notifications = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )
    chat_sessions = relationship(
        "ChatSession", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
