"""
Company model for energy distribution companies and renewable providers.
"""

import uuid

from sqlalchemy import Boolean, Column, DateTime, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from powernaija.db.base_class import Base


class Company(Base):
    """An energy company issuing tokens."""

    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    description = Column(Text)
    logo = Column(String(500))
    support_email = Column(String(255))
    support_phone = Column(String(50))
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    tokens = relationship("EnergyToken", back_populates="company", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="company")
