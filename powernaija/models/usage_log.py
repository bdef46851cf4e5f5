"""
Usage log model: one immutable energy consumption event.
"""

import uuid

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Float, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from powernaija.db.base_class import Base


class UsageLog(Base):
    """Energy used by a user against a token. Never updated or deleted."""

    __tablename__ = "usage_logs"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_usage_logs_amount_positive"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_id = Column(String(36), ForeignKey("tokens.id"), nullable=False, index=True)

    amount = Column(Float, nullable=False)  # kWh
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    # "metadata" is reserved on declarative classes
    usage_metadata = Column("metadata", JSON, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="usage_logs")
    token = relationship("EnergyToken", back_populates="usage_logs")

    def __repr__(self):
        return f"<UsageLog(user_id={self.user_id}, amount={self.amount}, at={self.timestamp})>"
