"""
Usage limit model: per-user consumption thresholds.
"""

import uuid

from sqlalchemy import Column, DateTime, Float, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from powernaija.db.base_class import Base


class UsageLimit(Base):
    """Daily/weekly/monthly kWh limits and the fraction at which to alert."""

    __tablename__ = "usage_limits"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    daily_limit = Column(Float, nullable=False)
    weekly_limit = Column(Float, nullable=False)
    monthly_limit = Column(Float, nullable=False)
    alert_threshold = Column(Float, nullable=False)  # 0..1

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="usage_limit")

    def limit_for(self, period: str) -> float:
        return {
            "daily": self.daily_limit,
            "weekly": self.weekly_limit,
            "monthly": self.monthly_limit,
        }[period]
