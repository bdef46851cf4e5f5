"""
Carbon credit model.

Credits are accrued from renewable usage and flip ``is_sold`` exactly once,
when they are monetized.
"""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from powernaija.db.base_class import Base


class CarbonCredit(Base):
    """A batch of carbon credits earned from one renewable usage event."""

    __tablename__ = "carbon_credits"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    amount = Column(Integer, nullable=False)  # credit units
    source = Column(String(255), nullable=False)  # supplying company name
    renewable_kwh = Column(Float, nullable=False)
    co2_reduction = Column(Float, nullable=False, default=0.0)  # kg

    is_sold = Column(Boolean, nullable=False, default=False, index=True)
    sold_at = Column(DateTime(timezone=True))
    sold_price = Column(Float)  # NGN per credit

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User", back_populates="carbon_credits")

    def __repr__(self):
        return f"<CarbonCredit(id={self.id}, amount={self.amount}, sold={self.is_sold})>"
