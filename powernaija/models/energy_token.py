"""
Energy token model: a purchasable kWh product issued by a company.
"""

import enum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from powernaija.db.base_class import Base


class TokenType(str, enum.Enum):
    """Energy source of a token; drives carbon credit attribution."""

    RENEWABLE = "RENEWABLE"
    NON_RENEWABLE = "NON_RENEWABLE"


class EnergyToken(Base):
    """Energy token offered by a company at a price per kWh."""

    __tablename__ = "tokens"
    __table_args__ = (UniqueConstraint("company_id", "type", name="uq_tokens_company_type"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(Enum(TokenType, name="token_type"), nullable=False)
    price_per_unit = Column(Float, nullable=False)  # NGN per kWh
    description = Column(Text)
    is_available = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    company = relationship("Company", back_populates="tokens")
    usage_logs = relationship("UsageLog", back_populates="token")

    @property
    def is_renewable(self) -> bool:
        return self.type == TokenType.RENEWABLE
