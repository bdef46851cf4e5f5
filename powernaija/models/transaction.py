"""
Transaction model: the append-mostly journal of value movements.
"""

import enum
import uuid

from sqlalchemy import JSON, Column, DateTime, Enum, Float, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from powernaija.db.base_class import Base


class TransactionType(str, enum.Enum):
    PURCHASE = "PURCHASE"
    USAGE = "USAGE"
    CARBON_CREDIT_SALE = "CARBON_CREDIT_SALE"
    REFUND = "REFUND"


class TransactionStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


# Allowed status moves; anything else is rejected as already processed
TRANSITIONS = {
    TransactionStatus.PENDING: {TransactionStatus.SUCCESS, TransactionStatus.FAILED},
    TransactionStatus.SUCCESS: {TransactionStatus.REFUNDED},
    TransactionStatus.FAILED: set(),
    TransactionStatus.REFUNDED: set(),
}


class Transaction(Base):
    """A journal entry; ``reference`` is unique and doubles as the payment key."""

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    company_id = Column(String(36), ForeignKey("companies.id"), index=True)

    type = Column(Enum(TransactionType, name="transaction_type"), nullable=False)
    status = Column(
        Enum(TransactionStatus, name="transaction_status"),
        nullable=False,
        default=TransactionStatus.PENDING,
        index=True,
    )

    amount = Column(Float, nullable=False)  # NGN
    quantity = Column(Float)  # kWh for purchases
    reference = Column(String(100), unique=True, index=True, nullable=False)
    payment_method = Column(String(50))
    transaction_metadata = Column("metadata", JSON, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="transactions")
    company = relationship("Company", back_populates="transactions")

    def can_transition_to(self, status: TransactionStatus) -> bool:
        return status in TRANSITIONS.get(self.status, set())

    def __repr__(self):
        return (
            f"<Transaction(reference={self.reference}, type={self.type}, "
            f"status={self.status}, amount={self.amount})>"
        )
