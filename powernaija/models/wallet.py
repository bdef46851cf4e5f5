"""
Wallet model: per-user energy (kWh) and cash (NGN) balances.

Balances are only mutated through ``powernaija.services.wallet.WalletLedger``.
"""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Float, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from powernaija.db.base_class import Base


class Wallet(Base):
    """Energy and cash balances owned 1:1 by a user."""

    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_wallets_balance_non_negative"),
        CheckConstraint("cash_balance >= 0", name="ck_wallets_cash_balance_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    balance = Column(Float, nullable=False, default=0.0)  # kWh
    cash_balance = Column(Float, nullable=False, default=0.0)  # NGN
    total_earned = Column(Float, nullable=False, default=0.0)  # kWh credited, cumulative
    total_spent = Column(Float, nullable=False, default=0.0)  # kWh debited, cumulative

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="wallet")

    def __repr__(self):
        return (
            f"<Wallet(user_id={self.user_id}, balance={self.balance}, "
            f"cash_balance={self.cash_balance})>"
        )
