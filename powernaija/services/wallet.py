"""
Wallet ledger.

All balance changes go through ``WalletLedger`` so non-negative
balances and the cumulative kWh counters are enforced in one place. Methods only flush;
callers own the surrounding database transaction (see ``atomic``).
"""

import logging
from typing import Literal

from sqlalchemy.orm import Session

from powernaija.core.errors import BadRequestError, NotFoundError
from powernaija.models.user import User
from powernaija.models.wallet import Wallet

logger = logging.getLogger(__name__)

Operation = Literal["add", "subtract"]


class WalletLedger:
    """Row-locked balance mutations for a user's wallet."""

    def __init__(self, db: Session):
        self.db = db

    def create_wallet(self, user: User) -> Wallet:
        wallet = Wallet(
            user=user, balance=0.0, cash_balance=0.0, total_earned=0.0, total_spent=0.0
        )
        self.db.add(wallet)
        self.db.flush()
        return wallet

    def get_wallet(self, user_id: str, for_update: bool = False) -> Wallet:
        query = self.db.query(Wallet).filter(Wallet.user_id == user_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        wallet = query.first()
        if not wallet:
            raise NotFoundError("Wallet not found")
        return wallet

    def update_balance(self, user_id: str, amount: float, operation: Operation) -> Wallet:
        """Add or subtract kWh, tracking lifetime earned/spent totals."""
        _check_amount(amount, operation)
        wallet = self.get_wallet(user_id, for_update=True)

        if operation == "add":
            wallet.balance += amount
            wallet.total_earned += amount
        else:
            if wallet.balance < amount:
                raise BadRequestError("Insufficient wallet balance")
            wallet.balance -= amount
            wallet.total_spent += amount

        self.db.flush()
        logger.info("Wallet %s: %s %.4f kWh (balance %.4f)", user_id, operation, amount, wallet.balance)
        return wallet

    def update_cash_balance(self, user_id: str, amount: float, operation: Operation) -> Wallet:
        """Add or subtract NGN from the cash balance."""
        _check_amount(amount, operation)
        wallet = self.get_wallet(user_id, for_update=True)

        if operation == "add":
            wallet.cash_balance += amount
        else:
            if wallet.cash_balance < amount:
                raise BadRequestError("Insufficient wallet balance")
            wallet.cash_balance -= amount

        self.db.flush()
        logger.info(
            "Wallet %s: %s NGN %.2f (cash balance %.2f)",
            user_id,
            operation,
            amount,
            wallet.cash_balance,
        )
        return wallet


def _check_amount(amount: float, operation: str) -> None:
    if operation not in ("add", "subtract"):
        raise BadRequestError(f"Invalid wallet operation: {operation}")
    if amount < 0:
        raise BadRequestError("Amount must not be negative")
