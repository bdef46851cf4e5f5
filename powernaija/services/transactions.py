"""
Transaction journal.

Records value movements and enforces the status state machine. Like the
wallet ledger, it only flushes.
"""

import logging
import secrets
import time
from typing import Any

from sqlalchemy.orm import Session

from powernaija.core.errors import BadRequestError, NotFoundError
from powernaija.models.transaction import Transaction, TransactionStatus, TransactionType

logger = logging.getLogger(__name__)

_REFERENCE_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


class TransactionJournal:
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def generate_reference(prefix: str) -> str:
        """``PREFIX-<epoch ms>-<9 random chars>``; uniqueness is also enforced by the schema."""
        suffix = "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(9))
        return f"{prefix}-{int(time.time() * 1000)}-{suffix}"

    def record(
        self,
        *,
        user_id: str,
        type: TransactionType,
        amount: float,
        status: TransactionStatus = TransactionStatus.PENDING,
        reference: str | None = None,
        reference_prefix: str = "TXN",
        quantity: float | None = None,
        company_id: str | None = None,
        payment_method: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Transaction:
        transaction = Transaction(
            user_id=user_id,
            type=type,
            status=status,
            amount=amount,
            quantity=quantity,
            company_id=company_id,
            payment_method=payment_method,
            reference=reference or self.generate_reference(reference_prefix),
            transaction_metadata=metadata or {},
        )
        self.db.add(transaction)
        self.db.flush()
        logger.info(
            "Transaction %s recorded: %s %s NGN %.2f",
            transaction.reference,
            type.value,
            status.value,
            amount,
        )
        return transaction

    def get(self, transaction_id: str, for_update: bool = False) -> Transaction:
        query = self.db.query(Transaction).filter(Transaction.id == transaction_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        transaction = query.first()
        if not transaction:
            raise NotFoundError("Transaction not found")
        return transaction

    def get_by_reference(self, reference: str, for_update: bool = False) -> Transaction | None:
        query = self.db.query(Transaction).filter(Transaction.reference == reference)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def transition(self, transaction: Transaction, status: TransactionStatus) -> Transaction:
        """Move ``transaction`` to ``status`` or raise if the move is not allowed."""
        if not transaction.can_transition_to(status):
            raise BadRequestError("Transaction already processed")
        previous = transaction.status
        transaction.status = status
        self.db.flush()
        logger.info(
            "Transaction %s: %s -> %s", transaction.reference, previous.value, status.value
        )
        return transaction

    def list_for_user(
        self, user_id: str, page: int = 1, limit: int = 20
    ) -> tuple[list[Transaction], int]:
        query = self.db.query(Transaction).filter(Transaction.user_id == user_id)
        total = query.count()
        items = (
            query.order_by(Transaction.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total
