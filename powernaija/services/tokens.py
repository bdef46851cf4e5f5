"""
Energy token catalogue and the purchase lifecycle.

A purchase creates a PENDING transaction whose reference is handed to the
payment gateway. Confirmation (redirect callback or webhook) moves it to
SUCCESS and credits the wallet, or to FAILED; a transaction is never
settled twice.
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session, joinedload

from powernaija.core.config import Settings
from powernaija.core.errors import (
    BadRequestError,
    NotFoundError,
    ServiceUnavailableError,
)
from powernaija.db.session import atomic
from powernaija.models.company import Company
from powernaija.models.energy_token import EnergyToken
from powernaija.models.notification import NotificationType
from powernaija.models.transaction import Transaction, TransactionStatus, TransactionType
from powernaija.models.user import User
from powernaija.services.notifications import NotificationService
from powernaija.services.payments import (
    PaymentGateway,
    PaymentGatewayError,
    PaymentInitialization,
    PaymentVerification,
)
from powernaija.services.transactions import TransactionJournal
from powernaija.services.wallet import WalletLedger

logger = logging.getLogger(__name__)

AMOUNT_TOLERANCE = 0.01


@dataclass
class PurchaseResult:
    transaction: Transaction
    token: EnergyToken
    payment: PaymentInitialization


class TokenService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        gateway: PaymentGateway | None = None,
        notifications: NotificationService | None = None,
    ):
        self.db = db
        self.settings = settings
        self.gateway = gateway
        self.notifications = notifications or NotificationService(db)
        self.journal = TransactionJournal(db)

    # Catalogue

    def _token_query(self):
        return self.db.query(EnergyToken).options(joinedload(EnergyToken.company))

    def get_token(self, token_id: str) -> EnergyToken:
        token = self._token_query().filter(EnergyToken.id == token_id).first()
        if not token:
            raise NotFoundError("Token not found")
        return token

    def list_available(self, company_id: str | None = None) -> list[EnergyToken]:
        query = (
            self._token_query()
            .join(EnergyToken.company)
            .filter(EnergyToken.is_available.is_(True), Company.is_active.is_(True))
        )
        if company_id:
            query = query.filter(EnergyToken.company_id == company_id)
        return query.order_by(EnergyToken.price_per_unit.asc()).all()

    def list_all(self, page: int = 1, limit: int = 20) -> tuple[list[EnergyToken], int]:
        total = self.db.query(EnergyToken).count()
        tokens = (
            self._token_query()
            .order_by(EnergyToken.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return tokens, total

    def create_token(self, **data: Any) -> EnergyToken:
        if not self.db.get(Company, data["company_id"]):
            raise NotFoundError("Company not found")
        with atomic(self.db):
            token = EnergyToken(**data)
            self.db.add(token)
        logger.info("Token created: %s for company %s", token.id, token.company_id)
        return self.get_token(token.id)

    def update_token(self, token_id: str, **changes: Any) -> EnergyToken:
        with atomic(self.db):
            token = self.get_token(token_id)
            for field, value in changes.items():
                setattr(token, field, value)
        logger.info("Token updated: %s", token_id)
        return token

    # Purchases

    def purchase(
        self,
        user: User,
        token_id: str,
        quantity: float,
        amount: float,
        payment_method: str = "paystack",
    ) -> PurchaseResult:
        """Open a PENDING purchase and initialise payment for it."""
        if self.gateway is None:
            raise ServiceUnavailableError("Payments are not configured")

        token = self.get_token(token_id)
        if not token.is_available or not token.company.is_active:
            raise BadRequestError("Token is not available for purchase")

        expected = token.price_per_unit * quantity
        if abs(amount - expected) > AMOUNT_TOLERANCE:
            raise BadRequestError("Invalid purchase amount")

        with atomic(self.db):
            transaction = self.journal.record(
                user_id=user.id,
                type=TransactionType.PURCHASE,
                status=TransactionStatus.PENDING,
                amount=amount,
                quantity=quantity,
                company_id=token.company_id,
                payment_method=payment_method,
                reference_prefix="TXN",
                metadata={
                    "tokenId": token.id,
                    "quantity": quantity,
                    "pricePerUnit": token.price_per_unit,
                    "companyId": token.company_id,
                    "description": (
                        f"Purchase of {quantity:g} kWh {token.type.value} tokens "
                        f"from {token.company.name}"
                    ),
                },
            )
        logger.info("Token purchase initiated: %s for user %s", transaction.reference, user.id)

        try:
            payment = self.gateway.initialize(
                user.email,
                amount,
                transaction.reference,
                metadata={
                    "transactionId": transaction.id,
                    "userId": user.id,
                    "tokenId": token.id,
                    "quantity": quantity,
                },
            )
        except PaymentGatewayError as e:
            self.fail_purchase(transaction.id, reason=str(e))
            raise ServiceUnavailableError(
                "Payment initialization failed", code="PAYMENT_GATEWAY_ERROR"
            ) from e

        return PurchaseResult(transaction=transaction, token=token, payment=payment)

    def complete_purchase(self, transaction_id: str) -> Transaction:
        """PENDING -> SUCCESS and credit the purchased kWh, atomically."""
        with atomic(self.db):
            transaction = self.journal.get(transaction_id, for_update=True)
            if transaction.type != TransactionType.PURCHASE:
                raise BadRequestError("Transaction is not a purchase")
            self.journal.transition(transaction, TransactionStatus.SUCCESS)

            quantity = transaction.quantity
            if quantity is None:
                quantity = (transaction.transaction_metadata or {}).get("quantity", 0)
            WalletLedger(self.db).update_balance(transaction.user_id, quantity, "add")

            self.notifications.create(
                transaction.user_id,
                NotificationType.PAYMENT_SUCCESS,
                "Payment Successful",
                f"Your purchase of {quantity:g} kWh was successful.",
                {"transactionId": transaction.id, "reference": transaction.reference},
            )

        self.notifications.dispatch()
        logger.info("Token purchase completed: %s", transaction.reference)
        return transaction

    def fail_purchase(self, transaction_id: str, reason: str | None = None) -> Transaction:
        with atomic(self.db):
            transaction = self.journal.get(transaction_id, for_update=True)
            self.journal.transition(transaction, TransactionStatus.FAILED)
            if reason:
                transaction.transaction_metadata = {
                    **(transaction.transaction_metadata or {}),
                    "failureReason": reason,
                }
            self.notifications.create(
                transaction.user_id,
                NotificationType.PAYMENT_FAILED,
                "Payment Failed",
                "Your payment could not be completed. No charge was applied to your wallet.",
                {"transactionId": transaction.id, "reference": transaction.reference},
            )

        self.notifications.dispatch()
        logger.info("Token purchase failed: %s (%s)", transaction.reference, reason or "no reason")
        return transaction

    def confirm_payment(self, verification: PaymentVerification) -> str:
        """Settle the purchase behind a verified payment.

        Returns ``success``, ``failed`` or ``pending``. Already settled
        transactions report their existing outcome without changes.
        """
        transaction = self.journal.get_by_reference(verification.reference)
        if transaction is None:
            raise NotFoundError("Transaction not found")

        if transaction.status != TransactionStatus.PENDING:
            return _outcome(transaction)

        if verification.succeeded:
            if verification.amount + AMOUNT_TOLERANCE < transaction.amount:
                logger.warning(
                    "Underpayment for %s: paid %.2f, expected %.2f",
                    transaction.reference,
                    verification.amount,
                    transaction.amount,
                )
                try:
                    self.fail_purchase(transaction.id, reason="Amount paid does not match")
                except BadRequestError:
                    self.db.refresh(transaction)
                    return _outcome(transaction)
                return "failed"
            try:
                self.complete_purchase(transaction.id)
            except BadRequestError:
                # Settled concurrently
                self.db.refresh(transaction)
                return _outcome(transaction)
            return "success"

        if verification.status == "failed":
            try:
                self.fail_purchase(transaction.id, reason="Payment declined")
            except BadRequestError:
                self.db.refresh(transaction)
                return _outcome(transaction)
            return "failed"
        return "pending"


def _outcome(transaction: Transaction) -> str:
    return "success" if transaction.status == TransactionStatus.SUCCESS else "failed"
