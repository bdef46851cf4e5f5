"""
Carbon credit accrual and monetization.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import case, func
from sqlalchemy.orm import Session, joinedload

from powernaija.core.config import Settings
from powernaija.core.errors import BadRequestError
from powernaija.db.session import atomic
from powernaija.models.carbon_credit import CarbonCredit
from powernaija.models.transaction import TransactionStatus, TransactionType
from powernaija.services.transactions import TransactionJournal
from powernaija.services.wallet import WalletLedger

logger = logging.getLogger(__name__)

SELL_TO_CASH = "sell_to_cash"
CONVERT_TO_TOKENS = "convert_to_tokens"
MONETIZE_ACTIONS = (SELL_TO_CASH, CONVERT_TO_TOKENS)

TREES_PER_CREDIT = 0.5


@dataclass(frozen=True)
class CarbonCalculation:
    credits_earned: int
    co2_reduction: float
    equivalent_trees: float


def calculate_carbon_credits(
    renewable_kwh: float, ratio: float = 10, co2_per_kwh: float = 0.5
) -> CarbonCalculation:
    """Derive whole credits and CO2 avoided from renewable kWh."""
    if renewable_kwh < 0:
        raise ValueError("renewable_kwh must not be negative")
    credits_earned = math.floor(renewable_kwh / ratio)
    return CarbonCalculation(
        credits_earned=credits_earned,
        co2_reduction=renewable_kwh * co2_per_kwh,
        equivalent_trees=credits_earned * TREES_PER_CREDIT,
    )


@dataclass(frozen=True)
class MonetizeResult:
    action: str
    credits_monetized: int
    amount: float
    reference: str
    transaction_id: str
    tokens_received: float | None = None


class CarbonCreditService:
    """Accrues credits from renewable usage and converts them to cash or kWh."""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    def calculate(self, renewable_kwh: float) -> CarbonCalculation:
        return calculate_carbon_credits(
            renewable_kwh,
            ratio=self.settings.CARBON_CREDIT_RATIO,
            co2_per_kwh=self.settings.CO2_REDUCTION_PER_KWH,
        )

    def accrue(self, user_id: str, renewable_kwh: float, source: str) -> CarbonCredit | None:
        """Create a credit batch for one renewable usage event, if it earns any.

        Runs inside the caller's transaction.
        """
        calculation = self.calculate(renewable_kwh)
        if calculation.credits_earned <= 0:
            return None

        credit = CarbonCredit(
            user_id=user_id,
            amount=calculation.credits_earned,
            source=source,
            renewable_kwh=renewable_kwh,
            co2_reduction=calculation.co2_reduction,
            is_sold=False,
        )
        self.db.add(credit)
        self.db.flush()
        logger.info("Carbon credits earned: %d for user %s", credit.amount, user_id)
        return credit

    def monetize(self, user_id: str, credit_ids: list[str], action: str) -> MonetizeResult:
        """Sell credits for cash or convert them to kWh, all or nothing."""
        if action not in MONETIZE_ACTIONS:
            raise BadRequestError("Invalid action specified")

        requested = set(credit_ids)
        if not requested:
            raise BadRequestError("No carbon credits selected")

        price = self.settings.CARBON_CREDIT_PRICE
        with atomic(self.db):
            credits = (
                self.db.query(CarbonCredit)
                .filter(
                    CarbonCredit.id.in_(requested),
                    CarbonCredit.user_id == user_id,
                    CarbonCredit.is_sold.is_(False),
                )
                .with_for_update()
                .populate_existing()
                .all()
            )
            if len(credits) != len(requested):
                raise BadRequestError("Some carbon credits are invalid or already sold")

            total_credits = sum(credit.amount for credit in credits)
            total_amount = total_credits * price

            now = datetime.now(timezone.utc)
            for credit in credits:
                credit.is_sold = True
                credit.sold_at = now
                credit.sold_price = price

            ledger = WalletLedger(self.db)
            tokens_received = None
            if action == SELL_TO_CASH:
                ledger.update_cash_balance(user_id, total_amount, "add")
            else:
                tokens_received = total_amount / self.settings.CARBON_TOKEN_RATE
                ledger.update_balance(user_id, tokens_received, "add")

            transaction = TransactionJournal(self.db).record(
                user_id=user_id,
                type=TransactionType.CARBON_CREDIT_SALE,
                status=TransactionStatus.SUCCESS,
                amount=total_amount,
                quantity=tokens_received,
                reference_prefix="CARBON",
                metadata={
                    "creditIds": sorted(requested),
                    "totalCredits": total_credits,
                    "pricePerCredit": price,
                    "action": action,
                },
            )

        logger.info(
            "Carbon credits monetized (%s): %d credits for NGN %.2f by user %s",
            action,
            total_credits,
            total_amount,
            user_id,
        )
        return MonetizeResult(
            action=action,
            credits_monetized=total_credits,
            amount=total_amount,
            tokens_received=tokens_received,
            reference=transaction.reference,
            transaction_id=transaction.id,
        )

    def list_credits(self, user_id: str, include_used: bool = False) -> list[CarbonCredit]:
        query = self.db.query(CarbonCredit).filter(CarbonCredit.user_id == user_id)
        if not include_used:
            query = query.filter(CarbonCredit.is_sold.is_(False))
        return query.order_by(CarbonCredit.created_at.desc()).all()

    def get_stats(self, user_id: str) -> dict:
        sold_only = CarbonCredit.is_sold.is_(True)
        total, sold, earnings = (
            self.db.query(
                func.coalesce(func.sum(CarbonCredit.amount), 0),
                func.coalesce(func.sum(case((sold_only, CarbonCredit.amount), else_=0)), 0),
                func.coalesce(
                    func.sum(
                        case((sold_only, CarbonCredit.amount * CarbonCredit.sold_price), else_=0)
                    ),
                    0,
                ),
            )
            .filter(CarbonCredit.user_id == user_id)
            .one()
        )
        return {
            "total_credits_earned": int(total),
            "credits_sold": int(sold),
            "credits_available": int(total) - int(sold),
            "total_earnings": float(earnings),
        }

    def list_all_credits(self, page: int = 1, limit: int = 20) -> tuple[list[CarbonCredit], int]:
        total = self.db.query(CarbonCredit).count()
        credits = (
            self.db.query(CarbonCredit)
            .options(joinedload(CarbonCredit.user))
            .order_by(CarbonCredit.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return credits, total
