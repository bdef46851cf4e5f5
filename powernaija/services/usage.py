"""
Energy usage recording, statistics and limit alerts.

Recording a usage event runs in this order: persist the log, accrue carbon
credits for renewable tokens (same database transaction), then evaluate the
user's limits in a separate transaction whose failures are only logged.
"""

import calendar
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, joinedload

from powernaija.core.config import Settings
from powernaija.core.errors import BadRequestError, NotFoundError
from powernaija.db.session import atomic
from powernaija.models.energy_token import EnergyToken, TokenType
from powernaija.models.notification import NotificationType
from powernaija.models.usage_limit import UsageLimit
from powernaija.models.usage_log import UsageLog
from powernaija.services.carbon import CarbonCreditService
from powernaija.services.notifications import NotificationService

logger = logging.getLogger(__name__)

PERIODS = ("daily", "weekly", "monthly", "all")
LIMIT_PERIODS = ("daily", "weekly", "monthly")

_PERIOD_PHRASE = {"daily": "today", "weekly": "this week", "monthly": "this month"}


def subtract_months(moment: datetime, months: int) -> datetime:
    """Same wall-clock time ``months`` calendar months earlier, clamping the day."""
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def window_start(period: str, now: datetime, tz: ZoneInfo) -> datetime | None:
    """UTC start of a usage window ending at ``now``; None means all time.

    ``daily`` starts at local midnight in ``tz``; ``weekly`` and ``monthly``
    are rolling windows.
    """
    if period == "daily":
        local_midnight = now.astimezone(tz).replace(hour=0, minute=0, second=0, microsecond=0)
        return local_midnight.astimezone(timezone.utc)
    if period == "weekly":
        return now - timedelta(days=7)
    if period == "monthly":
        return subtract_months(now, 1)
    if period == "all":
        return None
    raise BadRequestError(f"Invalid period: {period}")


class UsageLimitPolicy:
    """Per-user thresholds and the alerting that runs after each usage record."""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        notifications: NotificationService | None = None,
    ):
        self.db = db
        self.settings = settings
        self.notifications = notifications or NotificationService(db)
        self.tz = ZoneInfo(settings.TIMEZONE)

    def _insert_defaults(self, user_id: str) -> None:
        """Insert default limits unless a row for the user already exists."""
        dialect = self.db.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        statement = (
            insert(UsageLimit)
            .values(
                id=str(uuid.uuid4()),
                user_id=user_id,
                daily_limit=self.settings.DEFAULT_DAILY_LIMIT,
                weekly_limit=self.settings.DEFAULT_WEEKLY_LIMIT,
                monthly_limit=self.settings.DEFAULT_MONTHLY_LIMIT,
                alert_threshold=self.settings.DEFAULT_ALERT_THRESHOLD,
            )
            .on_conflict_do_nothing(index_elements=[UsageLimit.user_id])
        )
        self.db.execute(statement)

    def _load_or_create(self, user_id: str) -> UsageLimit:
        query = self.db.query(UsageLimit).filter(UsageLimit.user_id == user_id)
        limits = query.first()
        if limits is None:
            # Concurrent first reads race here; the losing insert is a no-op
            self._insert_defaults(user_id)
            limits = query.one()
        return limits

    def get_limits(self, user_id: str) -> UsageLimit:
        with atomic(self.db):
            return self._load_or_create(user_id)

    def set_limits(
        self,
        user_id: str,
        daily_limit: float | None = None,
        weekly_limit: float | None = None,
        monthly_limit: float | None = None,
        alert_threshold: float | None = None,
    ) -> UsageLimit:
        for name, value in (
            ("dailyLimit", daily_limit),
            ("weeklyLimit", weekly_limit),
            ("monthlyLimit", monthly_limit),
        ):
            if value is not None and value <= 0:
                raise BadRequestError(f"{name} must be positive")
        if alert_threshold is not None and not 0 <= alert_threshold <= 1:
            raise BadRequestError("alertThreshold must be between 0 and 1")

        with atomic(self.db):
            limits = self._load_or_create(user_id)
            if daily_limit is not None:
                limits.daily_limit = daily_limit
            if weekly_limit is not None:
                limits.weekly_limit = weekly_limit
            if monthly_limit is not None:
                limits.monthly_limit = monthly_limit
            if alert_threshold is not None:
                limits.alert_threshold = alert_threshold

        logger.info("Usage limits set for user %s", user_id)
        return limits

    def total_usage(self, user_id: str, since: datetime | None) -> float:
        query = self.db.query(func.coalesce(func.sum(UsageLog.amount), 0.0)).filter(
            UsageLog.user_id == user_id
        )
        if since is not None:
            query = query.filter(UsageLog.timestamp >= since)
        return float(query.scalar())

    def evaluate(self, user_id: str, now: datetime | None = None) -> list[str]:
        """Create one ``usage_alert`` per window at or over its threshold.

        Runs inside the caller's transaction. Returns the alerted periods.
        """
        now = now or datetime.now(timezone.utc)
        limits = self._load_or_create(user_id)

        alerted = []
        for period in LIMIT_PERIODS:
            total = self.total_usage(user_id, window_start(period, now, self.tz))
            limit = limits.limit_for(period)
            if total < limit * limits.alert_threshold:
                continue
            self.notifications.create(
                user_id,
                NotificationType.USAGE_ALERT,
                f"{period.capitalize()} Usage Alert",
                f"You have used {total:g} kWh {_PERIOD_PHRASE[period]}, "
                f"approaching your {period} limit of {limit:g} kWh.",
                {"period": period, "totalUsage": total, "limit": limit},
            )
            alerted.append(period)

        if alerted:
            logger.info("Usage alerts for user %s: %s", user_id, ", ".join(alerted))
        return alerted

    def check(self, user_id: str) -> list[str]:
        """Evaluate limits in their own transaction. Never raises."""
        try:
            with atomic(self.db):
                alerted = self.evaluate(user_id)
        except Exception:
            logger.exception("Error checking usage limits for user %s", user_id)
            return []
        self.notifications.dispatch()
        return alerted


class UsageService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        notifications: NotificationService | None = None,
    ):
        self.db = db
        self.settings = settings
        self.carbon = CarbonCreditService(db, settings)
        self.limit_policy = UsageLimitPolicy(db, settings, notifications)

    def record_usage(
        self,
        user_id: str,
        token_id: str,
        amount: float,
        metadata: dict[str, Any] | None = None,
    ) -> UsageLog:
        """Log usage, accrue credits for renewable energy, then check limits."""
        if amount is None or amount <= 0:
            raise BadRequestError("Usage amount must be positive")

        with atomic(self.db):
            token = (
                self.db.query(EnergyToken)
                .options(joinedload(EnergyToken.company))
                .filter(EnergyToken.id == token_id)
                .first()
            )
            if not token:
                raise NotFoundError("Token not found")

            usage_log = UsageLog(
                user_id=user_id,
                token_id=token_id,
                amount=amount,
                timestamp=datetime.now(timezone.utc),
                usage_metadata=metadata or {},
            )
            self.db.add(usage_log)
            self.db.flush()

            if token.type == TokenType.RENEWABLE:
                self.carbon.accrue(user_id, amount, token.company.name)

        logger.info("Usage logged: %s kWh for user %s", amount, user_id)
        self.limit_policy.check(user_id)
        return usage_log

    def get_usage_stats(self, user_id: str, period: str = "monthly") -> dict:
        if period not in PERIODS:
            raise BadRequestError(f"Invalid period: {period}")

        since = window_start(period, datetime.now(timezone.utc), self.limit_policy.tz)
        query = (
            self.db.query(UsageLog)
            .options(joinedload(UsageLog.token).joinedload(EnergyToken.company))
            .filter(UsageLog.user_id == user_id)
        )
        if since is not None:
            query = query.filter(UsageLog.timestamp >= since)
        logs = query.order_by(UsageLog.timestamp.desc()).all()

        total = sum(log.amount for log in logs)
        renewable = sum(log.amount for log in logs if log.token.type == TokenType.RENEWABLE)
        return {
            "total_usage": total,
            "renewable_usage": renewable,
            "non_renewable_usage": total - renewable,
            "carbon_saved": renewable * self.settings.CO2_REDUCTION_PER_KWH,
            "period": period,
            "logs": logs,
        }

    def list_all_usage(self, page: int = 1, limit: int = 20) -> tuple[list[UsageLog], int]:
        total = self.db.query(UsageLog).count()
        logs = (
            self.db.query(UsageLog)
            .options(
                joinedload(UsageLog.user),
                joinedload(UsageLog.token).joinedload(EnergyToken.company),
            )
            .order_by(UsageLog.timestamp.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return logs, total
