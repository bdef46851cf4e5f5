from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from powernaija.core.errors import BadRequestError, NotFoundError
from powernaija.models.carbon_credit import CarbonCredit
from powernaija.models.notification import Notification, NotificationType
from powernaija.models.usage_limit import UsageLimit
from powernaija.models.usage_log import UsageLog
from powernaija.services.usage import (
    UsageLimitPolicy,
    UsageService,
    subtract_months,
    window_start,
)

LAGOS = ZoneInfo("Africa/Lagos")


class TestWindows:
    def test_daily_starts_at_local_midnight(self):
        # 23:30 UTC on the 1st is 00:30 on the 2nd in Lagos (UTC+1)
        now = datetime(2024, 3, 1, 23, 30, tzinfo=timezone.utc)
        assert window_start("daily", now, LAGOS) == datetime(2024, 3, 1, 23, 0, tzinfo=timezone.utc)

    def test_weekly_is_rolling(self):
        now = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)
        assert window_start("weekly", now, LAGOS) == now - timedelta(days=7)

    def test_monthly_is_one_calendar_month(self):
        now = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)
        assert window_start("monthly", now, LAGOS) == datetime(2024, 2, 10, 12, 0, tzinfo=timezone.utc)

    def test_all_has_no_start(self):
        assert window_start("all", datetime.now(timezone.utc), LAGOS) is None

    def test_invalid_period(self):
        with pytest.raises(BadRequestError):
            window_start("yearly", datetime.now(timezone.utc), LAGOS)

    @pytest.mark.parametrize(
        "moment, expected",
        [
            (datetime(2024, 3, 31), datetime(2024, 2, 29)),
            (datetime(2023, 3, 31), datetime(2023, 2, 28)),
            (datetime(2024, 1, 15), datetime(2023, 12, 15)),
        ],
    )
    def test_subtract_months_clamps_day(self, moment, expected):
        assert subtract_months(moment, 1) == expected


def _log(db, user, token, amount, when):
    db.add(UsageLog(user_id=user.id, token_id=token.id, amount=amount, timestamp=when))
    db.commit()


class TestUsageLimitPolicy:
    def test_defaults_created_on_first_read(self, db, settings, customer):
        limits = UsageLimitPolicy(db, settings).get_limits(customer.id)
        assert limits.daily_limit == settings.DEFAULT_DAILY_LIMIT
        assert limits.weekly_limit == settings.DEFAULT_WEEKLY_LIMIT
        assert limits.monthly_limit == settings.DEFAULT_MONTHLY_LIMIT
        assert limits.alert_threshold == settings.DEFAULT_ALERT_THRESHOLD

    def test_default_insert_keeps_concurrent_row(self, db, settings, customer):
        policy = UsageLimitPolicy(db, settings)
        policy.set_limits(customer.id, daily_limit=5)

        # A second request that missed the row on its first read
        policy._insert_defaults(customer.id)
        db.commit()

        assert db.query(UsageLimit).filter(UsageLimit.user_id == customer.id).count() == 1
        assert policy.get_limits(customer.id).daily_limit == 5

    def test_set_limits_is_partial(self, db, settings, customer):
        policy = UsageLimitPolicy(db, settings)
        limits = policy.set_limits(customer.id, daily_limit=10)
        assert limits.daily_limit == 10
        assert limits.weekly_limit == settings.DEFAULT_WEEKLY_LIMIT

    @pytest.mark.parametrize(
        "changes",
        [{"daily_limit": 0}, {"monthly_limit": -5}, {"alert_threshold": 1.5}],
    )
    def test_set_limits_validates(self, db, settings, customer, changes):
        with pytest.raises(BadRequestError):
            UsageLimitPolicy(db, settings).set_limits(customer.id, **changes)

    def test_threshold_boundary_alerts(self, db, settings, customer, grid_token):
        policy = UsageLimitPolicy(db, settings)
        policy.set_limits(customer.id, daily_limit=10, alert_threshold=0.8)
        now = datetime.now(timezone.utc)
        _log(db, customer, grid_token, 8, now)

        alerted = policy.evaluate(customer.id, now=now)
        db.commit()

        assert alerted == ["daily"]
        notification = db.query(Notification).one()
        assert notification.type == NotificationType.USAGE_ALERT
        assert notification.title == "Daily Usage Alert"
        assert notification.data == {"period": "daily", "totalUsage": 8.0, "limit": 10.0}

    def test_below_threshold_is_quiet(self, db, settings, customer, grid_token):
        policy = UsageLimitPolicy(db, settings)
        now = datetime.now(timezone.utc)
        _log(db, customer, grid_token, 15.9, now)

        assert policy.evaluate(customer.id, now=now) == []
        assert db.query(Notification).count() == 0

    def test_every_window_can_alert(self, db, settings, customer, grid_token):
        policy = UsageLimitPolicy(db, settings)
        policy.set_limits(customer.id, daily_limit=5, weekly_limit=5, monthly_limit=5)
        now = datetime.now(timezone.utc)
        _log(db, customer, grid_token, 5, now)

        assert policy.evaluate(customer.id, now=now) == ["daily", "weekly", "monthly"]

    def test_old_usage_outside_windows(self, db, settings, customer, grid_token):
        policy = UsageLimitPolicy(db, settings)
        now = datetime.now(timezone.utc)
        _log(db, customer, grid_token, 500, now - timedelta(days=40))

        assert policy.evaluate(customer.id, now=now) == []
        assert policy.total_usage(customer.id, None) == 500


class TestUsageService:
    def test_renewable_usage_accrues_credits(self, db, settings, customer, renewable_token):
        usage_log = UsageService(db, settings).record_usage(customer.id, renewable_token.id, 50)

        assert usage_log.id is not None
        credit = db.query(CarbonCredit).one()
        assert credit.amount == 5
        assert credit.co2_reduction == 25
        assert credit.source == "Lumos Nigeria"

    def test_grid_usage_earns_nothing(self, db, settings, customer, grid_token):
        UsageService(db, settings).record_usage(customer.id, grid_token.id, 50)
        assert db.query(CarbonCredit).count() == 0

    def test_small_renewable_usage_earns_nothing(self, db, settings, customer, renewable_token):
        UsageService(db, settings).record_usage(customer.id, renewable_token.id, 9)
        assert db.query(CarbonCredit).count() == 0

    def test_usage_over_daily_threshold_alerts(self, db, settings, customer, grid_token):
        UsageService(db, settings).record_usage(customer.id, grid_token.id, 25)

        alerts = db.query(Notification).filter(Notification.type == "usage_alert").all()
        assert [alert.data["period"] for alert in alerts] == ["daily"]

    def test_limit_check_failure_keeps_usage(self, db, settings, customer, grid_token, monkeypatch):
        def explode(self, user_id, now=None):
            raise RuntimeError("limits unavailable")

        monkeypatch.setattr(UsageLimitPolicy, "evaluate", explode)

        usage_log = UsageService(db, settings).record_usage(customer.id, grid_token.id, 25)

        assert db.get(UsageLog, usage_log.id) is not None
        assert db.query(Notification).count() == 0

    @pytest.mark.parametrize("amount", [0, -3])
    def test_non_positive_amount_rejected(self, db, settings, customer, grid_token, amount):
        with pytest.raises(BadRequestError):
            UsageService(db, settings).record_usage(customer.id, grid_token.id, amount)

    def test_unknown_token(self, db, settings, customer):
        with pytest.raises(NotFoundError, match="Token not found"):
            UsageService(db, settings).record_usage(customer.id, "missing", 5)
        assert db.query(UsageLog).count() == 0

    def test_stats_split_by_token_type(self, db, settings, customer, renewable_token, grid_token):
        service = UsageService(db, settings)
        service.record_usage(customer.id, renewable_token.id, 6)
        service.record_usage(customer.id, grid_token.id, 4)

        stats = service.get_usage_stats(customer.id, "daily")
        assert stats["total_usage"] == 10
        assert stats["renewable_usage"] == 6
        assert stats["non_renewable_usage"] == 4
        assert stats["carbon_saved"] == 3
        assert len(stats["logs"]) == 2

    def test_stats_invalid_period(self, db, settings, customer):
        with pytest.raises(BadRequestError):
            UsageService(db, settings).get_usage_stats(customer.id, "hourly")
