"""Energy usage endpoints."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from powernaija.api import deps
from powernaija.core.config import Settings
from powernaija.models.usage_log import UsageLog
from powernaija.models.user import User, UserRole
from powernaija.schemas.common import envelope, paginated
from powernaija.schemas.usage import (
    Period,
    UsageCreate,
    UsageLimitsResponse,
    UsageLimitsUpdate,
    UsageLogDetail,
    UsageLogResponse,
    UsageStats,
)
from powernaija.schemas.user import UserSummary
from powernaija.services.notifications import NotificationService
from powernaija.services.usage import UsageLimitPolicy, UsageService

router = APIRouter()


def _detail(log: UsageLog, include_user: bool = False) -> UsageLogDetail:
    return UsageLogDetail(
        **UsageLogResponse.model_validate(log).model_dump(),
        token_type=log.token.type.value if log.token else None,
        company_name=log.token.company.name if log.token and log.token.company else None,
        user=UserSummary.model_validate(log.user) if include_user else None,
    )


@router.get("")
def get_usage(
    period: Period = "monthly",
    all_users: bool = Query(False, alias="all"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    current_user: User = Depends(deps.get_current_user),
):
    """Usage statistics for a period, or every user's logs for admins with ``all=true``."""
    service = UsageService(db, settings)
    if all_users and current_user.role == UserRole.ADMIN:
        logs, total = service.list_all_usage(page, limit)
        return paginated([_detail(log, include_user=True) for log in logs], page, limit, total)

    stats = service.get_usage_stats(current_user.id, period)
    stats["logs"] = [_detail(log) for log in stats["logs"]]
    return envelope(UsageStats(**stats))


@router.post("", status_code=status.HTTP_201_CREATED)
def record_usage(
    body: UsageCreate,
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    notifications: NotificationService = Depends(deps.get_notification_service),
    current_user: User = Depends(deps.get_current_user),
):
    """Log energy usage; renewable usage earns carbon credits."""
    usage_log = UsageService(db, settings, notifications).record_usage(
        current_user.id, body.token_id, body.amount, body.metadata
    )
    return envelope(UsageLogResponse.model_validate(usage_log), "Usage logged successfully")


@router.get("/limits")
def get_limits(
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    current_user: User = Depends(deps.get_current_user),
):
    limits = UsageLimitPolicy(db, settings).get_limits(current_user.id)
    return envelope(UsageLimitsResponse.model_validate(limits))


@router.put("/limits")
def set_limits(
    body: UsageLimitsUpdate,
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    current_user: User = Depends(deps.get_current_user),
):
    limits = UsageLimitPolicy(db, settings).set_limits(
        current_user.id, **body.model_dump(exclude_unset=True)
    )
    return envelope(UsageLimitsResponse.model_validate(limits), "Usage limits updated")
