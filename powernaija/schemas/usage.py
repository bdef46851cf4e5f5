from datetime import datetime
from typing import Any, Literal

from pydantic import Field, model_validator

from .common import CamelModel
from .user import UserSummary

Period = Literal["daily", "weekly", "monthly", "all"]


class UsageCreate(CamelModel):
    token_id: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0, description="Energy used in kWh")
    metadata: dict[str, Any] | None = None


class UsageLogResponse(CamelModel):
    id: str
    user_id: str
    token_id: str
    amount: float
    timestamp: datetime
    metadata: dict[str, Any] | None = Field(None, validation_alias="usage_metadata")


class UsageLogDetail(UsageLogResponse):
    token_type: str | None = None
    company_name: str | None = None
    user: UserSummary | None = None


class UsageStats(CamelModel):
    total_usage: float
    renewable_usage: float
    non_renewable_usage: float
    carbon_saved: float
    period: Period
    logs: list[UsageLogDetail]


class UsageLimitsUpdate(CamelModel):
    daily_limit: float | None = Field(None, gt=0)
    weekly_limit: float | None = Field(None, gt=0)
    monthly_limit: float | None = Field(None, gt=0)
    alert_threshold: float | None = Field(None, ge=0, le=1)

    @model_validator(mode="after")
    def check_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("At least one limit must be provided")
        return self


class UsageLimitsResponse(CamelModel):
    daily_limit: float
    weekly_limit: float
    monthly_limit: float
    alert_threshold: float
    updated_at: datetime | None = None
