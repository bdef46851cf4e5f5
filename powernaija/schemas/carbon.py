from datetime import datetime
from typing import Literal

from pydantic import Field

from .common import CamelModel
from .user import UserSummary

MonetizeAction = Literal["sell_to_cash", "convert_to_tokens"]


class CarbonCreditResponse(CamelModel):
    id: str
    amount: int
    source: str
    renewable_kwh: float
    co2_reduction: float
    is_sold: bool
    sold_at: datetime | None = None
    sold_price: float | None = None
    created_at: datetime | None = None


class CarbonCreditAdminResponse(CarbonCreditResponse):
    user: UserSummary | None = None


class CarbonCreditStats(CamelModel):
    total_credits_earned: int
    credits_sold: int
    credits_available: int
    total_earnings: float


class CarbonCreditOverview(CamelModel):
    credits: list[CarbonCreditResponse]
    stats: CarbonCreditStats


class MonetizeRequest(CamelModel):
    credit_ids: list[str] = Field(..., min_length=1)
    # Validated in the service so an unknown action gets a domain error
    action: str


class MonetizeResult(CamelModel):
    action: MonetizeAction
    credits_monetized: int
    amount: float
    tokens_received: float | None = None
    reference: str
    transaction_id: str


class CarbonCalculation(CamelModel):
    credits_earned: int
    co2_reduction: float
    equivalent_trees: float
