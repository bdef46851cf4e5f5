"""Company and energy token schemas."""

from datetime import datetime
from typing import Literal

from pydantic import EmailStr, Field

from powernaija.models.energy_token import TokenType

from .common import CamelModel

PaymentMethod = Literal["paystack", "stripe", "card", "bank"]
SLUG_PATTERN = r"^[a-z0-9-]+$"


class CompanyCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=255)
    slug: str = Field(..., pattern=SLUG_PATTERN, max_length=100)
    description: str | None = None
    logo: str | None = Field(None, max_length=500)
    support_email: EmailStr | None = None
    support_phone: str | None = None
    is_active: bool = True


class CompanyUpdate(CamelModel):
    name: str | None = Field(None, min_length=2, max_length=255)
    slug: str | None = Field(None, pattern=SLUG_PATTERN, max_length=100)
    description: str | None = None
    logo: str | None = Field(None, max_length=500)
    support_email: EmailStr | None = None
    support_phone: str | None = None
    is_active: bool | None = None


class CompanyBrief(CamelModel):
    id: str
    name: str
    slug: str
    logo: str | None = None


class TokenResponse(CamelModel):
    id: str
    company_id: str
    type: TokenType
    price_per_unit: float
    description: str | None = None
    is_available: bool
    company: CompanyBrief | None = None


class CompanyResponse(CamelModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    logo: str | None = None
    support_email: str | None = None
    support_phone: str | None = None
    is_active: bool
    created_at: datetime | None = None


class CompanyDetail(CompanyResponse):
    tokens: list[TokenResponse] = []
    token_count: int = 0
    transaction_count: int = 0


class CompanyStats(CamelModel):
    total_tokens: int
    total_revenue: float
    total_sales: int
    total_kwh_sold: float


class TokenCreate(CamelModel):
    company_id: str = Field(..., min_length=1)
    type: TokenType
    price_per_unit: float = Field(..., gt=0)
    description: str | None = None
    is_available: bool = True


class TokenUpdate(CamelModel):
    price_per_unit: float | None = Field(None, gt=0)
    description: str | None = None
    is_available: bool | None = None


class TokenPurchaseRequest(CamelModel):
    token_id: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0, description="kWh to buy")
    amount: float = Field(..., gt=0, description="Total price in NGN")
    payment_method: PaymentMethod = "paystack"


class PaymentLink(CamelModel):
    authorization_url: str
    access_code: str | None = None
    reference: str


class TokenPurchaseResponse(CamelModel):
    transaction_id: str
    reference: str
    amount: float
    quantity: float
    token: TokenResponse
    payment: PaymentLink
