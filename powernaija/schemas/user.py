from datetime import datetime
from typing import Literal

from pydantic import Field

from powernaija.models.user import UserRole

from .common import CamelModel

Language = Literal["en", "ha", "ig", "yo", "pidgin"]
NIGERIAN_PHONE = r"^\+234[0-9]{10}$"


class WalletResponse(CamelModel):
    id: str
    balance: float
    cash_balance: float
    total_earned: float
    total_spent: float
    updated_at: datetime | None = None


class UserResponse(CamelModel):
    """Public view of a user."""

    id: str
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    language: str
    role: UserRole
    profile_image: str | None = None
    is_active: bool
    created_at: datetime | None = None
    last_login: datetime | None = None


class UserWithWalletResponse(UserResponse):
    wallet: WalletResponse | None = None


class UserUpdate(CamelModel):
    first_name: str | None = Field(None, min_length=2, max_length=100)
    last_name: str | None = Field(None, min_length=2, max_length=100)
    phone: str | None = Field(None, pattern=NIGERIAN_PHONE)
    language: Language | None = None
    profile_image: str | None = Field(None, max_length=500)


class DeviceTokenUpdate(CamelModel):
    fcm_token: str = Field(..., min_length=1, max_length=512)


class UserSummary(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
