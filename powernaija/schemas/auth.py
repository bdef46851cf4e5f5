from pydantic import EmailStr, Field

from .common import CamelModel
from .user import NIGERIAN_PHONE, Language, UserWithWalletResponse


class UserRegister(CamelModel):
    """Schema for user registration"""

    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    phone: str | None = Field(None, pattern=NIGERIAN_PHONE)
    language: Language | None = None


class UserLogin(CamelModel):
    """Schema for user login"""

    email: EmailStr
    password: str = Field(..., min_length=1)


class FirebaseSync(CamelModel):
    """Identity-provider sign-in: the ID token is authoritative, the rest is profile."""

    id_token: str = Field(..., min_length=1)
    first_name: str | None = None
    last_name: str | None = None


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class AuthTokens(CamelModel):
    """Schema for JWT token response"""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class AccessToken(CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class AuthResponse(CamelModel):
    user: UserWithWalletResponse
    tokens: AuthTokens
