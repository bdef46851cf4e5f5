"""Authentication endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from powernaija.api import deps
from powernaija.api.rate_limit import auth_rate_limit
from powernaija.core.config import Settings
from powernaija.core.errors import ServiceUnavailableError, UnauthorizedError
from powernaija.models.user import User
from powernaija.schemas.auth import (
    AccessToken,
    AuthResponse,
    AuthTokens,
    FirebaseSync,
    RefreshRequest,
    UserLogin,
    UserRegister,
)
from powernaija.schemas.common import envelope
from powernaija.schemas.user import UserWithWalletResponse
from powernaija.services.auth import AuthService, FirebaseCredentialVerifier

router = APIRouter()


def _auth_response(service: AuthService, user: User) -> AuthResponse:
    return AuthResponse(
        user=UserWithWalletResponse.model_validate(user),
        tokens=AuthTokens(**service.tokens.issue(user)),
    )


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limit)],
)
def register(
    user_data: UserRegister,
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
):
    """Register a new user with an empty wallet."""
    service = AuthService(db, settings)
    user = service.register(
        email=user_data.email,
        password=user_data.password,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        phone=user_data.phone,
        language=user_data.language,
    )
    return envelope(_auth_response(service, user), "User registered successfully")


@router.post("/login", dependencies=[Depends(auth_rate_limit)])
def login(
    credentials: UserLogin,
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
):
    """Login user and return access and refresh tokens."""
    service = AuthService(db, settings)
    user = service.authenticate(credentials.email, credentials.password)
    return envelope(_auth_response(service, user), "Login successful")


@router.post("/refresh")
def refresh(
    body: RefreshRequest,
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
):
    """Exchange a refresh token for a new access token."""
    service = AuthService(db, settings)
    user = service.refresh(body.refresh_token)
    token = AccessToken(
        access_token=service.tokens.create_access_token(user),
        expires_in=service.tokens.access_token_ttl,
    )
    return envelope(token)


@router.post("/logout")
def logout(current_user: User = Depends(deps.get_current_user)):
    """Tokens are stateless; clients discard them."""
    return envelope(None, "Logged out successfully")


@router.post("/firebase", dependencies=[Depends(auth_rate_limit)])
def firebase_sync(
    body: FirebaseSync,
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    firebase: FirebaseCredentialVerifier | None = Depends(deps.get_firebase_verifier),
):
    """Sign in with a Firebase ID token, linking or creating the account."""
    if firebase is None:
        raise ServiceUnavailableError("Firebase sign-in is not configured")

    claims = firebase.decode(body.id_token)
    if not claims or not claims.get("uid"):
        raise UnauthorizedError("Invalid identity token")

    service = AuthService(db, settings)
    user = service.sync_firebase_user(claims, body.first_name, body.last_name)
    return envelope(_auth_response(service, user), "Login successful")
