"""API Dependencies for dependency injection."""

from collections.abc import Generator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from powernaija.core.config import Settings
from powernaija.core.errors import ForbiddenError, UnauthorizedError
from powernaija.models.user import User, UserRole
from powernaija.services.auth import ChainedCredentialVerifier, FirebaseCredentialVerifier
from powernaija.services.chatbot import ChatBackend
from powernaija.services.notifications import NotificationService, PushSender
from powernaija.services.payments import PaymentGateway

# auto_error=False so a missing header gets our 401 envelope
security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Generator[Session, None, None]:
    """Get database session."""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()


def get_credential_verifier(request: Request) -> ChainedCredentialVerifier:
    return request.app.state.credential_verifier


def get_firebase_verifier(request: Request) -> FirebaseCredentialVerifier | None:
    return request.app.state.firebase_verifier


def get_payment_gateway(request: Request) -> PaymentGateway | None:
    return request.app.state.payment_gateway


def get_chat_backend(request: Request) -> ChatBackend | None:
    return request.app.state.chat_backend


def get_push_sender(request: Request) -> PushSender | None:
    return request.app.state.push_sender


def get_notification_service(
    db: Session = Depends(get_db),
    push_sender: PushSender | None = Depends(get_push_sender),
) -> NotificationService:
    return NotificationService(db, push_sender)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
    verifier: ChainedCredentialVerifier = Depends(get_credential_verifier),
) -> User:
    """Resolve the bearer credential to an active user."""
    if not credentials:
        raise UnauthorizedError(
            "Not authenticated", headers={"WWW-Authenticate": "Bearer"}
        )

    token = credentials.credentials
    if not token or token in ("undefined", "null"):
        raise UnauthorizedError(
            "Invalid token format", headers={"WWW-Authenticate": "Bearer"}
        )

    identity = verifier.verify(token, db)
    if identity is None:
        raise UnauthorizedError(
            "Invalid or expired token", headers={"WWW-Authenticate": "Bearer"}
        )

    user = db.get(User, identity.user_id)
    if not user or not user.is_active:
        raise UnauthorizedError("User not found or inactive")

    # Lets rate limits key on the user instead of the client address
    request.state.user_id = user.id
    return user


def require_roles(*roles: UserRole):
    """Dependency that admits only users holding one of ``roles``."""

    def _dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise ForbiddenError("Insufficient permissions")
        return current_user

    return _dependency


get_current_admin = require_roles(UserRole.ADMIN)
get_catalogue_manager = require_roles(UserRole.ADMIN, UserRole.COMPANY_REP)
