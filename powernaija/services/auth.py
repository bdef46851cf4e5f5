"""
Accounts, password auth and credential verification.

Bearer credentials are resolved by a chain of verifiers: self-issued JWTs
first, then Firebase ID tokens when Firebase is configured. Each verifier
yields the same ``Identity``.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from firebase_admin import exceptions as firebase_exceptions
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from powernaija.core.config import Settings
from powernaija.core.errors import ConflictError, UnauthorizedError
from powernaija.db.session import atomic
from powernaija.models.user import User, UserRole
from powernaija.services.wallet import WalletLedger

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class Identity:
    """Who a verified credential belongs to."""

    user_id: str
    email: str | None
    role: UserRole
    provider: str = "jwt"


def _expiry(delta: timedelta) -> datetime:
    return datetime.now(timezone.utc) + delta


class TokenIssuer:
    """Creates and decodes the service's own access/refresh JWTs."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def access_token_ttl(self) -> int:
        return self.settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    def create_access_token(self, user: User) -> str:
        claims = {
            "sub": user.id,
            "email": user.email,
            "role": user.role.value,
            "type": ACCESS,
            "exp": _expiry(timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES)),
        }
        return jwt.encode(claims, self.settings.SECRET_KEY, algorithm=self.settings.ALGORITHM)

    def create_refresh_token(self, user: User) -> str:
        claims = {
            "sub": user.id,
            "type": REFRESH,
            "exp": _expiry(timedelta(days=self.settings.REFRESH_TOKEN_EXPIRE_DAYS)),
        }
        return jwt.encode(
            claims, self.settings.REFRESH_SECRET_KEY, algorithm=self.settings.ALGORITHM
        )

    def issue(self, user: User) -> dict[str, Any]:
        return {
            "access_token": self.create_access_token(user),
            "refresh_token": self.create_refresh_token(user),
            "token_type": "bearer",
            "expires_in": self.access_token_ttl,
        }

    def decode(self, token: str, kind: str = ACCESS) -> dict | None:
        """Decode and validate a token of the given kind; None if invalid."""
        if not token or not isinstance(token, str):
            return None
        key = self.settings.SECRET_KEY if kind == ACCESS else self.settings.REFRESH_SECRET_KEY
        try:
            payload = jwt.decode(token, key, algorithms=[self.settings.ALGORITHM])
        except JWTError:
            return None
        if payload.get("type") != kind or not payload.get("sub"):
            return None
        return payload


class CredentialVerifier(ABC):
    """Turns a bearer credential into an ``Identity`` or None."""

    @abstractmethod
    def verify(self, token: str, db: Session) -> Identity | None:
        pass


class JWTCredentialVerifier(CredentialVerifier):
    def __init__(self, issuer: TokenIssuer):
        self.issuer = issuer

    def verify(self, token: str, db: Session) -> Identity | None:
        payload = self.issuer.decode(token, ACCESS)
        if payload is None:
            return None
        try:
            role = UserRole(payload.get("role", UserRole.CUSTOMER.value))
        except ValueError:
            return None
        return Identity(user_id=payload["sub"], email=payload.get("email"), role=role)


class FirebaseCredentialVerifier(CredentialVerifier):
    """Verifies Firebase ID tokens and maps them through ``users.firebase_uid``."""

    def __init__(self, verify_id_token: Callable[[str], dict]):
        self._verify_id_token = verify_id_token

    def decode(self, token: str) -> dict | None:
        try:
            return self._verify_id_token(token)
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            logger.debug("Firebase ID token rejected: %s", e)
            return None

    def verify(self, token: str, db: Session) -> Identity | None:
        claims = self.decode(token)
        if not claims or not claims.get("uid"):
            return None
        user = db.query(User).filter(User.firebase_uid == claims["uid"]).first()
        if user is None:
            return None
        return Identity(user_id=user.id, email=user.email, role=user.role, provider="firebase")


class ChainedCredentialVerifier(CredentialVerifier):
    """Tries each verifier in order; the first identity wins."""

    def __init__(self, verifiers: Sequence[CredentialVerifier]):
        self.verifiers = list(verifiers)

    def verify(self, token: str, db: Session) -> Identity | None:
        for verifier in self.verifiers:
            identity = verifier.verify(token, db)
            if identity is not None:
                return identity
        return None


class AuthService:
    """Service for handling authentication operations"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.tokens = TokenIssuer(settings)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Hash a password"""
        return pwd_context.hash(password)

    def get_user_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == email.lower()).first()

    def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: str | None = None,
        language: str | None = None,
    ) -> User:
        """Create a user with an empty wallet."""
        if self.get_user_by_email(email):
            raise ConflictError("User with this email already exists")

        with atomic(self.db):
            user = User(
                email=email.lower(),
                hashed_password=self.get_password_hash(password),
                first_name=first_name,
                last_name=last_name,
                phone=phone,
                language=language or "en",
                role=UserRole.CUSTOMER,
                is_active=True,
            )
            self.db.add(user)
            WalletLedger(self.db).create_wallet(user)

        logger.info("User created: %s", user.email)
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = self.get_user_by_email(email)
        if not user:
            raise UnauthorizedError("Invalid email or password")
        if not user.hashed_password:
            raise UnauthorizedError("Please use social login for this account")
        if not self.verify_password(password, user.hashed_password):
            raise UnauthorizedError("Invalid email or password")
        if not user.is_active:
            raise UnauthorizedError("Account is disabled")

        with atomic(self.db):
            user.last_login = datetime.now(timezone.utc)
        logger.info("User authenticated: %s", user.email)
        return user

    def refresh(self, refresh_token: str) -> User:
        payload = self.tokens.decode(refresh_token, REFRESH)
        if payload is None:
            raise UnauthorizedError("Invalid or expired refresh token")
        user = self.db.get(User, payload["sub"])
        if not user or not user.is_active:
            raise UnauthorizedError("Invalid or expired refresh token")
        return user

    def sync_firebase_user(
        self,
        claims: dict,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> User:
        """Link a verified Firebase identity to an account, creating one if needed."""
        uid = claims["uid"]
        email = (claims.get("email") or "").lower()

        user = self.db.query(User).filter(User.firebase_uid == uid).first()
        if user is None and email:
            user = self.get_user_by_email(email)

        with atomic(self.db):
            if user is None:
                if not email:
                    raise UnauthorizedError("Identity token has no email address")
                display = (claims.get("name") or "").split(" ", 1)
                user = User(
                    email=email,
                    first_name=first_name or display[0] or "User",
                    last_name=last_name or (display[1] if len(display) > 1 else ""),
                    firebase_uid=uid,
                    email_verified=bool(claims.get("email_verified")),
                    role=UserRole.CUSTOMER,
                    is_active=True,
                )
                self.db.add(user)
                WalletLedger(self.db).create_wallet(user)
                logger.info("User created from Firebase identity: %s", email)
            elif user.firebase_uid != uid:
                user.firebase_uid = uid
                logger.info("Firebase identity linked to %s", user.email)
            user.last_login = datetime.now(timezone.utc)

        if not user.is_active:
            raise UnauthorizedError("Account is disabled")
        return user
