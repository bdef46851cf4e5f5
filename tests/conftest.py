import hashlib
import hmac

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from powernaija.api import deps
from powernaija.core.config import Settings
from powernaija.db.session import Database
from powernaija.main import create_app
from powernaija.models.company import Company
from powernaija.models.energy_token import EnergyToken, TokenType
from powernaija.models.user import User, UserRole
from powernaija.services.auth import AuthService, TokenIssuer
from powernaija.services.chatbot import ChatBackend, ChatBackendError
from powernaija.services.payments import (
    PaymentGateway,
    PaymentGatewayError,
    PaymentInitialization,
    PaymentVerification,
)
from powernaija.services.wallet import WalletLedger

TEST_PASSWORD = "testpassword"
WEBHOOK_SECRET = "sk_test_webhook"


class FakeGateway(PaymentGateway):
    """In-memory payment gateway."""

    def __init__(self):
        self.initialized: dict[str, dict] = {}
        self.status = "success"
        self.fail_initialize = False
        self.paid_amounts: dict[str, float] = {}

    def initialize(self, email, amount, reference, metadata=None):
        if self.fail_initialize:
            raise PaymentGatewayError("Gateway unavailable")
        self.initialized[reference] = {"email": email, "amount": amount, "metadata": metadata}
        return PaymentInitialization(
            authorization_url=f"https://checkout.test/{reference}",
            access_code="access-code",
            reference=reference,
        )

    def verify(self, reference):
        amount = self.paid_amounts.get(
            reference, self.initialized.get(reference, {}).get("amount", 0)
        )
        return PaymentVerification(
            reference=reference,
            status=self.status,
            amount=amount,
            currency="NGN",
            gateway_transaction_id="12345",
        )

    def sign(self, payload: bytes) -> str:
        return hmac.new(WEBHOOK_SECRET.encode(), payload, hashlib.sha512).hexdigest()

    def verify_webhook_signature(self, payload, signature):
        return bool(signature) and hmac.compare_digest(self.sign(payload), signature)


class FakeChatBackend(ChatBackend):
    """Echoing chat backend that records what it was sent."""

    def __init__(self):
        self.calls: list[dict] = []
        self.fail = False
        self.fail_translate = False

    def _chat(self, system, messages, max_tokens, temperature):
        self.calls.append({"system": system, "messages": messages})
        if self.fail:
            raise ChatBackendError("model unavailable")
        return f"Reply to: {messages[-1]['content']}"

    def translate(self, text, target_language):
        if self.fail_translate:
            raise ChatBackendError("model unavailable")
        return f"[{target_language}] {text}"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        DATABASE_URL="sqlite://",
        AUTO_CREATE_SCHEMA=False,
        RATE_LIMIT_ENABLED=False,
        SECRET_KEY="test-secret-key",
        REFRESH_SECRET_KEY="test-refresh-secret",
        PAYSTACK_SECRET_KEY=WEBHOOK_SECRET,
        FRONTEND_URL="http://frontend.test",
        BACKEND_CORS_ORIGINS="http://localhost:3000",
        TIMEZONE="Africa/Lagos",
    )


@pytest.fixture
def database(settings: Settings):
    database = Database(settings.DATABASE_URL)
    database.create_all()
    yield database
    database.drop_all()
    database.dispose()


@pytest.fixture
def db(database: Database):
    """Session shared by the test and the app under test."""
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def chat_backend() -> FakeChatBackend:
    return FakeChatBackend()


@pytest.fixture
def app(settings: Settings, database: Database):
    return create_app(settings, database=database)


@pytest.fixture
def client(app, db: Session, gateway: FakeGateway, chat_backend: FakeChatBackend):
    """Create a test client with the test database and fake collaborators."""

    def override_get_db():
        yield db

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_payment_gateway] = lambda: gateway
    app.dependency_overrides[deps.get_chat_backend] = lambda: chat_backend

    with TestClient(app) as test_client:
        yield test_client
        # Release the shared session before app shutdown disposes the engine
        db.close()

    app.dependency_overrides.clear()


def make_user(
    db: Session,
    email: str,
    role: UserRole = UserRole.CUSTOMER,
    password: str | None = TEST_PASSWORD,
    **fields,
) -> User:
    user = User(
        email=email,
        hashed_password=AuthService.get_password_hash(password) if password else None,
        first_name=fields.pop("first_name", "Ada"),
        last_name=fields.pop("last_name", "Obi"),
        role=role,
        is_active=True,
        **fields,
    )
    db.add(user)
    WalletLedger(db).create_wallet(user)
    db.commit()
    return user


def make_company(db: Session, name: str, slug: str, **fields) -> Company:
    company = Company(name=name, slug=slug, is_active=True, **fields)
    db.add(company)
    db.commit()
    return company


def make_token(
    db: Session, company: Company, type: TokenType, price: float = 80.0, **fields
) -> EnergyToken:
    token = EnergyToken(
        company_id=company.id, type=type, price_per_unit=price, is_available=True, **fields
    )
    db.add(token)
    db.commit()
    return token


def bearer(settings: Settings, user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {TokenIssuer(settings).create_access_token(user)}"}


@pytest.fixture
def customer(db: Session) -> User:
    return make_user(db, "ada@example.com")


@pytest.fixture
def admin(db: Session) -> User:
    return make_user(db, "admin@example.com", role=UserRole.ADMIN, first_name="Admin")


@pytest.fixture
def auth_headers(settings: Settings, customer: User) -> dict[str, str]:
    return bearer(settings, customer)


@pytest.fixture
def admin_headers(settings: Settings, admin: User) -> dict[str, str]:
    return bearer(settings, admin)


@pytest.fixture
def solar_company(db: Session) -> Company:
    return make_company(db, "Lumos Nigeria", "lumos", description="Solar renewable energy provider")


@pytest.fixture
def grid_company(db: Session) -> Company:
    return make_company(db, "Ikeja Electric", "ikeja-electric")


@pytest.fixture
def renewable_token(db: Session, solar_company: Company) -> EnergyToken:
    return make_token(db, solar_company, TokenType.RENEWABLE, price=100.0)


@pytest.fixture
def grid_token(db: Session, grid_company: Company) -> EnergyToken:
    return make_token(db, grid_company, TokenType.NON_RENEWABLE, price=80.0)


@pytest.fixture
def user_factory(db: Session):
    def factory(email: str, role: UserRole = UserRole.CUSTOMER, **fields) -> User:
        return make_user(db, email, role=role, **fields)

    return factory


@pytest.fixture
def token_factory(db: Session):
    def factory(company: Company, type: TokenType, price: float = 80.0, **fields) -> EnergyToken:
        return make_token(db, company, type, price=price, **fields)

    return factory


@pytest.fixture
def headers_for(settings: Settings):
    def factory(user: User) -> dict[str, str]:
        return bearer(settings, user)

    return factory
