"""Energy token catalogue and purchase endpoints."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from powernaija.api import deps
from powernaija.api.rate_limit import payment_rate_limit
from powernaija.core.config import Settings
from powernaija.models.user import User
from powernaija.schemas.catalogue import (
    PaymentLink,
    TokenCreate,
    TokenPurchaseRequest,
    TokenPurchaseResponse,
    TokenResponse,
    TokenUpdate,
)
from powernaija.schemas.common import envelope, paginated
from powernaija.services.notifications import NotificationService
from powernaija.services.payments import PaymentGateway
from powernaija.services.tokens import TokenService

router = APIRouter()


@router.get("")
def list_tokens(
    company_id: str | None = Query(None, alias="companyId"),
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
):
    """Available tokens from active companies, cheapest first."""
    tokens = TokenService(db, settings).list_available(company_id)
    return envelope([TokenResponse.model_validate(token) for token in tokens])


@router.get("/all")
def list_all_tokens(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    admin: User = Depends(deps.get_current_admin),
):
    tokens, total = TokenService(db, settings).list_all(page, limit)
    return paginated(
        [TokenResponse.model_validate(token) for token in tokens], page, limit, total
    )


@router.get("/{token_id}")
def get_token(
    token_id: str,
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
):
    token = TokenService(db, settings).get_token(token_id)
    return envelope(TokenResponse.model_validate(token))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_token(
    body: TokenCreate,
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    manager: User = Depends(deps.get_catalogue_manager),
):
    token = TokenService(db, settings).create_token(**body.model_dump())
    return envelope(TokenResponse.model_validate(token), "Token created")


@router.patch("/{token_id}")
def update_token(
    token_id: str,
    body: TokenUpdate,
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    manager: User = Depends(deps.get_catalogue_manager),
):
    token = TokenService(db, settings).update_token(
        token_id, **body.model_dump(exclude_unset=True)
    )
    return envelope(TokenResponse.model_validate(token), "Token updated")


@router.post("/purchase")
def purchase_tokens(
    body: TokenPurchaseRequest,
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    gateway: PaymentGateway | None = Depends(deps.get_payment_gateway),
    notifications: NotificationService = Depends(deps.get_notification_service),
    current_user: User = Depends(deps.get_current_user),
    _: None = Depends(payment_rate_limit),
):
    """Open a purchase and return the gateway's payment page."""
    result = TokenService(db, settings, gateway, notifications).purchase(
        current_user, body.token_id, body.quantity, body.amount, body.payment_method
    )
    response = TokenPurchaseResponse(
        transaction_id=result.transaction.id,
        reference=result.transaction.reference,
        amount=result.transaction.amount,
        quantity=body.quantity,
        token=TokenResponse.model_validate(result.token),
        payment=PaymentLink.model_validate(result.payment),
    )
    return envelope(response, "Token purchase initiated")
