"""Payment gateway callbacks."""

import json
import logging

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from powernaija.api import deps
from powernaija.core.config import Settings
from powernaija.core.errors import BadRequestError, ServiceUnavailableError, UnauthorizedError
from powernaija.schemas.common import envelope
from powernaija.services.notifications import NotificationService
from powernaija.services.payments import PaymentGateway, PaymentVerification
from powernaija.services.tokens import TokenService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/callback")
def payment_callback(
    reference: str | None = Query(None),
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    gateway: PaymentGateway | None = Depends(deps.get_payment_gateway),
    notifications: NotificationService = Depends(deps.get_notification_service),
):
    """Verify the payment the user was redirected back from and settle it."""
    if not reference:
        raise BadRequestError("Payment reference is required")

    dashboard = f"{settings.FRONTEND_URL.rstrip('/')}/dashboard"
    try:
        if gateway is None:
            raise ServiceUnavailableError("Payments are not configured")
        verification = gateway.verify(reference)
        outcome = TokenService(db, settings, gateway, notifications).confirm_payment(
            verification
        )
    except Exception:
        logger.exception("Payment callback error for %s", reference)
        return RedirectResponse(f"{dashboard}?payment=error")

    if outcome == "success":
        logger.info("Payment successful: %s", reference)
        return RedirectResponse(f"{dashboard}?payment=success")
    return RedirectResponse(f"{dashboard}?payment=failed")


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    x_paystack_signature: str | None = Header(None),
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    gateway: PaymentGateway | None = Depends(deps.get_payment_gateway),
    notifications: NotificationService = Depends(deps.get_notification_service),
):
    """Gateway event push, authenticated by an HMAC signature over the raw body."""
    if gateway is None:
        raise ServiceUnavailableError("Payments are not configured")

    payload = await request.body()
    if not gateway.verify_webhook_signature(payload, x_paystack_signature):
        raise UnauthorizedError("Invalid webhook signature")

    try:
        event = json.loads(payload)
    except ValueError as e:
        raise BadRequestError("Invalid webhook payload") from e

    if event.get("event") != "charge.success":
        return envelope(None, "Event ignored")

    data = event.get("data") or {}
    verification = PaymentVerification(
        reference=data.get("reference", ""),
        status="success",
        amount=(data.get("amount") or 0) / 100,
        currency=data.get("currency", "NGN"),
        gateway_transaction_id=str(data.get("id", "")),
        metadata=data.get("metadata") or {},
    )
    service = TokenService(db, settings, gateway, notifications)
    outcome = await run_in_threadpool(service.confirm_payment, verification)
    logger.info("Webhook settled %s: %s", verification.reference, outcome)
    return envelope({"reference": verification.reference, "outcome": outcome})
