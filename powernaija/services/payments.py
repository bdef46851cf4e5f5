"""
Paystack payment gateway client.

Amounts are in NGN at this boundary and converted to kobo on the wire. The
transaction reference is passed through as the Paystack reference, so retried
initialisations are idempotent on the gateway side.
"""

import hashlib
import hmac
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from powernaija.core.config import Settings

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """The gateway rejected a request or could not be reached."""


@dataclass
class PaymentInitialization:
    authorization_url: str
    access_code: str | None
    reference: str


@dataclass
class PaymentVerification:
    reference: str
    status: str  # success | failed | pending
    amount: float  # NGN
    currency: str
    gateway_transaction_id: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class PaymentGateway(ABC):
    @abstractmethod
    def initialize(
        self, email: str, amount: float, reference: str, metadata: dict[str, Any] | None = None
    ) -> PaymentInitialization:
        pass

    @abstractmethod
    def verify(self, reference: str) -> PaymentVerification:
        pass

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> bool:
        pass


def _build_session(max_retries: int) -> requests.Session:
    retry = Retry(
        total=max_retries,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET", "POST"}),
    )
    session = requests.Session()
    session.mount("https://", HTTPAdapter(max_retries=retry))
    session.mount("http://", HTTPAdapter(max_retries=retry))
    return session


class PaystackGateway(PaymentGateway):
    def __init__(self, settings: Settings, session: requests.Session | None = None):
        self.secret_key = settings.PAYSTACK_SECRET_KEY
        self.base_url = settings.PAYSTACK_BASE_URL.rstrip("/")
        self.callback_url = settings.PAYMENT_CALLBACK_URL
        self.timeout = settings.PAYMENT_TIMEOUT_SECONDS
        self.session = session or _build_session(settings.PAYMENT_MAX_RETRIES)

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, headers=self._headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.error("Paystack request %s %s failed: %s", method, path, e)
            raise PaymentGatewayError("Payment gateway unavailable") from e

        try:
            body = response.json()
        except ValueError as e:
            raise PaymentGatewayError(
                f"Invalid response from payment gateway (HTTP {response.status_code})"
            ) from e

        if not response.ok or not body.get("status"):
            message = body.get("message") or f"HTTP {response.status_code}"
            logger.warning("Paystack rejected %s %s: %s", method, path, message)
            raise PaymentGatewayError(message)
        return body.get("data") or {}

    def initialize(
        self, email: str, amount: float, reference: str, metadata: dict[str, Any] | None = None
    ) -> PaymentInitialization:
        data = self._request(
            "POST",
            "/transaction/initialize",
            json={
                "email": email,
                "amount": int(round(amount * 100)),  # kobo
                "reference": reference,
                "callback_url": self.callback_url,
                "metadata": metadata or {},
            },
        )
        logger.info("Paystack payment initialized: %s", reference)
        return PaymentInitialization(
            authorization_url=data["authorization_url"],
            access_code=data.get("access_code"),
            reference=data.get("reference", reference),
        )

    def verify(self, reference: str) -> PaymentVerification:
        data = self._request("GET", f"/transaction/verify/{reference}")
        verification = PaymentVerification(
            reference=data.get("reference", reference),
            status=_normalize_status(data.get("status")),
            amount=(data.get("amount") or 0) / 100,
            currency=data.get("currency", "NGN"),
            gateway_transaction_id=str(data.get("id", "")),
            metadata=data.get("metadata") or {},
        )
        logger.info("Payment verified: %s - %s", reference, verification.status)
        return verification

    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> bool:
        if not signature or not self.secret_key:
            return False
        expected = hmac.new(self.secret_key.encode(), payload, hashlib.sha512).hexdigest()
        return hmac.compare_digest(expected, signature)


def _normalize_status(status: str | None) -> str:
    if status == "success":
        return "success"
    if status in ("ongoing", "pending", "processing", "queued"):
        return "pending"
    return "failed"
