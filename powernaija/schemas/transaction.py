from datetime import datetime
from typing import Any

from pydantic import Field

from powernaija.models.transaction import TransactionStatus, TransactionType

from .common import CamelModel


class TransactionResponse(CamelModel):
    id: str
    type: TransactionType
    status: TransactionStatus
    amount: float
    quantity: float | None = None
    reference: str
    payment_method: str | None = None
    company_id: str | None = None
    metadata: dict[str, Any] | None = Field(None, validation_alias="transaction_metadata")
    created_at: datetime | None = None
    updated_at: datetime | None = None
