from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from powernaija.api import deps
from powernaija.core.errors import NotFoundError
from powernaija.models.user import User
from powernaija.schemas.common import envelope, paginated
from powernaija.schemas.transaction import TransactionResponse
from powernaija.services.transactions import TransactionJournal

router = APIRouter()


@router.get("")
def list_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
):
    """The current user's transaction history, newest first."""
    items, total = TransactionJournal(db).list_for_user(current_user.id, page, limit)
    return paginated(
        [TransactionResponse.model_validate(item) for item in items], page, limit, total
    )


@router.get("/{reference}")
def get_transaction(
    reference: str,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
):
    transaction = TransactionJournal(db).get_by_reference(reference)
    if not transaction or transaction.user_id != current_user.id:
        raise NotFoundError("Transaction not found")
    return envelope(TransactionResponse.model_validate(transaction))
