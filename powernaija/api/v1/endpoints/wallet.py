from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from powernaija.api import deps
from powernaija.models.user import User
from powernaija.schemas.common import envelope
from powernaija.schemas.user import WalletResponse
from powernaija.services.wallet import WalletLedger

router = APIRouter()


@router.get("")
def get_wallet(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
):
    """Current energy and cash balances."""
    wallet = WalletLedger(db).get_wallet(current_user.id)
    return envelope(WalletResponse.model_validate(wallet))
