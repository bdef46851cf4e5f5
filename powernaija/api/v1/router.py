from fastapi import APIRouter, Depends

from powernaija.api.rate_limit import general_rate_limit
from powernaija.api.v1.endpoints import (
    auth,
    carbon_credits,
    chat,
    companies,
    notifications,
    payments,
    tokens,
    transactions,
    usage,
    users,
    wallet,
)

api_router = APIRouter(dependencies=[Depends(general_rate_limit)])

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(wallet.router, prefix="/wallet", tags=["wallet"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
api_router.include_router(usage.router, prefix="/usage", tags=["usage"])
api_router.include_router(
    carbon_credits.router, prefix="/carbon-credits", tags=["carbon-credits"]
)
api_router.include_router(companies.router, prefix="/companies", tags=["companies"])
api_router.include_router(tokens.router, prefix="/tokens", tags=["tokens"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(
    notifications.router, prefix="/notifications", tags=["notifications"]
)
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
