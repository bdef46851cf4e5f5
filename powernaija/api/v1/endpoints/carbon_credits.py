"""Carbon credit endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from powernaija.api import deps
from powernaija.core.config import Settings
from powernaija.models.user import User, UserRole
from powernaija.schemas.carbon import (
    CarbonCalculation,
    CarbonCreditAdminResponse,
    CarbonCreditOverview,
    CarbonCreditResponse,
    CarbonCreditStats,
    MonetizeRequest,
    MonetizeResult,
)
from powernaija.schemas.common import envelope, paginated
from powernaija.services.carbon import CarbonCreditService

router = APIRouter()


@router.get("")
def get_carbon_credits(
    include_used: bool = Query(False, alias="includeUsed"),
    all_users: bool = Query(False, alias="all"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    current_user: User = Depends(deps.get_current_user),
):
    """The user's credits and totals, or all credits for admins with ``all=true``."""
    service = CarbonCreditService(db, settings)
    if all_users and current_user.role == UserRole.ADMIN:
        credits, total = service.list_all_credits(page, limit)
        return paginated(
            [CarbonCreditAdminResponse.model_validate(credit) for credit in credits],
            page,
            limit,
            total,
        )

    overview = CarbonCreditOverview(
        credits=[
            CarbonCreditResponse.model_validate(credit)
            for credit in service.list_credits(current_user.id, include_used)
        ],
        stats=CarbonCreditStats(**service.get_stats(current_user.id)),
    )
    return envelope(overview)


@router.post("")
def monetize_carbon_credits(
    body: MonetizeRequest,
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    current_user: User = Depends(deps.get_current_user),
):
    """Sell credits for cash or convert them to kWh."""
    result = CarbonCreditService(db, settings).monetize(
        current_user.id, body.credit_ids, body.action
    )
    return envelope(
        MonetizeResult.model_validate(result), "Carbon credits monetized successfully"
    )


@router.get("/calculate")
def calculate_carbon_credits(
    kwh: float = Query(..., ge=0),
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
):
    """Preview the credits and CO2 reduction for an amount of renewable energy."""
    calculation = CarbonCreditService(db, settings).calculate(kwh)
    return envelope(CarbonCalculation.model_validate(calculation))
