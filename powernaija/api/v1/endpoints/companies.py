"""Energy company endpoints."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from powernaija.api import deps
from powernaija.models.user import User
from powernaija.schemas.catalogue import (
    CompanyCreate,
    CompanyDetail,
    CompanyResponse,
    CompanyStats,
    CompanyUpdate,
    TokenResponse,
)
from powernaija.schemas.common import envelope, paginated
from powernaija.services.companies import CompanyService

router = APIRouter()


def _detail(service: CompanyService, company) -> CompanyDetail:
    return CompanyDetail(
        **CompanyResponse.model_validate(company).model_dump(),
        tokens=[TokenResponse.model_validate(token) for token in company.tokens],
        **service.counts(company.id),
    )


@router.get("")
def list_companies(db: Session = Depends(deps.get_db)):
    """Active companies, alphabetically."""
    companies = CompanyService(db).list_active()
    return envelope([CompanyResponse.model_validate(company) for company in companies])


@router.get("/all")
def list_all_companies(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(deps.get_db),
    admin: User = Depends(deps.get_current_admin),
):
    companies, total = CompanyService(db).list_all(page, limit)
    return paginated(
        [CompanyResponse.model_validate(company) for company in companies], page, limit, total
    )


@router.get("/{company_id}")
def get_company(company_id: str, db: Session = Depends(deps.get_db)):
    service = CompanyService(db)
    return envelope(_detail(service, service.get(company_id)))


@router.get("/{company_id}/stats")
def get_company_stats(company_id: str, db: Session = Depends(deps.get_db)):
    """Sales totals over successful transactions."""
    return envelope(CompanyStats(**CompanyService(db).stats(company_id)))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_company(
    body: CompanyCreate,
    db: Session = Depends(deps.get_db),
    admin: User = Depends(deps.get_current_admin),
):
    company = CompanyService(db).create(**body.model_dump())
    return envelope(CompanyResponse.model_validate(company), "Company created")


@router.patch("/{company_id}")
def update_company(
    company_id: str,
    body: CompanyUpdate,
    db: Session = Depends(deps.get_db),
    admin: User = Depends(deps.get_current_admin),
):
    company = CompanyService(db).update(company_id, **body.model_dump(exclude_unset=True))
    return envelope(CompanyResponse.model_validate(company), "Company updated")


@router.delete("/{company_id}")
def delete_company(
    company_id: str,
    db: Session = Depends(deps.get_db),
    admin: User = Depends(deps.get_current_admin),
):
    """Delete a company without transactions; deactivate it otherwise."""
    CompanyService(db).delete(company_id)
    return envelope(None, "Company deleted")
