"""Energy company management."""

import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from powernaija.core.errors import BadRequestError, ConflictError, NotFoundError
from powernaija.db.session import atomic
from powernaija.models.company import Company
from powernaija.models.energy_token import EnergyToken
from powernaija.models.transaction import Transaction, TransactionStatus

logger = logging.getLogger(__name__)


class CompanyService:
    def __init__(self, db: Session):
        self.db = db

    def list_active(self) -> list[Company]:
        return (
            self.db.query(Company)
            .filter(Company.is_active.is_(True))
            .order_by(Company.name.asc())
            .all()
        )

    def list_all(self, page: int = 1, limit: int = 20) -> tuple[list[Company], int]:
        total = self.db.query(Company).count()
        companies = (
            self.db.query(Company)
            .order_by(Company.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return companies, total

    def get(self, company_id: str) -> Company:
        company = self.db.get(Company, company_id)
        if not company:
            raise NotFoundError("Company not found")
        return company

    def get_by_slug(self, slug: str) -> Company | None:
        return self.db.query(Company).filter(Company.slug == slug).first()

    def counts(self, company_id: str) -> dict[str, int]:
        return {
            "token_count": self.db.query(EnergyToken)
            .filter(EnergyToken.company_id == company_id)
            .count(),
            "transaction_count": self.db.query(Transaction)
            .filter(Transaction.company_id == company_id)
            .count(),
        }

    def create(self, **data: Any) -> Company:
        if self.get_by_slug(data["slug"]):
            raise ConflictError("A company with this slug already exists")
        with atomic(self.db):
            company = Company(**data)
            self.db.add(company)
        logger.info("Company created: %s", company.name)
        return company

    def update(self, company_id: str, **changes: Any) -> Company:
        slug = changes.get("slug")
        if slug:
            existing = self.get_by_slug(slug)
            if existing and existing.id != company_id:
                raise ConflictError("A company with this slug already exists")

        with atomic(self.db):
            company = self.get(company_id)
            for field, value in changes.items():
                setattr(company, field, value)
        logger.info("Company updated: %s", company.name)
        return company

    def delete(self, company_id: str) -> None:
        company = self.get(company_id)
        if self.counts(company_id)["transaction_count"] > 0:
            raise BadRequestError(
                "Cannot delete company with existing transactions. Deactivate instead."
            )
        with atomic(self.db):
            self.db.delete(company)
        logger.info("Company deleted: %s", company.name)

    def stats(self, company_id: str) -> dict:
        self.get(company_id)
        total_tokens = (
            self.db.query(EnergyToken).filter(EnergyToken.company_id == company_id).count()
        )
        sales, revenue, kwh = (
            self.db.query(
                func.count(Transaction.id),
                func.coalesce(func.sum(Transaction.amount), 0.0),
                func.coalesce(func.sum(Transaction.quantity), 0.0),
            )
            .filter(
                Transaction.company_id == company_id,
                Transaction.status == TransactionStatus.SUCCESS,
            )
            .one()
        )
        return {
            "total_tokens": total_tokens,
            "total_revenue": float(revenue),
            "total_sales": int(sales),
            "total_kwh_sold": float(kwh),
        }
