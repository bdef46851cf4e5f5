"""Script to seed companies, tokens and demo accounts in the database."""

import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from powernaija.core.config import get_settings
from powernaija.core.logging import configure_logging
from powernaija.db.session import Database, atomic
from powernaija.models.company import Company
from powernaija.models.energy_token import EnergyToken, TokenType
from powernaija.models.usage_log import UsageLog
from powernaija.models.user import User, UserRole
from powernaija.services.auth import AuthService
from powernaija.services.wallet import WalletLedger

logger = logging.getLogger("seed_data")

RENEWABLE_PROVIDERS = {"lumos", "arnergy"}

COMPANIES = [
    {
        "name": "Ikeja Electric",
        "slug": "ikeja-electric",
        "description": "Serving Lagos State residents",
        "support_email": "support@ikejaelectric.com",
    },
    {
        "name": "Eko Electricity Distribution Company (EKEDC)",
        "slug": "eko-electricity",
        "description": "Powering parts of Lagos",
        "support_email": "support@ekedp.com",
    },
    {
        "name": "Abuja Electricity Distribution Company (AEDC)",
        "slug": "abuja-electricity",
        "description": "Serving FCT, Niger, Kogi, and Nasarawa States",
        "support_email": "customercare@abujaelectricity.com",
    },
    {
        "name": "Kano Electricity Distribution Company (KEDCO)",
        "slug": "kano-electricity",
        "description": "Covering Kano and Jigawa States",
        "support_email": "info@kedco.ng",
    },
    {
        "name": "Port Harcourt Electricity Distribution Company (PHED)",
        "slug": "port-harcourt-electric",
        "description": "Serving Rivers, Bayelsa, Cross River, and Akwa Ibom States",
        "support_email": "info@phed.com.ng",
    },
    {
        "name": "Enugu Electricity Distribution Company (EEDC)",
        "slug": "enugu-electricity",
        "description": "Covering Enugu, Abia, Anambra, Ebonyi, and Imo States",
        "support_email": "customercare@enugudisco.com",
    },
    {
        "name": "Jos Electricity Distribution Company (JED)",
        "slug": "jos-electricity",
        "description": "Serving Plateau, Benue, Bauchi, and Gombe States",
        "support_email": "info@jedc.com",
    },
    {
        "name": "Kaduna Electric",
        "slug": "kaduna-electric",
        "description": "Covering Kaduna, Kebbi, Sokoto, and Zamfara States",
        "support_email": "customercare@kadunaelectric.com",
    },
    {
        "name": "Benin Electricity Distribution Company (BEDC)",
        "slug": "benin-electricity",
        "description": "Serving Edo, Delta, Ondo, and Ekiti States",
        "support_email": "info@bedc.com",
    },
    {
        "name": "Ibadan Electricity Distribution Company (IBEDC)",
        "slug": "ibadan-electricity",
        "description": "Covering Oyo, Ogun, Osun, and Kwara States",
        "support_email": "customercare@ibedc.com",
    },
    {
        "name": "Lumos Nigeria",
        "slug": "lumos",
        "description": "Solar renewable energy provider",
        "support_email": "support@lumos-ng.com",
    },
    {
        "name": "Arnergy Solar",
        "slug": "arnergy",
        "description": "Distributed solar energy solutions",
        "support_email": "hello@arnergy.com",
    },
]


def seed_companies(db) -> None:
    """Create each company with a grid and a renewable token, skipping existing slugs."""
    for data in COMPANIES:
        if db.query(Company).filter(Company.slug == data["slug"]).first():
            logger.info("Company %s already exists. Skipping.", data["slug"])
            continue

        company = Company(**data, is_active=True)
        db.add(company)
        db.flush()
        db.add(
            EnergyToken(
                company_id=company.id,
                type=TokenType.NON_RENEWABLE,
                price_per_unit=85,
                description="Standard grid electricity",
                is_available=True,
            )
        )
        db.add(
            EnergyToken(
                company_id=company.id,
                type=TokenType.RENEWABLE,
                price_per_unit=95,
                description="Clean renewable energy",
                # Only the solar providers sell renewable energy
                is_available=data["slug"] in RENEWABLE_PROVIDERS,
            )
        )
        logger.info("Created company: %s", company.name)


def seed_user(db, email: str, password: str, first_name: str, last_name: str, role: UserRole):
    user = db.query(User).filter(User.email == email).first()
    if user:
        logger.info("User %s already exists. Skipping.", email)
        return user

    user = User(
        email=email,
        hashed_password=AuthService.get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        email_verified=True,
        is_active=True,
    )
    db.add(user)
    WalletLedger(db).create_wallet(user)
    logger.info("Created %s user: %s", role.value.lower(), email)
    return user


def seed_sample_usage(db, user: User) -> None:
    """A week of grid usage for the demo customer."""
    if db.query(UsageLog).filter(UsageLog.user_id == user.id).count():
        return

    token = (
        db.query(EnergyToken)
        .join(EnergyToken.company)
        .filter(Company.slug == "ikeja-electric", EnergyToken.type == TokenType.NON_RENEWABLE)
        .first()
    )
    if token is None:
        return

    now = datetime.now(timezone.utc)
    for day, amount in enumerate((12.5, 8.0, 15.2, 6.4, 10.0, 18.3, 9.7)):
        db.add(
            UsageLog(
                user_id=user.id,
                token_id=token.id,
                amount=amount,
                timestamp=now - timedelta(days=day),
                usage_metadata={"source": "seed"},
            )
        )
    logger.info("Created sample usage for %s", user.email)


def seed_data():
    """Seed the database with the Nigerian distribution companies and demo accounts."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    database = Database(settings.DATABASE_URL)
    database.create_all()

    with database.session_scope() as db:
        try:
            with atomic(db):
                seed_companies(db)
                seed_user(db, "admin@powernaija.ng", "Admin@123", "Admin", "User", UserRole.ADMIN)
                customer = seed_user(
                    db, "customer@test.com", "Test@123", "Test", "Customer", UserRole.CUSTOMER
                )
                db.flush()
                seed_sample_usage(db, customer)
        except Exception:
            logger.exception("Error seeding data")
            raise

    logger.info("Successfully seeded data!")
    database.dispose()


if __name__ == "__main__":
    seed_data()
