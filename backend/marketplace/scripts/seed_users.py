"""Seed Users Script

Creates/updates the default dev accounts: one admin, one approved supplier
with the well-known code 888888 and one client on the default fee.
Run from backend/ with: python -m marketplace.scripts.seed_users
"""

import logging

from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.core.security import hash_password
from marketplace.database import SessionLocal
from marketplace.models import User, UserRole

logger = logging.getLogger("marketplace.seed")

DEV_PASSWORD = "123456"  # Dev default

DEFAULT_USERS = [
    {
        "email": "admin@marketplace.dev",
        "name": "Admin",
        "role": UserRole.ADMIN,
        "is_approved": True,
    },
    {
        "email": "supplier@marketplace.dev",
        "name": "Wei Supplier",
        "role": UserRole.SUPPLIER,
        "is_approved": True,
        "short_code": "888888",
        "phone": "+86 138 0000 0000",
    },
    {
        "email": "client@marketplace.dev",
        "name": "João Silva",
        "role": UserRole.CLIENT,
        "is_approved": True,
        "tax_id": "123.456.789-00",
    },
]


def seed_dev_users(db: Session) -> list[User]:
    """Create missing default users; existing rows are left as they are."""

    seeded: list[User] = []
    for entry in DEFAULT_USERS:
        user = db.query(User).filter(User.email == entry["email"]).first()
        if user is not None:
            seeded.append(user)
            continue

        user = User(**entry, hashed_password=hash_password(DEV_PASSWORD), active=True)
        if user.role == UserRole.CLIENT:
            user.fee_percentage = float(settings.default_fee_percentage)
        db.add(user)
        db.flush()
        logger.info("dev_user_created", extra={"email": user.email, "role": user.role.value})
        seeded.append(user)

    db.commit()
    return seeded


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    db = SessionLocal()
    try:
        seed_dev_users(db)
    except Exception:
        logger.exception("dev_user_seed_failed")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
