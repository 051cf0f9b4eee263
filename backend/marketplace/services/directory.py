from __future__ import annotations

import logging
import math
import secrets

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace import models
from marketplace.config import settings
from marketplace.core.security import hash_password
from marketplace.services.errors import Forbidden, InvalidArgument, NotFound, SupplierNotFound

logger = logging.getLogger("marketplace.directory")

_SHORT_CODE_ATTEMPTS = 20
_SELF_SERVICE_ROLES = {models.UserRole.CLIENT, models.UserRole.SUPPLIER}


def _generate_short_code(length: int) -> str:
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


def _unused_short_code(db: Session) -> str:
    length = int(settings.short_code_length)
    for _ in range(_SHORT_CODE_ATTEMPTS):
        code = _generate_short_code(length)
        taken = db.query(models.User.id).filter(models.User.short_code == code).first()
        if taken is None:
            return code
    raise RuntimeError("could not allocate a unique supplier short code")


def get_user(*, db: Session, user_id: int) -> models.User:
    user = db.get(models.User, int(user_id))
    if user is None:
        raise NotFound(f"User {user_id} not found", entity="user", entity_id=user_id)
    return user


def _get_with_role(*, db: Session, user_id: int, role: models.UserRole) -> models.User:
    user = get_user(db=db, user_id=user_id)
    if user.role != role:
        raise NotFound(
            f"{role.value.title()} {user_id} not found",
            entity=role.value.lower(),
            entity_id=user_id,
        )
    return user


def resolve_supplier_by_code(*, db: Session, code: str) -> int:
    """Translate a supplier's public short code into the internal user id.

    Approval is not required: unapproved suppliers can still be addressed.
    """

    normalized = (code or "").strip()
    if not normalized:
        raise SupplierNotFound("Supplier code is required", supplier_code=code)

    row = (
        db.query(models.User.id)
        .filter(models.User.short_code == normalized)
        .filter(models.User.role == models.UserRole.SUPPLIER)
        .first()
    )
    if row is None:
        raise SupplierNotFound(f"No supplier with code {normalized}", supplier_code=normalized)
    return int(row[0])


def is_supplier_approved(*, db: Session, supplier_id: int) -> bool:
    supplier = _get_with_role(db=db, user_id=supplier_id, role=models.UserRole.SUPPLIER)
    return bool(supplier.is_approved)


def client_fee_percent(*, db: Session, client_id: int) -> float:
    client = _get_with_role(db=db, user_id=client_id, role=models.UserRole.CLIENT)
    if client.fee_percentage is None:
        return float(settings.default_fee_percentage)
    return float(client.fee_percentage)


def register_user(
    *,
    db: Session,
    email: str,
    name: str,
    password: str,
    role: models.UserRole,
    phone: str | None = None,
    tax_id: str | None = None,
    payout_qr_url: str | None = None,
) -> models.User:
    """Self-service registration for clients and suppliers.

    Suppliers start unapproved with a fresh public short code; clients start
    with the default fee. Admin accounts are never created here.
    """

    if role not in _SELF_SERVICE_ROLES:
        raise Forbidden("Role assignment is not allowed via registration", role=role)

    email = (email or "").strip().lower()
    name = (name or "").strip()
    if not email or not name:
        raise InvalidArgument("email and name are required")
    if not password:
        raise InvalidArgument("password is required", field="password")
    if db.query(models.User.id).filter(models.User.email == email).first():
        raise InvalidArgument("Email already registered", field="email")

    user = models.User(
        email=email,
        name=name,
        hashed_password=hash_password(password),
        role=role,
        phone=phone,
        active=True,
    )
    if role == models.UserRole.SUPPLIER:
        user.short_code = _unused_short_code(db)
        user.is_approved = False
        user.payout_qr_url = payout_qr_url
    else:
        user.is_approved = True
        user.tax_id = tax_id
        user.fee_percentage = float(settings.default_fee_percentage)

    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise InvalidArgument("Email already registered", field="email") from None
    db.refresh(user)

    logger.info(
        "user_registered",
        extra={"user_id": user.id, "role": user.role.value, "short_code": user.short_code},
    )
    return user


def _set_supplier_approval(*, db: Session, supplier_id: int, approved: bool) -> models.User:
    supplier = _get_with_role(db=db, user_id=supplier_id, role=models.UserRole.SUPPLIER)
    supplier.is_approved = approved
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    logger.info(
        "supplier_approval_changed",
        extra={"supplier_id": supplier.id, "is_approved": approved},
    )
    return supplier


def approve_supplier(*, db: Session, supplier_id: int) -> models.User:
    return _set_supplier_approval(db=db, supplier_id=supplier_id, approved=True)


def block_supplier(*, db: Session, supplier_id: int) -> models.User:
    return _set_supplier_approval(db=db, supplier_id=supplier_id, approved=False)


def set_client_fee(*, db: Session, client_id: int, fee_percentage: float) -> models.User:
    try:
        fee = float(fee_percentage)
    except (TypeError, ValueError):
        raise InvalidArgument("fee_percentage must be a number", field="fee_percentage") from None
    if not math.isfinite(fee) or fee < 0 or fee > 100:
        raise InvalidArgument("fee_percentage must be between 0 and 100", field="fee_percentage")

    client = _get_with_role(db=db, user_id=client_id, role=models.UserRole.CLIENT)
    client.fee_percentage = fee
    db.add(client)
    db.commit()
    db.refresh(client)
    logger.info("client_fee_changed", extra={"client_id": client.id, "fee_percentage": fee})
    return client


def regenerate_short_code(*, db: Session, supplier_id: int) -> models.User:
    """Issue a new public code; the internal id and all history stay untouched."""

    supplier = _get_with_role(db=db, user_id=supplier_id, role=models.UserRole.SUPPLIER)
    previous = supplier.short_code
    supplier.short_code = _unused_short_code(db)
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    logger.info(
        "supplier_short_code_rotated",
        extra={"supplier_id": supplier.id, "previous": previous, "current": supplier.short_code},
    )
    return supplier


def list_suppliers(*, db: Session, approved: bool | None = None) -> list[models.User]:
    q = db.query(models.User).filter(models.User.role == models.UserRole.SUPPLIER)
    if approved is not None:
        q = q.filter(models.User.is_approved.is_(approved))
    return q.order_by(models.User.name.asc()).all()


def list_clients(*, db: Session) -> list[models.User]:
    return (
        db.query(models.User)
        .filter(models.User.role == models.UserRole.CLIENT)
        .order_by(models.User.name.asc())
        .all()
    )
