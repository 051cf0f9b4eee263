from __future__ import annotations

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy.orm import Session

from marketplace import models
from marketplace.core.timeutil import utc_now
from marketplace.services.balances import raw_available
from marketplace.services.errors import (
    Forbidden,
    InsufficientBalance,
    InvalidArgument,
    InvalidTransition,
    NotFound,
)
from marketplace.services.transitions import atomic_transition_status

logger = logging.getLogger("marketplace.ledger")


def _lock_supplier(*, db: Session, supplier_id: int) -> bool:
    """Serialize withdrawal requests per supplier.

    The UPDATE takes a row lock on Postgres and the database write lock on
    SQLite; it is held until the caller commits or rolls back.
    """

    rowcount = (
        db.query(models.User)
        .filter(models.User.id == int(supplier_id))
        .filter(models.User.role == models.UserRole.SUPPLIER)
        .update(
            {models.User.ledger_version: models.User.ledger_version + 1},
            synchronize_session=False,
        )
    )
    return bool(rowcount)


def get_transaction(*, db: Session, transaction_id: int) -> models.Transaction:
    tx = db.get(models.Transaction, int(transaction_id))
    if tx is None:
        raise NotFound(
            f"Transaction {transaction_id} not found",
            entity="transaction",
            entity_id=transaction_id,
        )
    return tx


def request_withdrawal(*, db: Session, supplier_id: int, amount: float) -> models.Transaction:
    """Create a PENDING withdrawal if ``amount`` fits the available balance.

    The balance check and the insert commit together.
    """

    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise InvalidArgument("amount must be a number", field="amount") from None
    if not math.isfinite(value) or value <= 0:
        raise InvalidArgument("amount must be positive", field="amount")

    requested = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if requested <= 0:
        raise InvalidArgument("amount must be at least 0.01", field="amount")

    try:
        if not _lock_supplier(db=db, supplier_id=supplier_id):
            raise Forbidden("Only suppliers can request withdrawals", actor_id=supplier_id)

        available = raw_available(db=db, supplier_id=supplier_id)
        if requested > available:
            raise InsufficientBalance(
                int(supplier_id),
                requested=float(requested),
                available=float(max(available, Decimal("0.00"))),
            )

        tx = models.Transaction(
            supplier_id=int(supplier_id),
            amount_foreign=float(requested),
            kind=models.TransactionKind.WITHDRAWAL,
            status=models.TransactionStatus.PENDING,
            date=utc_now(),
        )
        db.add(tx)
        db.commit()
    except (Forbidden, InsufficientBalance) as exc:
        db.rollback()
        logger.warning(
            "withdrawal_rejected",
            extra={"supplier_id": supplier_id, "amount": value, "reason": exc.code},
        )
        raise

    db.refresh(tx)
    logger.info(
        "withdrawal_requested",
        extra={"transaction_id": tx.id, "supplier_id": tx.supplier_id, "amount": tx.amount_foreign},
    )
    return tx


def _decide(
    *,
    db: Session,
    transaction_id: int,
    to_status: models.TransactionStatus,
    actor_id: Optional[int],
) -> models.Transaction:
    tx = get_transaction(db=db, transaction_id=transaction_id)

    res = atomic_transition_status(
        db=db,
        model=models.Transaction,
        row_id=tx.id,
        to_status=to_status,
        allowed_from=[models.TransactionStatus.PENDING],
        updates={"decided_at": utc_now(), "decided_by_user_id": actor_id},
    )
    if not res.updated:
        db.rollback()
        current = get_transaction(db=db, transaction_id=transaction_id).status
        logger.warning(
            "withdrawal_decision_rejected",
            extra={"transaction_id": tx.id, "from": current.value, "to": to_status.value},
        )
        raise InvalidTransition("transaction", tx.id, attempted=to_status, current=current)

    db.commit()
    db.refresh(tx)
    logger.info(
        "withdrawal_decided",
        extra={
            "transaction_id": tx.id,
            "supplier_id": tx.supplier_id,
            "amount": tx.amount_foreign,
            "to": to_status.value,
            "actor_id": actor_id,
        },
    )
    return tx


def approve(*, db: Session, transaction_id: int, actor_id: Optional[int] = None) -> models.Transaction:
    """Record that the payout was made. No money moves here."""

    return _decide(
        db=db,
        transaction_id=transaction_id,
        to_status=models.TransactionStatus.APPROVED,
        actor_id=actor_id,
    )


def reject(*, db: Session, transaction_id: int, actor_id: Optional[int] = None) -> models.Transaction:
    """Release the earmarked amount back to the supplier's available balance."""

    return _decide(
        db=db,
        transaction_id=transaction_id,
        to_status=models.TransactionStatus.REJECTED,
        actor_id=actor_id,
    )


def list_transactions_for_supplier(*, db: Session, supplier_id: int) -> list[models.Transaction]:
    return (
        db.query(models.Transaction)
        .filter(models.Transaction.supplier_id == int(supplier_id))
        .order_by(models.Transaction.date.desc(), models.Transaction.id.desc())
        .all()
    )


def list_transactions(
    *,
    db: Session,
    status: Optional[models.TransactionStatus] = None,
    limit: int = 200,
) -> list[models.Transaction]:
    q = db.query(models.Transaction)
    if status is not None:
        q = q.filter(models.Transaction.status == status)
    return q.order_by(models.Transaction.date.desc(), models.Transaction.id.desc()).limit(limit).all()
