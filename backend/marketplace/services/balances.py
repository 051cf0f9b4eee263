"""Derived supplier financial position.

Nothing here is stored. Every figure is recomputed from orders and withdrawal
transactions on each call, inside one SELECT so the numbers come from a single
snapshot.

- ``received_today`` counts orders *created* on the UTC calendar day of ``now``.
- ``received_week`` counts orders created in the rolling 7x24h ending at ``now``.

Both measure orders placed, not funds released.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from marketplace import models
from marketplace.core.timeutil import as_naive_utc, utc_day_bounds, utc_now

_COMMITTED_STATUSES = (models.TransactionStatus.PENDING, models.TransactionStatus.APPROVED)


def _norm_money(value: Optional[float]) -> Decimal:
    return Decimal(str(value or 0.0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class SupplierBalance:
    supplier_id: int
    as_of: datetime
    pending: int
    held_in_escrow: float
    total_earned: float
    total_committed: float
    available: float
    received_today: float
    received_week: float


@dataclass(frozen=True)
class AdminOverview:
    as_of: datetime
    transferred_today: float
    pending_suppliers: int
    pending_withdrawals: int


def _order_sum(supplier_id: int, *criteria):
    return (
        select(func.coalesce(func.sum(models.Order.value_foreign), 0.0))
        .where(models.Order.supplier_id == supplier_id, *criteria)
        .scalar_subquery()
    )


def _committed_sum(supplier_id: int):
    return (
        select(func.coalesce(func.sum(models.Transaction.amount_foreign), 0.0))
        .where(
            models.Transaction.supplier_id == supplier_id,
            models.Transaction.kind == models.TransactionKind.WITHDRAWAL,
            models.Transaction.status.in_(_COMMITTED_STATUSES),
        )
        .scalar_subquery()
    )


def _balance_statement(supplier_id: int, now: datetime):
    day_start, day_end = utc_day_bounds(now)
    week_ago = now - timedelta(days=7)

    pending = (
        select(func.count(models.Order.id))
        .where(
            models.Order.supplier_id == supplier_id,
            models.Order.status == models.OrderStatus.PENDING,
        )
        .scalar_subquery()
    )
    return select(
        pending.label("pending"),
        _order_sum(supplier_id, models.Order.status != models.OrderStatus.FINALIZED).label("held"),
        _order_sum(supplier_id, models.Order.status == models.OrderStatus.FINALIZED).label("earned"),
        _committed_sum(supplier_id).label("committed"),
        _order_sum(
            supplier_id,
            models.Order.created_at >= day_start,
            models.Order.created_at < day_end,
        ).label("today"),
        _order_sum(
            supplier_id,
            models.Order.created_at > week_ago,
            models.Order.created_at <= now,
        ).label("week"),
    )


def raw_available(*, db: Session, supplier_id: int) -> Decimal:
    """earned - committed, unclamped, rounded to cents.

    Used by the ledger inside its own transaction right before inserting a
    withdrawal.
    """

    earned = _order_sum(int(supplier_id), models.Order.status == models.OrderStatus.FINALIZED)
    committed = _committed_sum(int(supplier_id))
    row = db.execute(select(earned.label("earned"), committed.label("committed"))).one()
    return _norm_money(row.earned) - _norm_money(row.committed)


def compute_balance(
    *,
    db: Session,
    supplier_id: int,
    now: Optional[datetime] = None,
) -> SupplierBalance:
    as_of = as_naive_utc(now) if now is not None else utc_now()
    row = db.execute(_balance_statement(int(supplier_id), as_of)).one()

    earned = _norm_money(row.earned)
    committed = _norm_money(row.committed)
    # Can dip below zero when a finalized order is later disputed.
    available = max(Decimal("0.00"), earned - committed)

    return SupplierBalance(
        supplier_id=int(supplier_id),
        as_of=as_of,
        pending=int(row.pending or 0),
        held_in_escrow=float(_norm_money(row.held)),
        total_earned=float(earned),
        total_committed=float(committed),
        available=float(available),
        received_today=float(_norm_money(row.today)),
        received_week=float(_norm_money(row.week)),
    )


def admin_overview(*, db: Session, now: Optional[datetime] = None) -> AdminOverview:
    as_of = as_naive_utc(now) if now is not None else utc_now()
    day_start, day_end = utc_day_bounds(as_of)

    transferred = (
        select(func.coalesce(func.sum(models.Transaction.amount_foreign), 0.0))
        .where(
            models.Transaction.kind == models.TransactionKind.WITHDRAWAL,
            models.Transaction.status == models.TransactionStatus.APPROVED,
            models.Transaction.decided_at >= day_start,
            models.Transaction.decided_at < day_end,
        )
        .scalar_subquery()
    )
    pending_suppliers = (
        select(func.count(models.User.id))
        .where(
            models.User.role == models.UserRole.SUPPLIER,
            models.User.is_approved.is_(False),
        )
        .scalar_subquery()
    )
    pending_withdrawals = (
        select(func.count(models.Transaction.id))
        .where(
            models.Transaction.kind == models.TransactionKind.WITHDRAWAL,
            models.Transaction.status == models.TransactionStatus.PENDING,
        )
        .scalar_subquery()
    )

    row = db.execute(
        select(
            transferred.label("transferred"),
            pending_suppliers.label("suppliers"),
            pending_withdrawals.label("withdrawals"),
        )
    ).one()

    return AdminOverview(
        as_of=as_of,
        transferred_today=float(_norm_money(row.transferred)),
        pending_suppliers=int(row.suppliers or 0),
        pending_withdrawals=int(row.withdrawals or 0),
    )
