"""Order lifecycle.

PENDING -> SENT -> FINALIZED, with SENT/FINALIZED -> DISPUTE. DISPUTE is
terminal. Every transition is one conditional UPDATE so concurrent writers on
the same order cannot both win.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from marketplace import models
from marketplace.core.timeutil import utc_now
from marketplace.services.directory import get_user, resolve_supplier_by_code
from marketplace.services.errors import Forbidden, InvalidArgument, InvalidTransition, NotFound
from marketplace.services.transitions import atomic_transition_status

logger = logging.getLogger("marketplace.orders")

ALLOWED_TRANSITIONS: dict[models.OrderStatus, set[models.OrderStatus]] = {
    models.OrderStatus.PENDING: {models.OrderStatus.SENT},
    models.OrderStatus.SENT: {models.OrderStatus.FINALIZED, models.OrderStatus.DISPUTE},
    models.OrderStatus.FINALIZED: {models.OrderStatus.DISPUTE},
    models.OrderStatus.DISPUTE: set(),
}


def _sources_for(target: models.OrderStatus) -> list[models.OrderStatus]:
    return [src for src, targets in ALLOWED_TRANSITIONS.items() if target in targets]


def can_transition(current: models.OrderStatus, target: models.OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def get_order(*, db: Session, order_id: int) -> models.Order:
    order = db.get(models.Order, int(order_id))
    if order is None:
        raise NotFound(f"Order {order_id} not found", entity="order", entity_id=order_id)
    return order


def _transition(
    *,
    db: Session,
    order: models.Order,
    target: models.OrderStatus,
    updates: Optional[dict] = None,
    actor_id: Optional[int] = None,
) -> models.Order:
    previous = order.status
    values = {"updated_at": utc_now()}
    if updates:
        values.update(updates)

    res = atomic_transition_status(
        db=db,
        model=models.Order,
        row_id=order.id,
        to_status=target,
        allowed_from=_sources_for(target),
        updates=values,
    )
    if not res.updated:
        db.rollback()
        current = get_order(db=db, order_id=order.id).status
        logger.warning(
            "order_transition_rejected",
            extra={"order_id": order.id, "from": current.value, "to": target.value, "actor_id": actor_id},
        )
        raise InvalidTransition("order", order.id, attempted=target, current=current)

    db.commit()
    db.refresh(order)
    logger.info(
        "order_transition",
        extra={
            "order_id": order.id,
            "from": previous.value,
            "to": target.value,
            "supplier_id": order.supplier_id,
            "amount": order.value_foreign,
            "actor_id": actor_id,
        },
    )
    return order


def create_order(
    *,
    db: Session,
    client_id: int,
    supplier_short_code: str,
    description: str,
    value_foreign: float,
) -> models.Order:
    """Place a PENDING order from a client against a supplier's public code.

    The supplier does not need to be approved. No local-currency figure is
    stored; quotes are recomputed on display.
    """

    description = (description or "").strip()
    if not description:
        raise InvalidArgument("description must not be empty", field="description")
    try:
        value = float(value_foreign)
    except (TypeError, ValueError):
        raise InvalidArgument("value_foreign must be a number", field="value_foreign") from None
    if not value > 0:
        raise InvalidArgument("value_foreign must be positive", field="value_foreign")

    client = get_user(db=db, user_id=client_id)
    if client.role != models.UserRole.CLIENT or not client.active:
        raise Forbidden("Only active clients can place orders", actor_id=client_id)

    supplier_id = resolve_supplier_by_code(db=db, code=supplier_short_code)

    now = utc_now()
    order = models.Order(
        client_id=client.id,
        supplier_id=supplier_id,
        description=description,
        value_foreign=value,
        status=models.OrderStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
    db.add(order)
    db.commit()
    db.refresh(order)

    logger.info(
        "order_created",
        extra={
            "order_id": order.id,
            "client_id": order.client_id,
            "supplier_id": order.supplier_id,
            "amount": order.value_foreign,
        },
    )
    return order


def mark_shipped(
    *,
    db: Session,
    order_id: int,
    actor_id: int,
    tracking_code: str,
    shipping_photos: Iterable[str],
) -> models.Order:
    tracking = (tracking_code or "").strip()
    photos = [str(p).strip() for p in (shipping_photos or []) if str(p).strip()]
    if not tracking:
        raise InvalidArgument("tracking_code must not be empty", field="tracking_code")
    if not photos:
        raise InvalidArgument("at least one shipping photo is required", field="shipping_photos")

    order = get_order(db=db, order_id=order_id)
    if order.supplier_id != int(actor_id):
        raise Forbidden("Only the order's supplier can ship it", order_id=order.id, actor_id=actor_id)

    return _transition(
        db=db,
        order=order,
        target=models.OrderStatus.SENT,
        updates={"tracking_code": tracking, "shipping_photos": photos},
        actor_id=actor_id,
    )


def raise_dispute(*, db: Session, order_id: int, actor_id: int, reason: str) -> models.Order:
    reason = (reason or "").strip()
    if not reason:
        raise InvalidArgument("reason must not be empty", field="reason")

    order = get_order(db=db, order_id=order_id)
    if int(actor_id) not in (order.client_id, order.supplier_id):
        raise Forbidden("Only the order's parties can dispute it", order_id=order.id, actor_id=actor_id)

    # Shipping data is kept as evidence.
    return _transition(
        db=db,
        order=order,
        target=models.OrderStatus.DISPUTE,
        updates={"dispute_reason": reason},
        actor_id=actor_id,
    )


def finalize(*, db: Session, order_id: int, actor_id: Optional[int] = None) -> models.Order:
    """Release escrowed value to the supplier's earnings. Admin-only at the API."""

    order = get_order(db=db, order_id=order_id)
    return _transition(db=db, order=order, target=models.OrderStatus.FINALIZED, actor_id=actor_id)


def list_orders_for_client(*, db: Session, client_id: int) -> list[models.Order]:
    return (
        db.query(models.Order)
        .filter(models.Order.client_id == int(client_id))
        .order_by(models.Order.created_at.desc(), models.Order.id.desc())
        .all()
    )


def list_orders_for_supplier(*, db: Session, supplier_id: int) -> list[models.Order]:
    return (
        db.query(models.Order)
        .filter(models.Order.supplier_id == int(supplier_id))
        .order_by(models.Order.created_at.desc(), models.Order.id.desc())
        .all()
    )


def list_orders(
    *,
    db: Session,
    status: Optional[models.OrderStatus] = None,
    limit: int = 200,
) -> list[models.Order]:
    q = db.query(models.Order)
    if status is not None:
        q = q.filter(models.Order.status == status)
    return q.order_by(models.Order.created_at.desc(), models.Order.id.desc()).limit(limit).all()
