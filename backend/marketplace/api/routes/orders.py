# ruff: noqa: B008
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from marketplace import models
from marketplace.api.deps import get_approved_supplier, get_current_user, require_admin, require_roles
from marketplace.api.routes.quotes import quote_read
from marketplace.database import get_db
from marketplace.schemas import OrderCreate, OrderDetailRead, OrderDispute, OrderRead, OrderShip
from marketplace.services import orders as order_service
from marketplace.services.audit import audit_request
from marketplace.services.errors import Forbidden
from marketplace.services.fees import quote_for_client

router = APIRouter(prefix="/orders", tags=["orders"])

_client_dep = require_roles(models.UserRole.CLIENT)
_party_dep = require_roles(models.UserRole.CLIENT, models.UserRole.SUPPLIER)


@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(_client_dep),
):
    order = order_service.create_order(
        db=db,
        client_id=current_user.id,
        supplier_short_code=payload.supplier_code,
        description=payload.description,
        value_foreign=payload.value_foreign,
    )
    audit_request(
        request,
        "orders.created",
        current_user.id,
        {"order_id": order.id, "supplier_id": order.supplier_id, "value_foreign": order.value_foreign},
        db=db,
    )
    return order


@router.get("", response_model=list[OrderRead])
def list_orders(
    status_filter: Optional[models.OrderStatus] = Query(None, alias="status"),
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    if current_user.role == models.UserRole.ADMIN:
        return order_service.list_orders(db=db, status=status_filter, limit=limit)
    if current_user.role == models.UserRole.SUPPLIER:
        rows = order_service.list_orders_for_supplier(db=db, supplier_id=current_user.id)
    else:
        rows = order_service.list_orders_for_client(db=db, client_id=current_user.id)
    if status_filter is not None:
        rows = [o for o in rows if o.status == status_filter]
    return rows[:limit]


@router.get("/{order_id}", response_model=OrderDetailRead)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    order = order_service.get_order(db=db, order_id=order_id)
    if current_user.role != models.UserRole.ADMIN and current_user.id not in (
        order.client_id,
        order.supplier_id,
    ):
        raise Forbidden("Not a party to this order", order_id=order.id)

    detail = OrderDetailRead.model_validate(order)
    detail.quote = quote_read(
        quote_for_client(db=db, client_id=order.client_id, amount_foreign=order.value_foreign)
    )
    return detail


@router.post("/{order_id}/ship", response_model=OrderRead)
def ship_order(
    order_id: int,
    payload: OrderShip,
    request: Request,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_approved_supplier),
):
    order = order_service.mark_shipped(
        db=db,
        order_id=order_id,
        actor_id=current_user.id,
        tracking_code=payload.tracking_code,
        shipping_photos=payload.shipping_photos,
    )
    audit_request(
        request,
        "orders.shipped",
        current_user.id,
        {"order_id": order.id, "tracking_code": order.tracking_code},
        db=db,
    )
    return order


@router.post("/{order_id}/dispute", response_model=OrderRead)
def dispute_order(
    order_id: int,
    payload: OrderDispute,
    request: Request,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(_party_dep),
):
    order = order_service.raise_dispute(
        db=db, order_id=order_id, actor_id=current_user.id, reason=payload.reason
    )
    audit_request(
        request,
        "orders.disputed",
        current_user.id,
        {"order_id": order.id, "reason": order.dispute_reason},
        db=db,
    )
    return order


@router.post("/{order_id}/finalize", response_model=OrderRead)
def finalize_order(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
):
    order = order_service.finalize(db=db, order_id=order_id, actor_id=current_user.id)
    audit_request(
        request,
        "orders.finalized",
        current_user.id,
        {"order_id": order.id, "supplier_id": order.supplier_id, "value_foreign": order.value_foreign},
        db=db,
    )
    return order
