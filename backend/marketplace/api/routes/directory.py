# ruff: noqa: B008
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from marketplace import models
from marketplace.api.deps import require_admin
from marketplace.database import get_db
from marketplace.schemas import ClientFeeUpdate, UserRead
from marketplace.services import directory
from marketplace.services.audit import audit_request

router = APIRouter(tags=["directory"])


@router.get("/suppliers", response_model=list[UserRead])
def list_suppliers(
    approved: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
):
    return directory.list_suppliers(db=db, approved=approved)


@router.get("/clients", response_model=list[UserRead])
def list_clients(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
):
    return directory.list_clients(db=db)


@router.post("/suppliers/{supplier_id}/approve", response_model=UserRead)
def approve_supplier(
    supplier_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
):
    supplier = directory.approve_supplier(db=db, supplier_id=supplier_id)
    audit_request(request, "directory.supplier_approved", current_user.id, {"supplier_id": supplier.id}, db=db)
    return supplier


@router.post("/suppliers/{supplier_id}/block", response_model=UserRead)
def block_supplier(
    supplier_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
):
    supplier = directory.block_supplier(db=db, supplier_id=supplier_id)
    audit_request(request, "directory.supplier_blocked", current_user.id, {"supplier_id": supplier.id}, db=db)
    return supplier


@router.post("/suppliers/{supplier_id}/short-code", response_model=UserRead)
def rotate_short_code(
    supplier_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
):
    supplier = directory.regenerate_short_code(db=db, supplier_id=supplier_id)
    audit_request(
        request,
        "directory.short_code_rotated",
        current_user.id,
        {"supplier_id": supplier.id, "short_code": supplier.short_code},
        db=db,
    )
    return supplier


@router.put("/clients/{client_id}/fee", response_model=UserRead)
def set_client_fee(
    client_id: int,
    payload: ClientFeeUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
):
    client = directory.set_client_fee(db=db, client_id=client_id, fee_percentage=payload.fee_percentage)
    audit_request(
        request,
        "directory.client_fee_set",
        current_user.id,
        {"client_id": client.id, "fee_percentage": client.fee_percentage},
        db=db,
    )
    return client
