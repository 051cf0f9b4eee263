# ruff: noqa: B008
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from marketplace import models
from marketplace.api.deps import get_approved_supplier, require_admin, require_roles
from marketplace.database import get_db
from marketplace.schemas import TransactionRead, WithdrawalCreate
from marketplace.services import ledger
from marketplace.services.audit import audit_request

router = APIRouter(tags=["transactions"])

_supplier_or_admin_dep = require_roles(models.UserRole.SUPPLIER)


@router.post(
    "/withdrawals",
    response_model=TransactionRead,
    status_code=status.HTTP_201_CREATED,
)
def request_withdrawal(
    payload: WithdrawalCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_approved_supplier),
):
    tx = ledger.request_withdrawal(
        db=db, supplier_id=current_user.id, amount=payload.amount_foreign
    )
    audit_request(
        request,
        "transactions.withdrawal_requested",
        current_user.id,
        {"transaction_id": tx.id, "amount_foreign": tx.amount_foreign},
        db=db,
    )
    return tx


@router.get("/transactions", response_model=list[TransactionRead])
def list_transactions(
    status_filter: Optional[models.TransactionStatus] = Query(None, alias="status"),
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(_supplier_or_admin_dep),
):
    if current_user.role == models.UserRole.ADMIN:
        return ledger.list_transactions(db=db, status=status_filter, limit=limit)
    rows = ledger.list_transactions_for_supplier(db=db, supplier_id=current_user.id)
    if status_filter is not None:
        rows = [t for t in rows if t.status == status_filter]
    return rows[:limit]


@router.post("/transactions/{transaction_id}/approve", response_model=TransactionRead)
def approve_transaction(
    transaction_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
):
    tx = ledger.approve(db=db, transaction_id=transaction_id, actor_id=current_user.id)
    audit_request(
        request,
        "transactions.approved",
        current_user.id,
        {"transaction_id": tx.id, "supplier_id": tx.supplier_id, "amount_foreign": tx.amount_foreign},
        db=db,
    )
    return tx


@router.post("/transactions/{transaction_id}/reject", response_model=TransactionRead)
def reject_transaction(
    transaction_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
):
    tx = ledger.reject(db=db, transaction_id=transaction_id, actor_id=current_user.id)
    audit_request(
        request,
        "transactions.rejected",
        current_user.id,
        {"transaction_id": tx.id, "supplier_id": tx.supplier_id, "amount_foreign": tx.amount_foreign},
        db=db,
    )
    return tx
