# ruff: noqa: B008
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace import models
from marketplace.api.deps import require_admin, require_supplier
from marketplace.database import get_db
from marketplace.schemas import AdminOverviewRead, SupplierBalanceRead
from marketplace.services import balances, directory

router = APIRouter(tags=["balances"])


@router.get("/balances/me", response_model=SupplierBalanceRead)
def my_balance(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_supplier),
):
    return balances.compute_balance(db=db, supplier_id=current_user.id)


@router.get("/balances/{supplier_id}", response_model=SupplierBalanceRead)
def supplier_balance(
    supplier_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
):
    # 404 for ids that are not suppliers.
    directory.is_supplier_approved(db=db, supplier_id=supplier_id)
    return balances.compute_balance(db=db, supplier_id=supplier_id)


@router.get("/admin/overview", response_model=AdminOverviewRead)
def overview(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
):
    return balances.admin_overview(db=db)
