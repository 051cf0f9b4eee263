from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace import models
from marketplace.api.deps import require_roles
from marketplace.config import settings
from marketplace.database import get_db
from marketplace.schemas import QuoteRead
from marketplace.services.errors import InvalidArgument
from marketplace.services.fees import Quote, quote_for_client

router = APIRouter(prefix="/quotes", tags=["quotes"])


def quote_read(q: Quote) -> QuoteRead:
    return QuoteRead(
        amount_foreign=q.amount_foreign,
        exchange_rate=q.exchange_rate,
        fee_percentage=q.fee_percentage,
        local_base=q.local_base,
        fee_amount=q.fee_amount,
        total_payable=q.total_payable,
        foreign_currency=settings.foreign_currency,
        local_currency=settings.local_currency,
    )


@router.get("", response_model=QuoteRead)
def get_quote(
    amount_foreign: float = Query(..., gt=0),
    client_id: int | None = Query(None, description="Admin only: quote on behalf of a client"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_roles(models.UserRole.CLIENT)),
):
    target = current_user.id
    if current_user.role == models.UserRole.ADMIN:
        if client_id is None:
            raise InvalidArgument("client_id is required for admin quotes", field="client_id")
        target = client_id
    return quote_read(quote_for_client(db=db, client_id=target, amount_foreign=amount_foreign))
