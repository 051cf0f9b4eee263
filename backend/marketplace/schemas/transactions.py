from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from marketplace import models


class WithdrawalCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount_foreign: float = Field(..., gt=0)


class TransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    supplier_id: int
    amount_foreign: float
    kind: models.TransactionKind
    status: models.TransactionStatus
    date: datetime
    decided_at: Optional[datetime] = None
    decided_by_user_id: Optional[int] = None
