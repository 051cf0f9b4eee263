from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SupplierBalanceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    supplier_id: int
    as_of: datetime
    pending: int
    held_in_escrow: float
    total_earned: float
    total_committed: float
    available: float
    received_today: float
    received_week: float


class AdminOverviewRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    as_of: datetime
    transferred_today: float
    pending_suppliers: int
    pending_withdrawals: int
