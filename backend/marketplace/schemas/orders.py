from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from marketplace import models


class QuoteRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    amount_foreign: float
    exchange_rate: float
    fee_percentage: float
    local_base: float
    fee_amount: float
    total_payable: float
    foreign_currency: str
    local_currency: str


# One input model per operation; none of them can reach value_foreign or status.
class OrderCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    supplier_code: str = Field(..., min_length=1, max_length=16)
    description: str = Field(..., min_length=1)
    value_foreign: float = Field(..., gt=0)


class OrderShip(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tracking_code: str = Field(..., min_length=1, max_length=128)
    shipping_photos: list[str] = Field(..., min_length=1)


class OrderDispute(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: str = Field(..., min_length=1)


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    supplier_id: int
    description: str
    value_foreign: float
    status: models.OrderStatus
    created_at: datetime
    updated_at: datetime
    tracking_code: Optional[str] = None
    shipping_photos: Optional[list[str]] = None
    dispute_reason: Optional[str] = None


class OrderDetailRead(OrderRead):
    # Recomputed from the client's current fee and the current rate.
    quote: Optional[QuoteRead] = None
