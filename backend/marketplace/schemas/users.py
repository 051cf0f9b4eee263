from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from marketplace.models.domain import UserRole


class UserRegister(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str  # plain str: .local domains are not always valid for EmailStr
    name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.CLIENT
    phone: Optional[str] = None
    tax_id: Optional[str] = None
    payout_qr_url: Optional[str] = None


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    role: UserRole
    phone: Optional[str] = None
    active: bool
    is_approved: bool
    short_code: Optional[str] = None
    fee_percentage: Optional[float] = None
    tax_id: Optional[str] = None
    payout_qr_url: Optional[str] = None
    created_at: datetime


class ClientFeeUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fee_percentage: float = Field(..., ge=0, le=100)
