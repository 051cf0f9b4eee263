from marketplace.schemas.auth import Token
from marketplace.schemas.balances import AdminOverviewRead, SupplierBalanceRead
from marketplace.schemas.orders import (
    OrderCreate,
    OrderDetailRead,
    OrderDispute,
    OrderRead,
    OrderShip,
    QuoteRead,
)
from marketplace.schemas.transactions import TransactionRead, WithdrawalCreate
from marketplace.schemas.users import ClientFeeUpdate, UserRead, UserRegister

__all__ = [
    "Token",
    "AdminOverviewRead",
    "SupplierBalanceRead",
    "OrderCreate",
    "OrderDetailRead",
    "OrderDispute",
    "OrderRead",
    "OrderShip",
    "QuoteRead",
    "TransactionRead",
    "WithdrawalCreate",
    "ClientFeeUpdate",
    "UserRead",
    "UserRegister",
]
