from marketplace.models.domain import (
    AuditLog,
    Order,
    OrderStatus,
    Transaction,
    TransactionKind,
    TransactionStatus,
    User,
    UserRole,
)

__all__ = [
    "AuditLog",
    "Order",
    "OrderStatus",
    "Transaction",
    "TransactionKind",
    "TransactionStatus",
    "User",
    "UserRole",
]
