from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.core.timeutil import utc_now
from marketplace.database import Base


class UserRole(PyEnum):
    CLIENT = "CLIENT"
    SUPPLIER = "SUPPLIER"
    ADMIN = "ADMIN"


class OrderStatus(PyEnum):
    PENDING = "PENDING"
    SENT = "SENT"
    FINALIZED = "FINALIZED"
    DISPUTE = "DISPUTE"


class TransactionKind(PyEnum):
    WITHDRAWAL = "WITHDRAWAL"
    INCOME = "INCOME"


class TransactionStatus(PyEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False), nullable=False, index=True
    )
    phone: Mapped[str | None] = mapped_column(String(64))
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Client only. NULL means the process-wide default fee applies.
    tax_id: Mapped[str | None] = mapped_column(String(32))
    fee_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Supplier only. Public code handed to clients; orders and transactions
    # always reference users.id, never this code.
    short_code: Mapped[str | None] = mapped_column(String(16), unique=True, index=True)
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    payout_qr_url: Mapped[str | None] = mapped_column(String(1024))
    # Bumped by withdrawal requests to take a row lock on the supplier.
    ledger_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    supplier_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    value_foreign: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, native_enum=False),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    # Written together with status=SENT.
    tracking_code: Mapped[str | None] = mapped_column(String(128))
    shipping_photos: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    dispute_reason: Mapped[str | None] = mapped_column(Text)

    client = relationship("User", foreign_keys=[client_id], lazy="joined")
    supplier = relationship("User", foreign_keys=[supplier_id], lazy="joined")


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    supplier_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    amount_foreign: Mapped[float] = mapped_column(Float, nullable=False)
    kind: Mapped[TransactionKind] = mapped_column(
        Enum(TransactionKind, native_enum=False),
        default=TransactionKind.WITHDRAWAL,
        nullable=False,
    )
    # forward-only: PENDING -> APPROVED | REJECTED
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus, native_enum=False),
        default=TransactionStatus.PENDING,
        nullable=False,
        index=True,
    )
    date: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    decided_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    supplier = relationship("User", foreign_keys=[supplier_id], lazy="joined")


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    action: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    payload_json: Mapped[str | None] = mapped_column(Text)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
