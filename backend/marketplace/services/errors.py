"""Typed failures raised by the order/ledger engine.

The HTTP layer maps each class to a status code (see core.observability); the
engine itself never retries and never leaves a partial write behind when one of
these is raised.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


class MarketplaceError(Exception):
    code = "marketplace_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = {k: _plain(v) for k, v in context.items()}

    def to_detail(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, "context": dict(self.context)}


class InvalidArgument(MarketplaceError):
    code = "invalid_argument"


class NotFound(MarketplaceError):
    code = "not_found"


class SupplierNotFound(NotFound):
    code = "supplier_not_found"


class Forbidden(MarketplaceError):
    code = "forbidden"


class InvalidTransition(MarketplaceError):
    code = "invalid_transition"

    def __init__(self, entity: str, entity_id: int, *, attempted: Any, current: Any):
        super().__init__(
            f"{entity} {entity_id} cannot move to {_plain(attempted)} from {_plain(current)}",
            entity=entity,
            entity_id=entity_id,
            attempted=attempted,
            current=current,
        )
        self.attempted = attempted
        self.current = current


class InsufficientBalance(MarketplaceError):
    code = "insufficient_balance"

    def __init__(self, supplier_id: int, *, requested: float, available: float):
        super().__init__(
            f"Requested {requested:.2f} exceeds available balance {available:.2f}",
            supplier_id=supplier_id,
            requested=requested,
            available=available,
        )
        self.requested = requested
        self.available = available
