from __future__ import annotations

import math
from dataclasses import dataclass

from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.services.directory import client_fee_percent
from marketplace.services.errors import InvalidArgument


@dataclass(frozen=True)
class Quote:
    amount_foreign: float
    exchange_rate: float
    fee_percentage: float
    local_base: float
    fee_amount: float
    total_payable: float


def _finite(name: str, value: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"{name} must be a number", field=name) from None
    if not math.isfinite(v):
        raise InvalidArgument(f"{name} must be finite", field=name)
    return v


def quote(amount_foreign: float, exchange_rate: float, fee_percent: float) -> Quote:
    """Convert a foreign-currency amount and add the client's service fee.

    local_base    = amount_foreign * exchange_rate
    fee_amount    = local_base * fee_percent / 100
    total_payable = local_base + fee_amount

    The result is never persisted on the order; it is recomputed with the
    current rate and fee every time a quote is shown.
    """

    amount = _finite("amount_foreign", amount_foreign)
    rate = _finite("exchange_rate", exchange_rate)
    fee = _finite("fee_percentage", fee_percent)

    if amount <= 0:
        raise InvalidArgument("amount_foreign must be positive", field="amount_foreign")
    if rate <= 0:
        raise InvalidArgument("exchange_rate must be positive", field="exchange_rate")
    if fee < 0:
        raise InvalidArgument("fee_percentage must not be negative", field="fee_percentage")

    local_base = amount * rate
    fee_amount = local_base * fee / 100.0
    return Quote(
        amount_foreign=amount,
        exchange_rate=rate,
        fee_percentage=fee,
        local_base=local_base,
        fee_amount=fee_amount,
        total_payable=local_base + fee_amount,
    )


def quote_for_client(
    *,
    db: Session,
    client_id: int,
    amount_foreign: float,
    exchange_rate: float | None = None,
) -> Quote:
    rate = settings.exchange_rate if exchange_rate is None else exchange_rate
    return quote(amount_foreign, rate, client_fee_percent(db=db, client_id=client_id))
