from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy.orm import Session


@dataclass(frozen=True)
class TransitionResult:
    updated: bool
    rowcount: int


def atomic_transition_status(
    *,
    db: Session,
    model: Any,
    row_id: int,
    to_status: Any,
    allowed_from: Iterable[Any],
    updates: dict[str, Any] | None = None,
) -> TransitionResult:
    """Apply a status transition with an atomic DB guard.

    Performs a single conditional UPDATE:

        UPDATE <table>
        SET status = :to_status, ...
        WHERE id = :row_id AND status IN (:allowed_from)

    so two writers racing on the same row cannot both succeed; the loser sees
    rowcount 0. Extra columns in ``updates`` land in the same statement.

    Callers control commit/rollback.
    """

    update_values: dict[str, Any] = {"status": to_status}
    if updates:
        update_values.update(updates)

    rowcount = (
        db.query(model)
        .filter(model.id == int(row_id))
        .filter(model.status.in_(list(allowed_from)))
        .update(update_values, synchronize_session=False)
    )

    return TransitionResult(updated=rowcount > 0, rowcount=int(rowcount or 0))
