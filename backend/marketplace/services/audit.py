import json
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace import models
from marketplace.database import SessionLocal

logger = logging.getLogger("marketplace.audit")


def audit_event(
    action: str,
    user_id: Optional[int],
    payload: Dict[str, Any],
    *,
    db: Session | None = None,
    request_id: str | None = None,
    ip: str | None = None,
    user_agent: str | None = None,
) -> Optional[int]:
    """
    Persist an audit event; if the DB write fails, log the event instead.

    Called after the audited mutation has committed, so a failure here never
    undoes business state. Returns the created audit log id when available.
    """

    created_session = False
    session: Session | None = db
    try:
        if session is None:
            session = SessionLocal()
            created_session = True

        log = models.AuditLog(
            action=action,
            user_id=user_id,
            payload_json=json.dumps(payload or {}, default=str),
            request_id=request_id,
            ip=ip,
            user_agent=(user_agent or "")[:256] or None,
        )
        session.add(log)
        session.commit()
        session.refresh(log)
        return log.id
    except SQLAlchemyError:
        if session is not None:
            session.rollback()
        logger.exception(
            "audit_write_failed",
            extra={"action": action, "user_id": user_id, "payload": payload},
        )
        return None
    finally:
        if created_session and session is not None:
            session.close()


def audit_request(request, action: str, user_id: Optional[int], payload: Dict[str, Any], *, db: Session):
    """audit_event with request id / client address taken from a FastAPI request."""

    return audit_event(
        action,
        user_id,
        payload,
        db=db,
        request_id=request.headers.get("x-request-id"),
        ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
